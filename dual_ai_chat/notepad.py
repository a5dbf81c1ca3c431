"""The shared notepad both personas can read and overwrite."""

import logging
from collections.abc import Callable

from dual_ai_chat.models import Persona
from dual_ai_chat.protocol import INITIAL_NOTEPAD_CONTENT

logger = logging.getLogger(__name__)

NotepadListener = Callable[[str, Persona | None], None]


class Notepad:
    """Single text blob plus the persona that last wrote it.

    Only the orchestrator writes; listeners get every mutation.
    """

    def __init__(self, on_update: NotepadListener | None = None) -> None:
        self._content = INITIAL_NOTEPAD_CONTENT
        self._last_writer: Persona | None = None
        self._on_update = on_update

    @property
    def content(self) -> str:
        return self._content

    @property
    def last_writer(self) -> Persona | None:
        return self._last_writer

    def apply(self, update: str | None, writer: Persona) -> bool:
        """Overwrite with `update` unless it is None. Returns True if written.

        An empty string is a real write and wipes the notepad.
        """
        if update is None:
            return False
        self._content = update
        self._last_writer = writer
        logger.debug("Notepad rewritten by %s (%d chars)", writer.display_name, len(update))
        if self._on_update:
            self._on_update(self._content, writer)
        return True

    def reset(self) -> None:
        self._content = INITIAL_NOTEPAD_CONTENT
        self._last_writer = None
        if self._on_update:
            self._on_update(self._content, None)
