"""Append-only discussion transcript and its rendering for prompts."""

import logging
import uuid
from collections.abc import Callable, Iterator
from datetime import datetime

from dual_ai_chat.models import AttachmentEcho, MessagePurpose, Speaker, TranscriptEntry

logger = logging.getLogger(__name__)

MessageListener = Callable[[TranscriptEntry], None]


class Transcript:
    """Ordered record of one conversation. Only the orchestrator appends."""

    def __init__(self, on_append: MessageListener | None = None) -> None:
        self._entries: list[TranscriptEntry] = []
        self._on_append = on_append

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> list[TranscriptEntry]:
        return list(self._entries)

    def append(
        self,
        speaker: Speaker,
        purpose: MessagePurpose,
        text: str,
        elapsed_ms: float | None = None,
        attachment: AttachmentEcho | None = None,
    ) -> TranscriptEntry:
        entry = TranscriptEntry(
            id=uuid.uuid4().hex,
            speaker=speaker,
            purpose=purpose,
            text=text,
            timestamp=datetime.now(),
            elapsed_ms=elapsed_ms,
            attachment=attachment,
        )
        self._entries.append(entry)
        logger.debug("Transcript += %s/%s (%d chars)", speaker.value, purpose.value, len(text))
        if self._on_append:
            self._on_append(entry)
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def last_spoken(self) -> TranscriptEntry | None:
        """Most recent entry that is not a system notification."""
        for entry in reversed(self._entries):
            if entry.speaker is not Speaker.SYSTEM:
                return entry
        return None


_SEPARATOR = "\n\n"


def _omitted_marker(count: int) -> str:
    return f"[... {count} earlier turn(s) omitted ...]"


def _line(entry: TranscriptEntry) -> str:
    return f"{entry.speaker.value}: {entry.text}"


def render_transcript(entries: list[TranscriptEntry], max_chars: int = 0) -> str:
    """Render the spoken turns as `Speaker: text` lines.

    System notifications are skipped. With `max_chars` > 0 the first user
    turn is always kept and the remaining budget goes to the newest turns.
    The result fits in `max_chars` unless the first turn alone does not.
    """
    lines = [_line(e) for e in entries if e.speaker is not Speaker.SYSTEM]
    rendered = _SEPARATOR.join(lines)
    if max_chars <= 0 or len(rendered) <= max_chars:
        return rendered

    head, rest = lines[0], lines[1:]
    # Room for the widest possible omission marker and its separator.
    budget = max_chars - len(head) - len(_SEPARATOR) - len(_omitted_marker(len(rest)))
    tail: list[str] = []
    for line in reversed(rest):
        cost = len(_SEPARATOR) + len(line)
        if cost > budget:
            break
        tail.append(line)
        budget -= cost
    tail.reverse()

    return _SEPARATOR.join([head, _omitted_marker(len(rest) - len(tail)), *tail])
