"""Split a raw model reply into spoken text, notepad replacement and stop signal."""

from dual_ai_chat.models import ParsedResponse
from dual_ai_chat.protocol import DISCUSSION_COMPLETE_TAG, NOTEPAD_UPDATE_END, NOTEPAD_UPDATE_START

_NO_TEXT_PLACEHOLDER = "(AI provided no additional text response)"


def _extract_notepad_block(text: str) -> tuple[str, str | None]:
    """Return (spoken_residue, notepad_update).

    The block counts only when the end marker closes the whole reply and
    follows the last start marker. Anything else is treated as plain speech.
    """
    start = text.rfind(NOTEPAD_UPDATE_START)
    end = text.rfind(NOTEPAD_UPDATE_END)
    if start == -1 or end == -1 or end <= start or not text.endswith(NOTEPAD_UPDATE_END):
        return text, None
    update = text[start + len(NOTEPAD_UPDATE_START):end].strip()
    return text[:start].strip(), update


def parse_response(raw: str) -> ParsedResponse:
    """Parse one model reply.

    Never raises. A reply that is nothing but directives gets a placeholder
    describing what the model did, so no turn is ever shown blank.
    """
    spoken, notepad_update = _extract_notepad_block(raw.strip())

    actions: list[str] = []
    if notepad_update is not None:
        if notepad_update:
            actions.append("updated the notepad")
        else:
            actions.append("attempted to update the notepad but the content was empty")

    discussion_complete = DISCUSSION_COMPLETE_TAG in spoken
    if discussion_complete:
        spoken = spoken.replace(DISCUSSION_COMPLETE_TAG, "").strip()
        actions.append("suggested ending the discussion")

    if not spoken:
        spoken = f"(AI {' and '.join(actions)})" if actions else _NO_TEXT_PLACEHOLDER

    return ParsedResponse(
        spoken_text=spoken.strip(),
        notepad_update=notepad_update,
        discussion_complete=discussion_complete,
    )
