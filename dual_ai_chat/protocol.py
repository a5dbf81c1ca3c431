"""Literal markers exchanged with the models.

The prompt builder tells the personas to emit these strings and the parser
scans for them. Both import from here and nowhere else.
"""

NOTEPAD_UPDATE_START = "<notepad_update>"
NOTEPAD_UPDATE_END = "</notepad_update>"
DISCUSSION_COMPLETE_TAG = "<discussion_complete />"

INITIAL_NOTEPAD_CONTENT = """This is a shared notepad.
Cognito and Muse can collaborate here to record ideas, drafts, or key points.

Usage Guide:
- AI models can update this notepad by including specific instructions in their responses.
- The notepad content will be included in subsequent prompts sent to the AI.

Initial state: blank."""


def marker_fields() -> dict[str, str]:
    """Format fields for prompt templates that mention the markers."""
    return {
        "update_start": NOTEPAD_UPDATE_START,
        "update_end": NOTEPAD_UPDATE_END,
        "stop_tag": DISCUSSION_COMPLETE_TAG,
    }
