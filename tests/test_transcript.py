"""Tests for dual_ai_chat/transcript.py."""

from dual_ai_chat.models import MessagePurpose, Speaker
from dual_ai_chat.transcript import Transcript, render_transcript


def _filled() -> Transcript:
    transcript = Transcript()
    transcript.append(Speaker.USER, MessagePurpose.USER_INPUT, "Question?")
    transcript.append(Speaker.COGNITO, MessagePurpose.OPENING, "Opening.")
    transcript.append(Speaker.SYSTEM, MessagePurpose.SYSTEM_NOTIFICATION, "Notice.")
    transcript.append(Speaker.MUSE, MessagePurpose.MUSE_TO_COGNITO, "Reply.")
    return transcript


def test_append_assigns_unique_ids_and_notifies():
    seen = []
    transcript = Transcript(on_append=seen.append)
    first = transcript.append(Speaker.USER, MessagePurpose.USER_INPUT, "a")
    second = transcript.append(Speaker.COGNITO, MessagePurpose.OPENING, "b", elapsed_ms=12.5)

    assert first.id != second.id
    assert second.elapsed_ms == 12.5
    assert seen == [first, second]
    assert len(transcript) == 2


def test_entries_is_a_copy():
    transcript = _filled()
    transcript.entries.clear()
    assert len(transcript) == 4


def test_last_spoken_skips_system_entries():
    transcript = _filled()
    transcript.append(Speaker.SYSTEM, MessagePurpose.SYSTEM_NOTIFICATION, "Later notice.")
    assert transcript.last_spoken().text == "Reply."


def test_last_spoken_on_empty_transcript():
    assert Transcript().last_spoken() is None


def test_clear():
    transcript = _filled()
    transcript.clear()
    assert len(transcript) == 0


def test_render_skips_system_entries():
    rendered = render_transcript(_filled().entries)
    assert rendered == "User: Question?\n\nCognito: Opening.\n\nMuse: Reply."


def test_render_with_budget_keeps_question_and_newest_turns():
    transcript = Transcript()
    transcript.append(Speaker.USER, MessagePurpose.USER_INPUT, "Question?")
    for i in range(5):
        transcript.append(Speaker.COGNITO, MessagePurpose.COGNITO_TO_MUSE, f"turn {i} " + "x" * 40)

    rendered = render_transcript(transcript.entries, max_chars=120)

    assert rendered.startswith("User: Question?")
    assert "turn 4" in rendered
    assert "turn 0" not in rendered
    assert "earlier turn(s) omitted" in rendered


def test_render_with_large_budget_keeps_everything():
    entries = _filled().entries
    assert render_transcript(entries, max_chars=10_000) == render_transcript(entries)


def test_render_with_budget_never_overshoots():
    transcript = Transcript()
    transcript.append(Speaker.USER, MessagePurpose.USER_INPUT, "Question?")
    for i in range(20):
        transcript.append(Speaker.COGNITO, MessagePurpose.COGNITO_TO_MUSE, f"turn {i:02d} ab")

    for max_chars in range(60, 420, 7):
        rendered = render_transcript(transcript.entries, max_chars=max_chars)
        assert len(rendered) <= max_chars, max_chars
        assert rendered.startswith("User: Question?")

    rendered = render_transcript(transcript.entries, max_chars=200)
    assert rendered.endswith("Cognito: turn 19 ab")
    assert "earlier turn(s) omitted" in rendered
