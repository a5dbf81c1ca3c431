"""Tests for dual_ai_chat/prompts.py against the bundled templates."""

import pytest

from config.config_loader import load_config
from dual_ai_chat.models import EncodedAttachment, MessagePurpose, Persona, Speaker
from dual_ai_chat.parser import parse_response
from dual_ai_chat.prompts import PromptBuilder
from dual_ai_chat.protocol import DISCUSSION_COMPLETE_TAG, NOTEPAD_UPDATE_END, NOTEPAD_UPDATE_START
from dual_ai_chat.transcript import Transcript


@pytest.fixture
def builder() -> PromptBuilder:
    return PromptBuilder(load_config().prompts)


@pytest.fixture
def transcript() -> Transcript:
    transcript = Transcript()
    transcript.append(Speaker.USER, MessagePurpose.USER_INPUT, "Is a hot dog a sandwich?")
    transcript.append(Speaker.COGNITO, MessagePurpose.OPENING, "By the bread test, yes.")
    return transcript


def test_opening_tells_the_model_the_exact_markers(builder):
    prompt = builder.opening("Is a hot dog a sandwich?", "old notes", agreement_enabled=True)

    assert "Is a hot dog a sandwich?" in prompt
    assert "old notes" in prompt
    assert NOTEPAD_UPDATE_START in prompt
    assert NOTEPAD_UPDATE_END in prompt
    assert DISCUSSION_COMPLETE_TAG in prompt


def test_markers_in_prompt_are_understood_by_parser(builder):
    prompt = builder.opening("Question?", "", agreement_enabled=True)
    assert NOTEPAD_UPDATE_START in prompt and DISCUSSION_COMPLETE_TAG in prompt

    # A model that follows the prompt literally:
    reply = f"My analysis. {DISCUSSION_COMPLETE_TAG}\n{NOTEPAD_UPDATE_START}\n- point\n{NOTEPAD_UPDATE_END}"
    parsed = parse_response(reply)

    assert parsed.spoken_text == "My analysis."
    assert parsed.notepad_update == "- point"
    assert parsed.discussion_complete is True


def test_stop_instruction_only_in_agreement_mode(builder):
    assert DISCUSSION_COMPLETE_TAG not in builder.opening("Q?", "", agreement_enabled=False)
    assert builder.discussion_instruction(False) == ""
    assert DISCUSSION_COMPLETE_TAG in builder.discussion_instruction(True)


def test_reply_quotes_last_speaker(builder, transcript):
    last = transcript.last_spoken()
    prompt = builder.reply(
        Persona.MUSE, "Is a hot dog a sandwich?", transcript.entries, last, "notes", agreement_enabled=False
    )

    assert 'Cognito just said: "By the bread test, yes."' in prompt
    assert "User: Is a hot dog a sandwich?" in prompt
    assert "Challenge weak points" in prompt


def test_cognito_reply_uses_its_own_template(builder, transcript):
    transcript.append(Speaker.MUSE, MessagePurpose.MUSE_TO_COGNITO, "But is cereal soup?")
    prompt = builder.reply(
        Persona.COGNITO, "Q", transcript.entries, transcript.last_spoken(), "", agreement_enabled=False
    )
    assert 'Muse just said: "But is cereal soup?"' in prompt
    assert "Evaluate their ideas critically" in prompt


def test_final_has_no_stop_instruction(builder, transcript):
    prompt = builder.final("Is a hot dog a sandwich?", transcript.entries, "notes")
    assert DISCUSSION_COMPLETE_TAG not in prompt
    assert "Address the user directly" in prompt
    assert "notes" in prompt


def test_attachment_instruction_names_the_file(builder):
    attachment = EncodedAttachment("image/png", "cat.png", "AAAA", "data:image/png;base64,AAAA")
    prompt = builder.opening("What is this?", "", agreement_enabled=False, attachment=attachment)
    assert "cat.png" in prompt
    assert "cat.png" not in builder.opening("What is this?", "", agreement_enabled=False)


def test_preambles_per_persona(builder):
    assert builder.preamble(Persona.COGNITO).startswith("You are Cognito")
    assert builder.preamble(Persona.MUSE).startswith("You are Muse")


def test_braces_in_user_text_are_not_templates(builder, transcript):
    transcript.append(Speaker.MUSE, MessagePurpose.MUSE_TO_COGNITO, "In Python: {'a': 1}")
    prompt = builder.reply(
        Persona.COGNITO, "What is {x}?", transcript.entries, transcript.last_spoken(), "{notes}", False
    )
    assert "What is {x}?" in prompt
    assert "{'a': 1}" in prompt
