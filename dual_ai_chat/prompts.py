"""Fill the configured prompt templates for each kind of turn."""

from config.config_loader import PromptsConfig
from dual_ai_chat.models import EncodedAttachment, Persona, TranscriptEntry
from dual_ai_chat.protocol import marker_fields
from dual_ai_chat.transcript import render_transcript


class PromptBuilder:
    """Builds persona prompts from PromptsConfig.

    Marker placeholders are always filled from `protocol`, so the directives
    the models are asked to write match what the parser looks for.
    """

    def __init__(self, prompts: PromptsConfig, max_transcript_chars: int = 0) -> None:
        self._prompts = prompts
        self._max_transcript_chars = max_transcript_chars

    def preamble(self, persona: Persona) -> str:
        return self._prompts.personas.get(persona.name.lower(), "")

    def notepad_instruction(self, notepad_content: str) -> str:
        return self._prompts.notepad_instruction.format(
            notepad_content=notepad_content, **marker_fields()
        )

    def discussion_instruction(self, agreement_enabled: bool) -> str:
        if not agreement_enabled:
            return ""
        return self._prompts.discussion_instruction.format(**marker_fields())

    def _attachment_instruction(self, attachment: EncodedAttachment | None) -> str:
        if attachment is None:
            return ""
        return self._prompts.attachment_instruction.format(filename=attachment.filename)

    def opening(
        self,
        query: str,
        notepad_content: str,
        agreement_enabled: bool,
        attachment: EncodedAttachment | None = None,
    ) -> str:
        return self._prompts.opening.format(
            query=query,
            attachment_instruction=self._attachment_instruction(attachment),
            notepad_instruction=self.notepad_instruction(notepad_content),
            discussion_instruction=self.discussion_instruction(agreement_enabled),
        )

    def reply(
        self,
        persona: Persona,
        query: str,
        entries: list[TranscriptEntry],
        last: TranscriptEntry,
        notepad_content: str,
        agreement_enabled: bool,
        attachment: EncodedAttachment | None = None,
    ) -> str:
        """Prompt for `persona` answering `last`, with the whole transcript as context."""
        template = self._prompts.muse_reply if persona is Persona.MUSE else self._prompts.cognito_reply
        return template.format(
            query=query,
            attachment_instruction=self._attachment_instruction(attachment),
            transcript=render_transcript(entries, self._max_transcript_chars),
            last_speaker=last.speaker.value,
            last_message=last.text,
            notepad_instruction=self.notepad_instruction(notepad_content),
            discussion_instruction=self.discussion_instruction(agreement_enabled),
        )

    def final(
        self,
        query: str,
        entries: list[TranscriptEntry],
        notepad_content: str,
        attachment: EncodedAttachment | None = None,
    ) -> str:
        return self._prompts.final.format(
            query=query,
            attachment_instruction=self._attachment_instruction(attachment),
            transcript=render_transcript(entries, self._max_transcript_chars),
            notepad_instruction=self.notepad_instruction(notepad_content),
        )
