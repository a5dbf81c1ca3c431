"""Turn sequencing for the Cognito/Muse discussion.

One run per user message:

    user turn -> Cognito opening -> (Muse reply -> Cognito reply) x pairs
              -> Cognito final answer

Model calls are strictly sequential. Cancellation is polled after every
call, and a cancelled run commits nothing further to the transcript or
the notepad.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from config.config_loader import DefaultsConfig, PromptsConfig
from dual_ai_chat.attachments import AttachmentError, echo, encode_attachment
from dual_ai_chat.cancellation import CancellationToken
from dual_ai_chat.consensus import NO_CONSENSUS, ConsensusState
from dual_ai_chat.gateway import ModelGateway, is_credentials_error
from dual_ai_chat.models import (
    Attachment,
    DiscussionMode,
    EncodedAttachment,
    MessagePurpose,
    Persona,
    RunSettings,
    RunState,
    Speaker,
    TranscriptEntry,
)
from dual_ai_chat.notepad import Notepad, NotepadListener
from dual_ai_chat.parser import parse_response
from dual_ai_chat.prompts import PromptBuilder
from dual_ai_chat.transcript import MessageListener, Transcript

logger = logging.getLogger(__name__)

NoticeListener = Callable[[str], None]

_ATTACHMENT_ONLY_QUERY = "(no text, see the attached image)"


class DiscussionError(Exception):
    """A model call failed; the rest of the run is abandoned."""

    def __init__(self, message: str, credentials: bool = False) -> None:
        self.credentials = credentials
        super().__init__(message)


class DiscussionCancelled(Exception):
    """The run's cancellation token was set. Not an error."""


@dataclass
class ConversationRun:
    settings: RunSettings
    query: str
    token: CancellationToken = field(default_factory=CancellationToken)
    started_at: float | None = None
    elapsed_ms: float = 0.0
    consensus: ConsensusState = NO_CONSENSUS
    turn_index: int = 0
    model_calls: int = 0
    attachment: EncodedAttachment | None = None

    @property
    def agreement_driven(self) -> bool:
        return self.settings.mode is DiscussionMode.AI_DRIVEN


class DiscussionOrchestrator:
    """Owns the transcript, the notepad and at most one in-flight run.

    Settings changed through the setters apply from the next run; a run
    works from the RunSettings snapshot taken when it started.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        prompts: PromptsConfig,
        defaults: DefaultsConfig,
        on_message: MessageListener | None = None,
        on_notepad_update: NotepadListener | None = None,
        on_notice: NoticeListener | None = None,
    ) -> None:
        self._gateway = gateway
        self._prompts = PromptBuilder(prompts, defaults.max_transcript_chars)
        self._defaults = defaults
        self._on_notice = on_notice
        self.transcript = Transcript(on_append=on_message)
        self.notepad = Notepad(on_update=on_notepad_update)

        self._mode = DiscussionMode(defaults.mode)
        self._fixed_turns = self._clamp_turns(defaults.fixed_turns)
        self._model_id = defaults.model
        self._thinking_budget = defaults.thinking_budget

        self._run: ConversationRun | None = None
        self._state = RunState.IDLE
        self._last_elapsed_ms = 0.0
        self._credentials_missing = not gateway.has_credentials(self._model_id)

    # ---------------------------------------------------------------- views

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._run is not None

    @property
    def credentials_missing(self) -> bool:
        return self._credentials_missing

    @property
    def settings(self) -> RunSettings:
        return RunSettings(
            mode=self._mode,
            fixed_turns=self._fixed_turns,
            model_id=self._model_id,
            thinking_budget_enabled=self._thinking_budget,
        )

    @property
    def elapsed_ms(self) -> float:
        run = self._run
        if run is not None and run.started_at is not None:
            return (time.monotonic() - run.started_at) * 1000
        return self._last_elapsed_ms

    def welcome_text(self) -> str:
        if self._mode is DiscussionMode.FIXED_TURNS:
            mode_description = f"fixed turns conversation ({self._fixed_turns} turns)"
        else:
            mode_description = "AI driven conversation"
        return (
            f"Welcome to Dual AI Chat! Current mode: {mode_description}. "
            f"Ask a question or attach an image. {Persona.COGNITO.display_name} and "
            f"{Persona.MUSE.display_name} will discuss it, and they might use the shared notepad. "
            f"Then {Persona.COGNITO.display_name} will reply to you. "
            f"Current model: {self._gateway.display_name(self._model_id)}"
        )

    # -------------------------------------------------------------- setters

    def _clamp_turns(self, turns: int) -> int:
        return max(self._defaults.min_fixed_turns, min(self._defaults.max_fixed_turns, turns))

    def set_mode(self, mode: DiscussionMode | str) -> None:
        self._mode = DiscussionMode(mode)

    def set_fixed_turns(self, turns: int) -> int:
        """Clamp and store the turn count. Returns the value actually applied."""
        self._fixed_turns = self._clamp_turns(turns)
        return self._fixed_turns

    def set_model(self, model_id: str) -> None:
        if self._gateway.model_config(model_id) is None:
            raise ValueError(f"Unknown model: {model_id}")
        self._model_id = model_id
        if not self.refresh_credentials():
            self._notify(self._credentials_warning())

    def set_thinking_budget(self, enabled: bool) -> bool:
        """Returns False, leaving the setting alone, if the model has no thinking budget."""
        if not self._gateway.supports_thinking_budget(self._model_id):
            return False
        self._thinking_budget = enabled
        return True

    def refresh_credentials(self) -> bool:
        """Re-check the current model's API key. Returns True when it is usable."""
        self._credentials_missing = not self._gateway.has_credentials(self._model_id)
        return not self._credentials_missing

    # ------------------------------------------------------------- controls

    def cancel(self) -> None:
        """Ask the active run to stop after its in-flight call returns."""
        if self._run is not None:
            logger.info("Cancellation requested")
            self._run.token.cancel()

    def clear_conversation(self) -> None:
        """Abandon any active run and reset transcript and notepad."""
        run = self._run
        if run is not None:
            run.token.cancel()
            self._run = None
            logger.info("Conversation cleared; abandoning the running discussion")
        self._state = RunState.IDLE
        self._last_elapsed_ms = 0.0
        self.transcript.clear()
        self.notepad.reset()
        self._notify(self._credentials_warning() if self._credentials_missing else self.welcome_text())

    def _credentials_warning(self) -> str:
        cfg = self._gateway.model_config(self._model_id)
        env = cfg.api_key_env if cfg else "API key"
        return (
            f"Critical Warning: {env} is not configured. Please ensure the {env} "
            "environment variable is set for the application to function properly."
        )

    def _notify(self, text: str) -> None:
        if self._on_notice:
            self._on_notice(text)

    # ------------------------------------------------------------------ run

    async def send_message(
        self, text: str, attachment: Attachment | None = None
    ) -> TranscriptEntry | None:
        """Run one full discussion. Returns Cognito's final answer entry.

        Returns None without doing anything when a run is already active,
        the input is empty, or credentials are missing. Returns None after
        an aborted or cancelled run; failures are reported in the transcript.
        """
        query = (text or "").strip()
        if self._run is not None:
            logger.info("Ignoring message: a discussion is already running")
            return None
        if not query and attachment is None:
            return None
        if self._credentials_missing:
            logger.warning("Ignoring message: API key for %s is missing", self._model_id)
            return None

        run = ConversationRun(
            settings=self.settings,
            query=query or _ATTACHMENT_ONLY_QUERY,
            started_at=time.monotonic(),
        )
        self._run = run
        logger.info(
            "Discussion started: mode=%s turns=%d model=%s",
            run.settings.mode.value,
            run.settings.fixed_turns,
            run.settings.model_id,
        )

        try:
            return await self._discuss(run, attachment)
        except DiscussionCancelled:
            self._set_state(run, RunState.ABORTED)
            logger.info("Discussion cancelled after %d model call(s)", run.model_calls)
        except DiscussionError as exc:
            if exc.credentials:
                self._credentials_missing = True
            self._abort(run, f"Error: {exc}")
        except AttachmentError as exc:
            self._abort(run, f"Error: could not process the attachment: {exc}")
        except Exception as exc:
            logger.exception("Discussion failed unexpectedly")
            self._abort(run, f"Error: {exc}")
        finally:
            if run.started_at is not None:
                run.elapsed_ms = (time.monotonic() - run.started_at) * 1000
            run.started_at = None
            run.attachment = None
            if self._run is run:
                self._run = None
                self._last_elapsed_ms = run.elapsed_ms
            logger.info("Discussion finished in %.2fs, %d model call(s)", run.elapsed_ms / 1000, run.model_calls)
        return None

    def _abort(self, run: ConversationRun, message: str) -> None:
        self._set_state(run, RunState.ABORTED)
        if run.token.cancelled:
            return
        logger.warning("Discussion aborted: %s", message)
        self.transcript.append(Speaker.SYSTEM, MessagePurpose.SYSTEM_NOTIFICATION, message)

    def _set_state(self, run: ConversationRun, state: RunState) -> None:
        if self._run is run:
            self._state = state

    def _system_notice(self, text: str) -> None:
        self.transcript.append(Speaker.SYSTEM, MessagePurpose.SYSTEM_NOTIFICATION, text)

    async def _discuss(
        self, run: ConversationRun, attachment: Attachment | None
    ) -> TranscriptEntry:
        if attachment is not None:
            run.attachment = encode_attachment(attachment)
        self.transcript.append(
            Speaker.USER,
            MessagePurpose.USER_INPUT,
            run.query,
            attachment=echo(run.attachment) if run.attachment else None,
        )

        agreement = run.agreement_driven
        opening_prompt = self._prompts.opening(
            run.query, self.notepad.content, agreement, run.attachment
        )
        await self._take_turn(run, Persona.COGNITO, opening_prompt, MessagePurpose.OPENING)

        pairs = self._defaults.ai_driven_max_turns if agreement else run.settings.fixed_turns
        for pair in range(pairs):
            run.turn_index = pair + 1
            await self._reply(run, Persona.MUSE)
            if run.consensus.reached:
                break
            if not agreement and pair == pairs - 1:
                break
            await self._reply(run, Persona.COGNITO)
            if run.consensus.reached:
                break

        if run.consensus.reached:
            logger.info("Consensus reached after exchange pair %d", run.turn_index)
            self._system_notice(
                f"Both AIs ({Persona.COGNITO.display_name} and {Persona.MUSE.display_name}) "
                "have agreed to end the discussion."
            )
        elif agreement:
            self._system_notice(
                "Maximum discussion turns reached in AI-driven mode. "
                f"{Persona.COGNITO.display_name} will prepare the final response."
            )

        final_prompt = self._prompts.final(
            run.query, self.transcript.entries, self.notepad.content, run.attachment
        )
        final = await self._take_turn(
            run,
            Persona.COGNITO,
            final_prompt,
            MessagePurpose.FINAL_RESPONSE,
            state=RunState.AWAITING_FINAL_SYNTHESIS,
        )
        self._set_state(run, RunState.IDLE)
        return final

    async def _reply(self, run: ConversationRun, persona: Persona) -> TranscriptEntry:
        last = self.transcript.last_spoken()
        if last is None:
            raise RuntimeError("Reply requested on an empty transcript")
        prompt = self._prompts.reply(
            persona,
            run.query,
            self.transcript.entries,
            last,
            self.notepad.content,
            run.agreement_driven,
            run.attachment,
        )
        purpose = MessagePurpose.MUSE_TO_COGNITO if persona is Persona.MUSE else MessagePurpose.COGNITO_TO_MUSE
        return await self._take_turn(run, persona, prompt, purpose)

    def _check_cancelled(self, run: ConversationRun) -> None:
        if run.token.cancelled:
            raise DiscussionCancelled()

    async def _take_turn(
        self,
        run: ConversationRun,
        persona: Persona,
        prompt: str,
        purpose: MessagePurpose,
        state: RunState | None = None,
    ) -> TranscriptEntry:
        """Call the model as `persona`, then commit notepad and transcript.

        Nothing is committed if the run was cancelled while the call was in
        flight.
        """
        if state is None:
            state = RunState.AWAITING_COGNITO if persona is Persona.COGNITO else RunState.AWAITING_MUSE
        self._check_cancelled(run)
        self._set_state(run, state)

        logger.debug("%s turn (%s), prompt %d chars", persona.display_name, purpose.value, len(prompt))
        response = await self._gateway.generate(
            prompt,
            run.settings.model_id,
            system_preamble=self._prompts.preamble(persona),
            suppress_extended_reasoning=not run.settings.thinking_budget_enabled,
            attachment=run.attachment,
        )
        run.model_calls += 1
        self._check_cancelled(run)

        if response.error:
            raise DiscussionError(response.text, credentials=is_credentials_error(response.error))

        parsed = parse_response(response.text)
        self.notepad.apply(parsed.notepad_update, persona)
        entry = self.transcript.append(
            Speaker(persona.value), purpose, parsed.spoken_text, elapsed_ms=response.elapsed_ms
        )
        if run.agreement_driven and purpose is not MessagePurpose.FINAL_RESPONSE:
            run.consensus = run.consensus.after_turn(persona, parsed.discussion_complete)
            logger.debug("Consensus after %s: %s", persona.display_name, run.consensus.status.value)
        return entry
