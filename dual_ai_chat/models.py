"""Pure dataclasses and enums for the dual-persona discussion. No logic, no deps."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Persona(str, Enum):
    COGNITO = "Cognito"    # logical
    MUSE = "Muse"          # creative

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def other(self) -> "Persona":
        return Persona.MUSE if self is Persona.COGNITO else Persona.COGNITO


class Speaker(str, Enum):
    USER = "User"
    COGNITO = "Cognito"
    MUSE = "Muse"
    SYSTEM = "System"


class MessagePurpose(str, Enum):
    USER_INPUT = "user-input"
    SYSTEM_NOTIFICATION = "system-notification"
    OPENING = "opening"
    COGNITO_TO_MUSE = "cognito-to-muse"
    MUSE_TO_COGNITO = "muse-to-cognito"
    FINAL_RESPONSE = "final"


class DiscussionMode(str, Enum):
    FIXED_TURNS = "fixed"
    AI_DRIVEN = "ai-driven"


class RunState(str, Enum):
    IDLE = "idle"
    AWAITING_COGNITO = "awaiting-cognito"
    AWAITING_MUSE = "awaiting-muse"
    AWAITING_FINAL_SYNTHESIS = "awaiting-final-synthesis"
    ABORTED = "aborted"


@dataclass
class Attachment:
    data: bytes
    mime_type: str
    filename: str


@dataclass
class EncodedAttachment:
    mime_type: str
    filename: str
    base64_data: str
    data_url: str
    data: bytes = field(repr=False, default=b"")


@dataclass
class AttachmentEcho:
    filename: str
    mime_type: str
    data_url: str


@dataclass
class TranscriptEntry:
    id: str
    speaker: Speaker
    purpose: MessagePurpose
    text: str
    timestamp: datetime
    elapsed_ms: float | None = None
    attachment: AttachmentEcho | None = None


@dataclass
class ParsedResponse:
    spoken_text: str
    notepad_update: str | None      # "" is a deliberate wipe, None is no change
    discussion_complete: bool = False


@dataclass
class ModelResponse:
    provider: str          # "gemini", "grok", "openai"
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None


@dataclass
class GatewayResponse:
    text: str
    elapsed_ms: float
    error: str | None = None


@dataclass(frozen=True)
class RunSettings:
    mode: DiscussionMode
    fixed_turns: int
    model_id: str
    thinking_budget_enabled: bool
