"""Two-persona agreement tracking for AI-driven discussions."""

from dataclasses import dataclass
from enum import Enum

from dual_ai_chat.models import Persona


class ConsensusStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    REACHED = "reached"


@dataclass(frozen=True)
class ConsensusState:
    """Agreement so far. `pending_from` is set only while PENDING."""

    status: ConsensusStatus = ConsensusStatus.NONE
    pending_from: Persona | None = None

    @property
    def reached(self) -> bool:
        return self.status is ConsensusStatus.REACHED

    def after_turn(self, persona: Persona, stop_signaled: bool) -> "ConsensusState":
        """Next state after `persona` spoke.

        The discussion ends only when two consecutive turns, one from each
        persona, both signal stop. A turn without the signal resets agreement.
        """
        if self.reached:
            return self
        if not stop_signaled:
            return ConsensusState()
        if self.status is ConsensusStatus.PENDING and self.pending_from is persona.other:
            return ConsensusState(ConsensusStatus.REACHED)
        return ConsensusState(ConsensusStatus.PENDING, persona)


NO_CONSENSUS = ConsensusState()
