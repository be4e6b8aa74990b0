"""Events and states of the signing request lifecycle."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from xumm_relay.exceptions import XummRelayError
from xumm_relay.signing.models import SigningRequest, SigningResult


class OrchestratorState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_RESOLUTION = "awaiting_resolution"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"


class EventKind(str, Enum):
    SUBMITTING = "submitting"
    AWAITING_RESOLUTION = "awaiting_resolution"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_KINDS

    @property
    def state(self) -> OrchestratorState:
        """The state the orchestrator enters when emitting this event."""
        return OrchestratorState(self.value)


TERMINAL_KINDS = frozenset({EventKind.RESOLVED, EventKind.CANCELLED, EventKind.EXPIRED, EventKind.FAILED})


@dataclass(frozen=True)
class OrchestratorEvent:
    """One observable step of a submission.

    Attributes:
        kind: What happened.
        submission_id: Identifies the submission the event belongs to.
        payload: Kind-specific data: "request" (SigningRequest) for AWAITING_RESOLUTION,
            "result" (SigningResult) for terminal outcomes, "error" (XummRelayError) for
            FAILED and for the local timeout variant of EXPIRED.
    """

    kind: EventKind
    submission_id: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal

    @property
    def request(self) -> Optional[SigningRequest]:
        return self.payload.get("request")

    @property
    def result(self) -> Optional[SigningResult]:
        return self.payload.get("result")

    @property
    def error(self) -> Optional[XummRelayError]:
        return self.payload.get("error")

    @property
    def message(self) -> Optional[str]:
        """Human-readable description of a failure or degraded result."""
        if self.error is not None:
            return self.error.detail or str(self.error)
        if self.result is not None:
            return self.result.detail
        return None
