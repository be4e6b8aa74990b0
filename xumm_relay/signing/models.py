from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# A transaction document is an open-ended JSON object, e.g. {"TransactionType": "Payment", ...}
TransactionDocument = Dict[str, Any]

TRANSACTION_TYPE_FIELD = "TransactionType"


class SigningOptions(BaseModel):
    """Options sent alongside the transaction document. Frozen once created."""

    model_config = ConfigDict(frozen=True)

    submit: bool = Field(default=True, description="Let the platform submit the transaction once signed.")
    expire: int = Field(default=5, ge=1, le=1440, description="Lifetime of the signing request in minutes.")
    multisign: bool = Field(default=False)


class SubmissionRequest(BaseModel):
    """Body sent to the payload creation service."""

    model_config = ConfigDict(frozen=True)

    txjson: TransactionDocument = Field()
    options: SigningOptions = Field(default_factory=SigningOptions)

    @property
    def transaction_type(self) -> str:
        return str(self.txjson[TRANSACTION_TYPE_FIELD])

    def to_wire(self) -> Dict[str, Any]:
        return {"txjson": self.txjson, "options": self.options.model_dump()}


class NextLinks(BaseModel):
    model_config = ConfigDict(extra="ignore")

    always: str = Field()
    no_push_msg_received: Optional[str] = Field(default=None)


class Refs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    qr_png: Optional[str] = Field(default=None)
    qr_matrix: Optional[str] = Field(default=None)
    qr_uri_quality_opts: List[str] = Field(default_factory=list)
    websocket_status: Optional[str] = Field(default=None)


class SigningRequest(BaseModel):
    """A pending signing request as returned by the payload creation service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    uuid: str = Field()
    next: NextLinks = Field()
    refs: Refs = Field(default_factory=Refs)
    pushed: bool = Field(default=False)

    @property
    def request_id(self) -> str:
        return self.uuid

    @property
    def resolution_handle(self) -> str:
        """The link the user follows to act on the request."""
        return self.next.always

    @property
    def fallback_handle(self) -> Optional[str]:
        return self.next.no_push_msg_received


class SnapshotMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uuid: Optional[str] = Field(default=None)
    exists: bool = Field(default=False)
    resolved: bool = Field(default=False)
    signed: bool = Field(default=False)
    cancelled: bool = Field(default=False)
    expired: bool = Field(default=False)


class SnapshotPayload(BaseModel):
    """Transaction metadata carried by every snapshot."""

    model_config = ConfigDict(extra="ignore")

    tx_type: Optional[str] = Field(default=None)
    tx_destination: Optional[str] = Field(default=None)
    tx_destination_tag: Optional[int] = Field(default=None)
    request_json: Optional[Dict[str, Any]] = Field(default=None)
    created_at: Optional[str] = Field(default=None)
    expires_at: Optional[str] = Field(default=None)


class SnapshotResponse(BaseModel):
    """Details present only once a request was signed."""

    model_config = ConfigDict(extra="ignore")

    hex: Optional[str] = Field(default=None)
    txid: Optional[str] = Field(default=None)
    resolved_at: Optional[str] = Field(default=None)
    dispatched_to: Optional[str] = Field(default=None)
    dispatched_result: Optional[str] = Field(default=None)
    multisign_account: Optional[str] = Field(default=None)
    account: Optional[str] = Field(default=None)


class ResolutionSnapshot(BaseModel):
    """One point-in-time read from the payload status service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    meta: SnapshotMeta = Field(default_factory=SnapshotMeta)
    payload: SnapshotPayload = Field(default_factory=SnapshotPayload)
    response: Optional[SnapshotResponse] = Field(default=None)

    @property
    def is_terminal(self) -> bool:
        return self.meta.resolved or self.meta.cancelled or self.meta.expired


class Outcome(str, Enum):
    """Classification of a snapshot."""

    PENDING = "pending"
    SIGNED = "signed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class SigningResult(BaseModel):
    """The caller-visible result of a resolved signing request."""

    outcome: Outcome = Field()
    txid: Optional[str] = Field(default=None)
    account: Optional[str] = Field(default=None)
    dispatched_result: Optional[str] = Field(default=None)
    resolved_at: Optional[str] = Field(default=None)
    tx_type: Optional[str] = Field(default=None)
    tx_destination: Optional[str] = Field(default=None)
    created_at: Optional[str] = Field(default=None)
    timeout: bool = Field(default=False, description="True when the local poll ceiling ended the request.")
    degraded: bool = Field(default=False, description="True when expected response fields were missing.")
    detail: Optional[str] = Field(default=None)
