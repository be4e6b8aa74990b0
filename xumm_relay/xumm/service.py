from typing import Any, Dict, Protocol, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from xumm_relay.core.credentials import Credentials
from xumm_relay.exceptions import UpstreamError
from xumm_relay.signing.models import ResolutionSnapshot, SigningRequest, SubmissionRequest

ModelT = TypeVar("ModelT", bound=BaseModel)


class PayloadService(Protocol):
    """The payload creation and payload status services, as the orchestrator sees them."""

    async def create_payload(self, submission: SubmissionRequest, credentials: Credentials) -> SigningRequest: ...

    async def get_payload(self, request_id: str, credentials: Credentials) -> ResolutionSnapshot: ...


def decode_json(response: httpx.Response) -> Dict[str, Any]:
    """Decode a successful JSON object body, or raise UpstreamError."""
    try:
        data = response.json()
    except ValueError:
        raise UpstreamError(
            "Payload service returned a non-JSON body", status_code=response.status_code, body=response.text
        )
    if not isinstance(data, dict):
        raise UpstreamError("Payload service returned an unexpected body", status_code=response.status_code)
    return data


def parse_model(model: Type[ModelT], data: Dict[str, Any], status_code: int | None = None) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise UpstreamError(
            f"Payload service returned an unexpected {model.__name__}: {e.error_count()} invalid field(s)",
            status_code=status_code,
        )
