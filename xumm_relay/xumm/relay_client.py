import logging

import httpx

from xumm_relay.core.credentials import Credentials
from xumm_relay.exceptions import UpstreamError
from xumm_relay.signing.models import ResolutionSnapshot, SigningRequest, SubmissionRequest
from xumm_relay.xumm.service import decode_json, parse_model

logger = logging.getLogger(__name__)

CREATE_PAYLOAD_PATH = "/api/xumm/create-payload"
GET_PAYLOAD_PATH = "/api/xumm/get-payload/{uuid}"


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return fallback


class RelayPayloadService:
    """Reaches the payload services through the local relay endpoints."""

    def __init__(self, http_client: httpx.AsyncClient, relay_url: str) -> None:
        self.http_client = http_client
        self.relay_url = relay_url.rstrip("/")

    async def create_payload(self, submission: SubmissionRequest, credentials: Credentials) -> SigningRequest:
        body = {**submission.to_wire(), "apiKey": credentials.api_key, "apiSecret": credentials.api_secret}
        response = await self.http_client.post(f"{self.relay_url}{CREATE_PAYLOAD_PATH}", json=body)
        if response.is_error:
            message = _error_message(response, "Failed to create Xumm payload")
            raise UpstreamError(message, status_code=response.status_code, body=response.text)
        return parse_model(SigningRequest, decode_json(response), response.status_code)

    async def get_payload(self, request_id: str, credentials: Credentials) -> ResolutionSnapshot:
        url = f"{self.relay_url}{GET_PAYLOAD_PATH.format(uuid=request_id)}"
        response = await self.http_client.get(url, headers=credentials.as_headers())
        if response.is_error:
            message = _error_message(response, "Failed to get payload status")
            raise UpstreamError(message, status_code=response.status_code, body=response.text)
        logger.debug(f"Fetched status for {request_id} through relay")
        return parse_model(ResolutionSnapshot, decode_json(response), response.status_code)
