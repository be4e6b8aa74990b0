import logging
from typing import Any, Dict

import httpx

from xumm_relay.core.credentials import Credentials
from xumm_relay.exceptions import UpstreamError
from xumm_relay.signing.models import ResolutionSnapshot, SigningRequest, SubmissionRequest
from xumm_relay.xumm.service import decode_json, parse_model

logger = logging.getLogger(__name__)


class XummClient:
    """Client for the Xumm platform payload API.

    The raw methods pass upstream bodies through unchanged (used by the relay);
    create_payload/get_payload parse them into models (used by the orchestrator).
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: str) -> None:
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    async def _send(self, method: str, path: str, credentials: Credentials, json: Any = None) -> httpx.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = credentials.as_headers()
        if json is not None:
            headers["Content-Type"] = "application/json"

        logger.info(f"Sending {method} request to {url} (key {credentials.key_identifier})")
        try:
            response = await self.http_client.request(method, url, headers=headers, json=json)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout error during {method} {url}: {e}")
            raise
        except httpx.ConnectError as e:
            logger.error(f"Connection error during {method} {url}: {e}")
            raise

        if response.is_error:
            logger.error(
                f"Xumm API error: {response.text}",
                extra={"status_code": response.status_code, "url": url},
            )
            raise UpstreamError(
                f"Xumm API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text,
            )
        logger.info(f"Received response with status {response.status_code} from {url}")
        return response

    async def create_payload_raw(self, body: Dict[str, Any], credentials: Credentials) -> Dict[str, Any]:
        response = await self._send("POST", "payload", credentials, json=body)
        return decode_json(response)

    async def get_payload_raw(self, request_id: str, credentials: Credentials) -> Dict[str, Any]:
        response = await self._send("GET", f"payload/{request_id}", credentials)
        return decode_json(response)

    async def create_payload(self, submission: SubmissionRequest, credentials: Credentials) -> SigningRequest:
        data = await self.create_payload_raw(submission.to_wire(), credentials)
        return parse_model(SigningRequest, data)

    async def get_payload(self, request_id: str, credentials: Credentials) -> ResolutionSnapshot:
        data = await self.get_payload_raw(request_id, credentials)
        return parse_model(ResolutionSnapshot, data)
