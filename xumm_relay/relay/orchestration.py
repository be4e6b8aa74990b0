"""Forwarding flow behind the relay endpoints.

Credentials are taken from the incoming request (falling back to the ones
configured on the relay host) and sent upstream as headers. Upstream bodies and
error statuses are passed through.
"""

import json
import logging
from typing import Any, Dict, Mapping

from fastapi import status
from fastapi.responses import JSONResponse

from xumm_relay.core.credentials import Credentials
from xumm_relay.core.dependency_container import DependencyContainer
from xumm_relay.core.logging import create_error_response
from xumm_relay.exceptions import CredentialError, UpstreamError

logger = logging.getLogger(__name__)

CREATE_CREDENTIALS_MESSAGE = "XUMM API credentials are required. Please provide both apiKey and apiSecret."
GET_CREDENTIALS_MESSAGE = "XUMM API credentials are required"


def resolve_credentials(
    api_key: Any, api_secret: Any, dependencies: DependencyContainer, message: str
) -> Credentials:
    """Use the caller's credentials, or the relay's own when the caller sent none.

    Values that are not strings count as missing.
    """
    api_key = api_key if isinstance(api_key, str) else None
    api_secret = api_secret if isinstance(api_secret, str) else None
    credentials = Credentials(api_key=api_key or "", api_secret=api_secret or "")
    if credentials.is_complete:
        return credentials
    if not api_key and not api_secret:
        server_credentials = dependencies.server_credentials()
        if server_credentials.is_complete:
            logger.debug("Using relay-configured credentials")
            return server_credentials
    raise CredentialError(message)


def _upstream_error_response(e: UpstreamError, dependencies: DependencyContainer) -> JSONResponse:
    content = create_error_response(
        e.detail or "Xumm API error",
        details={"upstream_body": e.body},
        include_debug_info=dependencies.settings.dev_mode(),
    )
    # Upstream bodies that fail to decode arrive with a 2xx status
    status_code = e.status_code if e.status_code and e.status_code >= 400 else status.HTTP_502_BAD_GATEWAY
    return JSONResponse(status_code=status_code, content=content)


async def relay_create_payload(body: bytes, dependencies: DependencyContainer) -> JSONResponse:
    """Forward a payload creation request. The body carries apiKey/apiSecret next to the payload."""
    try:
        try:
            data = json.loads(body) if body else None
        except (json.JSONDecodeError, UnicodeDecodeError):
            data = None
        if not isinstance(data, dict):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=create_error_response("Request body must be a JSON object"),
            )

        api_key = data.pop("apiKey", None)
        api_secret = data.pop("apiSecret", None)
        credentials = resolve_credentials(api_key, api_secret, dependencies, CREATE_CREDENTIALS_MESSAGE)

        client = dependencies.create_xumm_client()
        upstream = await client.create_payload_raw(data, credentials)
        logger.info("Payload created", extra={"uuid": upstream.get("uuid")})
        return JSONResponse(content=upstream)

    except CredentialError as e:
        return JSONResponse(status_code=e.status_code, content=create_error_response(e.detail))
    except UpstreamError as e:
        return _upstream_error_response(e, dependencies)
    except Exception as e:
        logger.exception(f"Error creating Xumm payload: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response("Failed to create Xumm payload"),
        )


async def relay_get_payload(
    request_id: str, params: Mapping[str, str], headers: Mapping[str, str], dependencies: DependencyContainer
) -> JSONResponse:
    """Forward a payload status request.

    Credentials come from the apiKey/apiSecret query parameters or the
    X-API-Key/X-API-Secret headers.
    """
    try:
        api_key = params.get("apiKey") or headers.get("x-api-key")
        api_secret = params.get("apiSecret") or headers.get("x-api-secret")
        credentials = resolve_credentials(api_key, api_secret, dependencies, GET_CREDENTIALS_MESSAGE)

        client = dependencies.create_xumm_client()
        upstream: Dict[str, Any] = await client.get_payload_raw(request_id, credentials)
        return JSONResponse(content=upstream)

    except CredentialError as e:
        return JSONResponse(status_code=e.status_code, content=create_error_response(e.detail))
    except UpstreamError as e:
        return _upstream_error_response(e, dependencies)
    except Exception as e:
        logger.exception(f"Error getting Xumm payload {request_id}: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response("Failed to get Xumm payload status"),
        )
