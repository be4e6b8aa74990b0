import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, Response

from xumm_relay.core.dependencies import get_dependencies
from xumm_relay.core.dependency_container import DependencyContainer
from xumm_relay.relay.orchestration import relay_create_payload, relay_get_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/xumm", tags=["Relay"])

default_payload: dict[str, Any] = Body(
    None,
    openapi_examples={
        "payment": {
            "value": {
                "apiKey": "<api key>",
                "apiSecret": "<api secret>",
                "txjson": {
                    "TransactionType": "Payment",
                    "Destination": "rN7n7otQDd6FczFgLdSqtcsAUxDkw6fzRH",
                    "Amount": "1000000",
                    "Fee": "12",
                },
                "options": {"submit": True, "expire": 5},
            },
        },
    },
)


@router.post("/create-payload")
async def create_payload_endpoint(
    request: Request,
    dependencies: DependencyContainer = Depends(get_dependencies),
    # Documents the body in the OpenAPI schema; the raw body is read from the request.
    payload: dict[str, Any] = default_payload,
):
    """
    Creates a signing request on the Xumm platform.

    The JSON body holds `apiKey` and `apiSecret` next to the payload (`txjson`, `options`).
    The credentials are moved into upstream headers; everything else is forwarded as is.
    """
    client_ip = request.client.host if request.client else "unknown"
    logger.info("Create payload request received", extra={"client_ip": client_ip})

    response = await relay_create_payload(await request.body(), dependencies)

    logger.info(
        "Create payload response sent",
        extra={"status_code": response.status_code, "client_ip": client_ip},
    )
    return response


@router.get("/get-payload/{uuid}")
async def get_payload_endpoint(
    request: Request,
    uuid: str = Path(..., description="Identifier of the signing request"),
    dependencies: DependencyContainer = Depends(get_dependencies),
    # Documented here for the OpenAPI schema; read from request.query_params.
    apiKey: Optional[str] = Query(None),
    apiSecret: Optional[str] = Query(None),
):
    """
    Returns the current status of a signing request.

    Credentials are accepted as `apiKey`/`apiSecret` query parameters or as
    `X-API-Key`/`X-API-Secret` headers.
    """
    response = await relay_get_payload(uuid, request.query_params, request.headers, dependencies)
    logger.info("Get payload response sent", extra={"uuid": uuid, "status_code": response.status_code})
    return response


@router.options("/{full_path:path}")
async def relay_options_handler(full_path: str):
    """
    Handles OPTIONS requests for the relay endpoints, indicating allowed methods.
    """
    logger.info(f"Explicit OPTIONS request received for /api/xumm/{full_path}")
    headers = {
        "Allow": "GET, POST, OPTIONS",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, X-API-Key, X-API-Secret",
    }
    return Response(status_code=200, headers=headers)
