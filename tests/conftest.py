import os
from typing import Any, Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from xumm_relay.core.credentials import Credentials
from xumm_relay.core.dependency_container import DependencyContainer
from xumm_relay.settings import Settings
from xumm_relay.signing.models import ResolutionSnapshot, SigningRequest, SubmissionRequest

# Variables read by Settings; cleared so a developer's .env does not leak into tests
SETTINGS_ENV_VARS = [
    "XUMM_API_URL",
    "XUMM_API_KEY",
    "XUMM_API_SECRET",
    "RELAY_URL",
    "POLL_INTERVAL_SECONDS",
    "POLL_MAX_ATTEMPTS",
    "PAYLOAD_EXPIRE_MINUTES",
    "HTTP_TIMEOUT_SECONDS",
    "CREDENTIAL_STORE_PATH",
    "LOG_LEVEL",
    "RUN_MODE",
    "XUMM_RELAY_HOST",
    "XUMM_RELAY_PORT",
    "XUMM_RELAY_RELOAD",
]


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """AUTOUSE: removes configuration variables so every test starts from defaults."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


# --- Sample data ---


def make_signing_request_data(uuid: str = "abc-123", pushed: bool = False) -> Dict[str, Any]:
    return {
        "uuid": uuid,
        "next": {"always": f"https://xumm.app/sign/{uuid}"},
        "refs": {
            "qr_png": f"https://xumm.app/sign/{uuid}_q.png",
            "qr_matrix": f"https://xumm.app/sign/{uuid}_q.json",
            "qr_uri_quality_opts": ["m", "q", "h"],
            "websocket_status": f"wss://xumm.app/sign/{uuid}",
        },
        "pushed": pushed,
    }


def make_snapshot_data(
    uuid: str = "abc-123",
    resolved: bool = False,
    signed: bool = False,
    cancelled: bool = False,
    expired: bool = False,
    response: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "meta": {
            "uuid": uuid,
            "exists": True,
            "resolved": resolved,
            "signed": signed,
            "cancelled": cancelled,
            "expired": expired,
        },
        "payload": {
            "tx_type": "Payment",
            "tx_destination": "rN7n7otQDd6FczFgLdSqtcsAUxDkw6fzRH",
            "request_json": {"TransactionType": "Payment"},
            "created_at": "2024-01-01T00:00:00Z",
            "expires_at": "2024-01-01T00:05:00Z",
        },
    }
    if response is not None:
        data["response"] = response
    return data


def signed_response_data(txid: str = "DEADBEEF") -> Dict[str, Any]:
    return {
        "hex": "1200002280000000",
        "txid": txid,
        "resolved_at": "2024-01-01T00:01:00Z",
        "dispatched_to": "wss://xrplcluster.com",
        "dispatched_result": "tesSUCCESS",
        "account": "rPEPPER7kfTD9w2To4CQk6UCfuHM9c6GDY",
    }


@pytest.fixture
def snapshot_data_factory() -> Callable[..., Dict[str, Any]]:
    return make_snapshot_data


@pytest.fixture
def make_snapshot() -> Callable[..., ResolutionSnapshot]:
    def _make(**kwargs: Any) -> ResolutionSnapshot:
        return ResolutionSnapshot.model_validate(make_snapshot_data(**kwargs))

    return _make


@pytest.fixture
def signed_response() -> Dict[str, Any]:
    return signed_response_data()


@pytest.fixture
def signing_request_data() -> Dict[str, Any]:
    return make_signing_request_data()


@pytest.fixture
def pending_snapshot() -> ResolutionSnapshot:
    return ResolutionSnapshot.model_validate(make_snapshot_data())


@pytest.fixture
def signed_snapshot() -> ResolutionSnapshot:
    return ResolutionSnapshot.model_validate(
        make_snapshot_data(resolved=True, signed=True, response=signed_response_data())
    )


@pytest.fixture
def cancelled_snapshot() -> ResolutionSnapshot:
    return ResolutionSnapshot.model_validate(make_snapshot_data(resolved=True, cancelled=True))


@pytest.fixture
def payment_document() -> Dict[str, Any]:
    return {
        "TransactionType": "Payment",
        "Destination": "rN7n7otQDd6FczFgLdSqtcsAUxDkw6fzRH",
        "Amount": "1000000",
        "Fee": "12",
    }


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(api_key="test-api-key-1234", api_secret="test-api-secret-5678")


# --- Fake payload service ---


class FakePayloadService:
    """In-memory PayloadService.

    Status replies are consumed in order; the last one repeats once the list is
    exhausted. An exception in the list is raised instead of returned.
    """

    def __init__(
        self,
        statuses: Optional[List[Union[ResolutionSnapshot, Exception]]] = None,
        create_error: Optional[Exception] = None,
        signing_request: Optional[SigningRequest] = None,
    ) -> None:
        self.statuses = list(statuses or [])
        self.create_error = create_error
        self.signing_request = signing_request or SigningRequest.model_validate(make_signing_request_data())
        self.submissions: List[SubmissionRequest] = []
        self.status_calls: List[str] = []
        self.on_status: Optional[Callable[[int], None]] = None

    async def create_payload(self, submission: SubmissionRequest, credentials: Credentials) -> SigningRequest:
        self.submissions.append(submission)
        if self.create_error is not None:
            raise self.create_error
        return self.signing_request

    async def get_payload(self, request_id: str, credentials: Credentials) -> ResolutionSnapshot:
        self.status_calls.append(request_id)
        if self.on_status is not None:
            self.on_status(len(self.status_calls))
        reply = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_service_factory() -> Callable[..., FakePayloadService]:
    return FakePayloadService


@pytest.fixture
def recorded_sleep() -> AsyncMock:
    """A stand-in for asyncio.sleep that records the requested delays without waiting."""
    return AsyncMock(return_value=None)


# --- HTTP / container mocks ---


@pytest.fixture
def mock_settings() -> MagicMock:
    """Provides a mock Settings instance."""
    settings = MagicMock(spec=Settings)
    settings.get_xumm_api_url.return_value = "https://xumm.test/api/v1/platform"
    settings.get_xumm_api_key.return_value = None
    settings.get_xumm_api_secret.return_value = None
    settings.dev_mode.return_value = False
    return settings


@pytest.fixture
def mock_http_client() -> AsyncMock:
    """Provides a mock httpx.AsyncClient instance."""
    client = AsyncMock(spec=httpx.AsyncClient)
    return client


@pytest.fixture
def mock_container(mock_settings: MagicMock, mock_http_client: AsyncMock) -> MagicMock:
    """Provides a mock DependencyContainer instance."""
    container = MagicMock(spec=DependencyContainer)
    container.settings = mock_settings
    container.http_client = mock_http_client
    return container


@pytest.fixture
def upstream_requests() -> List[httpx.Request]:
    """Requests seen by the mock upstream transport."""
    return []


@pytest.fixture
def upstream_handler() -> Dict[str, Callable[[httpx.Request], httpx.Response]]:
    """Route table for the mock upstream, keyed by 'METHOD path'. Tests fill it in."""
    return {}


@pytest.fixture
def mock_transport(upstream_requests, upstream_handler) -> httpx.MockTransport:
    def handle(request: httpx.Request) -> httpx.Response:
        upstream_requests.append(request)
        handler = upstream_handler.get(f"{request.method} {request.url.path}")
        if handler is None:
            return httpx.Response(404, json={"error": {"code": 404, "reference": "not-found"}})
        return handler(request)

    return httpx.MockTransport(handle)


@pytest.fixture
def env_credentials(monkeypatch):
    """Sets relay-side credentials in the environment."""
    monkeypatch.setenv("XUMM_API_KEY", "server-key-0001")
    monkeypatch.setenv("XUMM_API_SECRET", "server-secret-0001")
    return os.environ["XUMM_API_KEY"], os.environ["XUMM_API_SECRET"]
