import json
import logging
from unittest.mock import AsyncMock

import httpx
import pytest
from xumm_relay import cli
from xumm_relay.core.credential_store import CredentialStore
from xumm_relay.exceptions import PollingTimeoutError, UpstreamError
from xumm_relay.settings import Settings
from xumm_relay.signing.events import EventKind, OrchestratorEvent
from xumm_relay.signing.models import Outcome, SigningRequest, SigningResult

RELAY_CREATE = "POST /api/xumm/create-payload"
RELAY_GET = "GET /api/xumm/get-payload/abc-123"


@pytest.fixture
def cli_env(monkeypatch, tmp_path, mocker, mock_transport):
    """Points the CLI at a temporary store and the mock upstream, with no poll delay."""
    monkeypatch.setenv("CREDENTIAL_STORE_PATH", str(tmp_path / "state.json"))
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("POLL_MAX_ATTEMPTS", "3")
    mocker.patch(
        "xumm_relay.cli.create_http_client",
        side_effect=lambda settings: httpx.AsyncClient(transport=mock_transport),
    )
    return tmp_path


@pytest.fixture
def document_file(cli_env, payment_document):
    path = cli_env / "tx.json"
    path.write_text(json.dumps(payment_document), encoding="utf-8")
    return path


def parse(*argv: str):
    return cli.build_parser().parse_args(list(argv))


# --- describe ---


def test_describe_awaiting_resolution(signing_request_data):
    request = SigningRequest.model_validate({**signing_request_data, "pushed": True})
    event = OrchestratorEvent(EventKind.AWAITING_RESOLUTION, "sub-1", {"request": request})

    assert cli.describe(event) == (
        "Signing request abc-123 created\n"
        "  Open: https://xumm.app/sign/abc-123\n"
        "  QR:   https://xumm.app/sign/abc-123_q.png\n"
        "  Push notification: sent"
    )


def test_describe_awaiting_resolution_with_fallback_link(signing_request_data):
    next_links = {
        "always": "https://xumm.app/sign/abc-123",
        "no_push_msg_received": "https://xumm.app/sign/abc-123/qr",
    }
    request = SigningRequest.model_validate({**signing_request_data, "next": next_links})
    event = OrchestratorEvent(EventKind.AWAITING_RESOLUTION, "sub-1", {"request": request})

    lines = cli.describe(event).splitlines()

    assert lines[1] == "  Open: https://xumm.app/sign/abc-123"
    assert lines[2] == "  If no push arrives: https://xumm.app/sign/abc-123/qr"


def test_describe_resolved():
    result = SigningResult(outcome=Outcome.SIGNED, txid="DEADBEEF", account="rAcct", dispatched_result="tesSUCCESS")
    event = OrchestratorEvent(EventKind.RESOLVED, "sub-1", {"result": result})

    assert cli.describe(event) == "Signed: txid=DEADBEEF account=rAcct result=tesSUCCESS"


def test_describe_local_timeout():
    error = PollingTimeoutError("Transaction polling timed out", attempts=60)
    result = SigningResult(outcome=Outcome.EXPIRED, timeout=True, detail=error.detail)
    event = OrchestratorEvent(EventKind.EXPIRED, "sub-1", {"result": result, "error": error})

    assert cli.describe(event) == "Expired: Transaction polling timed out"


def test_describe_failed_with_status():
    error = UpstreamError("Xumm API error: 401 Unauthorized", status_code=401)
    event = OrchestratorEvent(EventKind.FAILED, "sub-1", {"error": error, "status_code": 401})

    assert cli.describe(event) == "Failed: Xumm API error: 401 Unauthorized (status 401)"


def test_describe_plain_kinds():
    assert cli.describe(OrchestratorEvent(EventKind.SUBMITTING, "sub-1", {})) == "Submitting"
    assert cli.describe(OrchestratorEvent(EventKind.CANCELLED, "sub-1", {})) == "Cancelled"


# --- read_document ---


def test_read_document_without_source_uses_stored(tmp_path, payment_document):
    store = CredentialStore(tmp_path / "state.json")
    store.remember_document(payment_document)

    assert cli.read_document(None, store) == payment_document


def test_read_document_without_source_or_stored(tmp_path):
    with pytest.raises(ValueError, match="No transaction document given"):
        cli.read_document(None, CredentialStore(tmp_path / "state.json"))


# --- run ---


@pytest.mark.asyncio
async def test_run_through_relay_until_signed(
    cli_env,
    document_file,
    upstream_handler,
    upstream_requests,
    signing_request_data,
    snapshot_data_factory,
    signed_response,
    payment_document,
    capsys,
):
    pending = snapshot_data_factory()
    signed = snapshot_data_factory(resolved=True, signed=True, response=signed_response)
    replies = [pending, signed]
    upstream_handler[RELAY_CREATE] = lambda request: httpx.Response(200, json=signing_request_data)
    upstream_handler[RELAY_GET] = lambda request: httpx.Response(200, json=replies.pop(0))

    args = parse(str(document_file), "--api-key", "key-0001", "--api-secret", "secret-0001", "--remember")
    exit_code = await cli.run(args, Settings())

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Signing request abc-123 created" in output
    assert "Signed: txid=DEADBEEF" in output

    create_body = json.loads(upstream_requests[0].content)
    assert create_body["apiKey"] == "key-0001"
    assert create_body["options"] == {"submit": True, "expire": 5, "multisign": False}
    assert len(upstream_requests) == 3

    state = CredentialStore(cli_env / "state.json").load()
    assert state.api_key == "key-0001"
    assert state.last_document == payment_document


@pytest.mark.asyncio
async def test_run_continues_when_store_is_not_writable(
    cli_env, document_file, mocker, upstream_handler, signing_request_data, snapshot_data_factory, signed_response, caplog
):
    mocker.patch.object(CredentialStore, "save_credentials", side_effect=PermissionError("read-only"))
    mocker.patch.object(CredentialStore, "remember_document", side_effect=PermissionError("read-only"))
    upstream_handler[RELAY_CREATE] = lambda request: httpx.Response(200, json=signing_request_data)
    upstream_handler[RELAY_GET] = lambda request: httpx.Response(
        200, json=snapshot_data_factory(resolved=True, signed=True, response=signed_response)
    )

    args = parse(str(document_file), "--api-key", "k", "--api-secret", "s", "--remember")
    with caplog.at_level(logging.WARNING):
        exit_code = await cli.run(args, Settings())

    assert exit_code == 0
    assert "Could not store credentials" in caplog.text
    assert "Could not remember the document" in caplog.text


@pytest.mark.asyncio
async def test_run_direct_uses_platform(
    cli_env, document_file, upstream_handler, upstream_requests, signing_request_data, snapshot_data_factory
):
    upstream_handler["POST /api/v1/platform/payload"] = lambda request: httpx.Response(
        200, json=signing_request_data
    )
    upstream_handler["GET /api/v1/platform/payload/abc-123"] = lambda request: httpx.Response(
        200, json=snapshot_data_factory(resolved=True, cancelled=True)
    )

    args = parse(str(document_file), "--api-key", "k", "--api-secret", "s", "--direct", "--no-submit", "--expire", "9")
    exit_code = await cli.run(args, Settings())

    assert exit_code == 1
    assert upstream_requests[0].url.host == "xumm.app"
    assert json.loads(upstream_requests[0].content)["options"]["submit"] is False
    assert json.loads(upstream_requests[0].content)["options"]["expire"] == 9


@pytest.mark.asyncio
async def test_run_without_credentials_fails_before_any_request(cli_env, document_file, upstream_requests, capsys):
    exit_code = await cli.run(parse(str(document_file)), Settings())

    assert exit_code == 1
    assert upstream_requests == []
    assert "Failed: Please enter both XUMM API Key and API Secret (status 400)" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_with_unreadable_document(cli_env, capsys):
    exit_code = await cli.run(parse(str(cli_env / "missing.json")), Settings())

    assert exit_code == 2
    assert "Failed:" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_run_with_invalid_document(cli_env, capsys):
    path = cli_env / "tx.json"
    path.write_text('{"Amount": "1"}', encoding="utf-8")

    exit_code = await cli.run(parse(str(path), "--api-key", "k", "--api-secret", "s"), Settings())

    assert exit_code == 1
    assert "Failed: missing transaction type" in capsys.readouterr().out


# --- main ---


def test_main_hex(capsys):
    assert cli.main(["--hex", "hello"]) == 0
    assert capsys.readouterr().out.strip() == "68656C6C6F"


def test_main_returns_run_exit_code(mocker):
    mocker.patch("xumm_relay.cli.setup_logging")
    mocker.patch("xumm_relay.cli.run", new_callable=AsyncMock, return_value=0)

    assert cli.main(["tx.json"]) == 0


def test_main_reports_configuration_errors(mocker):
    mocker.patch("xumm_relay.cli.setup_logging")
    mocker.patch("xumm_relay.cli.run", new_callable=AsyncMock, side_effect=ValueError("Invalid RELAY_URL format: x"))

    assert cli.main(["tx.json"]) == 2


def test_main_interrupted(mocker, capsys):
    mocker.patch("xumm_relay.cli.setup_logging")
    mocker.patch("xumm_relay.cli.run", new_callable=AsyncMock, side_effect=KeyboardInterrupt)

    assert cli.main(["tx.json"]) == 130
    assert "Interrupted" in capsys.readouterr().err
