"""
Command line client: submits a transaction document for signing and follows it to resolution.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import httpx

from xumm_relay.core.credential_store import CredentialStore
from xumm_relay.core.credentials import Credentials
from xumm_relay.core.dependencies import create_http_client
from xumm_relay.core.logging import setup_logging
from xumm_relay.exceptions import TransactionValidationError
from xumm_relay.settings import Settings
from xumm_relay.signing.events import EventKind, OrchestratorEvent
from xumm_relay.signing.orchestrator import SigningOrchestrator
from xumm_relay.signing.request_builder import parse_document
from xumm_relay.signing.scheduler import PollScheduler
from xumm_relay.utils.encoding import string_to_hex
from xumm_relay.xumm.client import XummClient
from xumm_relay.xumm.relay_client import RelayPayloadService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Submit an XRP Ledger transaction for signing with Xumm.")
    parser.add_argument(
        "document",
        nargs="?",
        help="Path to a JSON transaction document, or '-' for stdin. Defaults to the last document submitted.",
    )
    parser.add_argument("--api-key", help="Xumm API key (defaults to the stored key).")
    parser.add_argument("--api-secret", help="Xumm API secret (defaults to the stored secret).")
    parser.add_argument("--remember", action="store_true", help="Store the given credentials for later runs.")
    parser.add_argument(
        "--direct",
        action="store_true",
        help="Call the Xumm platform directly instead of going through the relay.",
    )
    parser.add_argument("--no-submit", action="store_true", help="Do not let Xumm submit the signed transaction.")
    parser.add_argument("--expire", type=int, help="Lifetime of the signing request in minutes.")
    parser.add_argument("--hex", metavar="TEXT", help="Print TEXT as upper-case hex (for memo fields) and exit.")
    return parser


def read_document(source: Optional[str], store: CredentialStore) -> Dict[str, Any]:
    if source is None:
        stored = store.load().last_document
        if stored is None:
            raise TransactionValidationError("No transaction document given and none stored")
        return stored
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    return parse_document(text)


def describe(event: OrchestratorEvent) -> str:
    """One line of human-readable output per event."""
    if event.kind is EventKind.AWAITING_RESOLUTION and event.request is not None:
        request = event.request
        lines = [f"Signing request {request.request_id} created", f"  Open: {request.resolution_handle}"]
        if request.fallback_handle:
            lines.append(f"  If no push arrives: {request.fallback_handle}")
        if request.refs.qr_png:
            lines.append(f"  QR:   {request.refs.qr_png}")
        lines.append(f"  Push notification: {'sent' if request.pushed else 'not sent'}")
        return "\n".join(lines)
    if event.kind is EventKind.RESOLVED and event.result is not None:
        result = event.result
        line = f"Signed: txid={result.txid} account={result.account} result={result.dispatched_result}"
        if result.degraded:
            line += f" (incomplete: {result.detail})"
        return line
    if event.kind is EventKind.EXPIRED and event.result is not None and event.result.timeout:
        return f"Expired: {event.message}"
    if event.kind is EventKind.FAILED:
        status = event.payload.get("status_code")
        return f"Failed: {event.message}" + (f" (status {status})" if status else "")
    return event.kind.value.replace("_", " ").capitalize()


async def run(args: argparse.Namespace, settings: Settings) -> int:
    store = CredentialStore(settings.get_credential_store_path())
    state = store.load()
    credentials = Credentials(
        api_key=args.api_key or state.api_key,
        api_secret=args.api_secret or state.api_secret,
    )
    if args.remember and credentials.is_complete:
        try:
            store.save_credentials(credentials)
        except OSError as e:
            logger.warning(f"Could not store credentials at {store.path}: {e}")

    try:
        document = read_document(args.document, store)
    except (OSError, UnicodeDecodeError, TransactionValidationError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 2

    options: Dict[str, Any] = {"submit": not args.no_submit}
    options["expire"] = args.expire if args.expire is not None else settings.get_payload_expire_minutes()

    async with create_http_client(settings) as http_client:
        if args.direct:
            service = XummClient(http_client, settings.get_xumm_api_url())
        else:
            service = RelayPayloadService(http_client, settings.get_relay_url())
        scheduler = PollScheduler(
            service,
            interval=settings.get_poll_interval_seconds(),
            max_attempts=settings.get_poll_max_attempts(),
        )
        orchestrator = SigningOrchestrator(service, credentials, scheduler)

        terminal: Optional[OrchestratorEvent] = None
        async for event in orchestrator.submit(document, options):
            print(describe(event))
            if event.kind is EventKind.AWAITING_RESOLUTION:
                try:
                    store.remember_document(document)
                except OSError as e:
                    logger.warning(f"Could not remember the document at {store.path}: {e}")
            if event.is_terminal:
                terminal = event

    return 0 if terminal is not None and terminal.kind is EventKind.RESOLVED else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.hex is not None:
        print(string_to_hex(args.hex))
        return 0

    setup_logging()
    settings = Settings()
    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    except (ValueError, httpx.HTTPError) as e:
        logger.error(f"Aborted: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
