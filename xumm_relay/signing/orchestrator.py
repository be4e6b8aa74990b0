import logging
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Union

import httpx
from psygnal import Signal

from xumm_relay.core.credentials import Credentials
from xumm_relay.core.logging import log_transition
from xumm_relay.exceptions import (
    PollingTimeoutError,
    SnapshotIntegrityError,
    UpstreamError,
    XummRelayError,
)
from xumm_relay.signing.cancellation import CancellationToken
from xumm_relay.signing.events import EventKind, OrchestratorEvent, OrchestratorState
from xumm_relay.signing.interpreter import interpret
from xumm_relay.signing.models import Outcome, SigningOptions, SigningResult
from xumm_relay.signing.request_builder import DocumentInput, build_submission
from xumm_relay.signing.scheduler import PollScheduler
from xumm_relay.xumm.service import PayloadService

logger = logging.getLogger(__name__)

_OUTCOME_EVENTS = {
    Outcome.SIGNED: EventKind.RESOLVED,
    Outcome.CANCELLED: EventKind.CANCELLED,
    Outcome.EXPIRED: EventKind.EXPIRED,
}


class SigningOrchestrator:
    """Drives a signing request from creation to its terminal resolution.

    Only one submission is live at a time: calling `submit` again cancels the
    previous submission, whose iterator then ends without further events.

    Attributes:
        state_changed: Signal emitted with (submission_id, OrchestratorState) on every transition.
        state: The state of the live submission, IDLE when there is none.
        last_result: Result of the most recent submission that reached a resolution.
    """

    state_changed = Signal(str, OrchestratorState)

    def __init__(
        self,
        service: PayloadService,
        credentials: Credentials,
        scheduler: Optional[PollScheduler] = None,
    ) -> None:
        self.service = service
        self.credentials = credentials
        self.scheduler = scheduler or PollScheduler(service)
        self.state = OrchestratorState.IDLE
        self.last_result: Optional[SigningResult] = None
        self._active_token: Optional[CancellationToken] = None

    @property
    def busy(self) -> bool:
        return self._active_token is not None and not self._active_token.cancelled

    def cancel(self) -> None:
        """Stop caring about the live submission, if any."""
        if self._active_token is not None:
            logger.info(f"[{self._active_token.submission_id}] Submission cancelled by caller")
            self._active_token.cancel()
            self._active_token = None
        self.state = OrchestratorState.IDLE

    def submit(
        self,
        document: DocumentInput,
        options: Optional[Union[SigningOptions, Mapping[str, Any]]] = None,
    ) -> AsyncIterator[OrchestratorEvent]:
        """Start a submission and return its event stream.

        The stream yields SUBMITTING, then AWAITING_RESOLUTION once the signing request
        exists, and ends after exactly one terminal event (RESOLVED, CANCELLED, EXPIRED
        or FAILED). Errors never escape the stream; they arrive as a FAILED event.
        """
        if self.busy:
            logger.info(f"[{self._active_token.submission_id}] Superseded by a new submission")
            self._active_token.cancel()
        token = CancellationToken()
        self._active_token = token
        return self._run(token, document, options)

    async def submit_and_wait(
        self,
        document: DocumentInput,
        options: Optional[Union[SigningOptions, Mapping[str, Any]]] = None,
    ) -> Optional[OrchestratorEvent]:
        """Run a submission to the end and return its terminal event (None if superseded)."""
        terminal = None
        async for event in self.submit(document, options):
            if event.is_terminal:
                terminal = event
        return terminal

    async def _run(
        self, token: CancellationToken, document: DocumentInput, options: Any
    ) -> AsyncIterator[OrchestratorEvent]:
        lifecycle = self._lifecycle(token, document, options)
        try:
            async for event in lifecycle:
                if token.cancelled:
                    break
                self._record(token, event)
                yield event
        finally:
            await lifecycle.aclose()
            if self._active_token is token:
                self._active_token = None
                if not self.state_is_terminal:
                    self.state = OrchestratorState.IDLE

    @property
    def state_is_terminal(self) -> bool:
        return self.state not in (OrchestratorState.SUBMITTING, OrchestratorState.AWAITING_RESOLUTION)

    def _record(self, token: CancellationToken, event: OrchestratorEvent) -> None:
        self.state = event.kind.state
        if event.result is not None:
            self.last_result = event.result
        log_transition(token.submission_id, self.state.value, {"event_kind": event.kind.value})
        self.state_changed.emit(token.submission_id, self.state)

    def _event(self, token: CancellationToken, kind: EventKind, **payload: Any) -> OrchestratorEvent:
        return OrchestratorEvent(kind=kind, submission_id=token.submission_id, payload=payload)

    def _failed(self, token: CancellationToken, error: XummRelayError) -> OrchestratorEvent:
        logger.warning(
            f"[{token.submission_id}] Submission failed: {error.detail}",
            extra={"error_type": error.__class__.__name__, "status_code": error.status_code},
        )
        return self._event(
            token,
            EventKind.FAILED,
            error=error,
            error_type=error.__class__.__name__,
            status_code=error.status_code,
        )

    async def _lifecycle(
        self, token: CancellationToken, document: DocumentInput, options: Any
    ) -> AsyncIterator[OrchestratorEvent]:
        yield self._event(token, EventKind.SUBMITTING)

        # Submitting
        try:
            credentials = self.credentials.require("Please enter both XUMM API Key and API Secret")
            submission = build_submission(document, options)
            if token.cancelled:
                return
            logger.info(
                f"[{token.submission_id}] Creating signing request for {submission.transaction_type}",
                extra={"submit": submission.options.submit, "expire": submission.options.expire},
            )
            signing_request = await self.service.create_payload(submission, credentials)
        except XummRelayError as e:
            yield self._failed(token, e)
            return
        except httpx.HTTPError as e:
            yield self._failed(token, UpstreamError(f"Failed to create Xumm payload: {e}"))
            return
        except Exception as e:
            logger.exception(f"[{token.submission_id}] Unexpected error while creating signing request: {e}")
            yield self._failed(token, XummRelayError("Failed to create Xumm payload"))
            return

        logger.info(
            f"[{token.submission_id}] Signing request {signing_request.request_id} created",
            extra={"request_id": signing_request.request_id, "pushed": signing_request.pushed},
        )
        yield self._event(token, EventKind.AWAITING_RESOLUTION, request=signing_request)

        # AwaitingResolution
        try:
            snapshot = await self.scheduler.run(signing_request.request_id, credentials, token)
        except PollingTimeoutError as e:
            result = SigningResult(outcome=Outcome.EXPIRED, timeout=True, detail=e.detail)
            yield self._event(token, EventKind.EXPIRED, result=result, error=e, attempts=e.attempts)
            return
        except XummRelayError as e:
            yield self._failed(token, e)
            return
        except httpx.HTTPError as e:
            yield self._failed(token, UpstreamError(f"Failed to get payload status: {e}"))
            return
        except Exception as e:
            logger.exception(f"[{token.submission_id}] Unexpected error while polling: {e}")
            yield self._failed(token, XummRelayError("Polling failed"))
            return

        if snapshot is None:
            return

        result = interpret(snapshot)
        kind = _OUTCOME_EVENTS.get(result.outcome)
        if kind is None:
            yield self._failed(token, SnapshotIntegrityError("Resolved payload reports no outcome"))
            return
        yield self._event(token, kind, result=result, snapshot=snapshot)
