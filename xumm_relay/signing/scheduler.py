import asyncio
import logging
from typing import Awaitable, Callable, Optional

from xumm_relay.core.credentials import Credentials
from xumm_relay.exceptions import PollingTimeoutError
from xumm_relay.signing.cancellation import CancellationToken
from xumm_relay.signing.models import ResolutionSnapshot
from xumm_relay.xumm.service import PayloadService

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_ATTEMPTS = 60

SleepFunc = Callable[[float], Awaitable[None]]


class PollScheduler:
    """Samples the status of one signing request at a fixed interval.

    Status checks run strictly one after another. A failed check ends the schedule
    immediately; there is no retry or backoff.
    """

    def __init__(
        self,
        service: PayloadService,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval < 0:
            raise ValueError("interval must not be negative")
        self.service = service
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def run(
        self, request_id: str, credentials: Credentials, token: CancellationToken
    ) -> Optional[ResolutionSnapshot]:
        """Poll until a terminal snapshot arrives.

        Args:
            request_id: The signing request to watch.
            credentials: Passed through to the status service.
            token: Cancellation token of the submission.

        Returns:
            The terminal snapshot, or None if the token was cancelled.

        Raises:
            PollingTimeoutError: After max_attempts non-terminal snapshots.
            UpstreamError, httpx.HTTPError: When a status check fails.
        """
        attempts = 0
        while True:
            if token.cancelled:
                logger.info(f"[{token.submission_id}] Polling for {request_id} cancelled before attempt {attempts + 1}")
                return None

            snapshot = await self.service.get_payload(request_id, credentials)
            attempts += 1

            if token.cancelled:
                logger.info(f"[{token.submission_id}] Discarding status of {request_id} after cancellation")
                return None

            if snapshot.is_terminal:
                logger.info(
                    f"[{token.submission_id}] Terminal status for {request_id} after {attempts} attempt(s)",
                    extra={"request_id": request_id, "attempts": attempts},
                )
                return snapshot

            if attempts >= self.max_attempts:
                logger.warning(
                    f"[{token.submission_id}] No resolution for {request_id} after {attempts} attempts",
                    extra={"request_id": request_id, "attempts": attempts},
                )
                raise PollingTimeoutError("Transaction polling timed out", attempts=attempts)

            logger.debug(
                f"[{token.submission_id}] {request_id} still pending (attempt {attempts}/{self.max_attempts})"
            )
            await self._sleep(self.interval)
