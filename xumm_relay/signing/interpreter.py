"""Maps raw status snapshots onto lifecycle outcomes and caller-visible results."""

import logging

from xumm_relay.exceptions import SnapshotIntegrityError
from xumm_relay.signing.models import Outcome, ResolutionSnapshot, SigningResult

logger = logging.getLogger(__name__)


def classify(snapshot: ResolutionSnapshot) -> Outcome:
    """Classify a snapshot. Cancelled wins over expired, which wins over signed."""
    meta = snapshot.meta
    if meta.cancelled:
        return Outcome.CANCELLED
    if meta.expired:
        return Outcome.EXPIRED
    if meta.signed:
        return Outcome.SIGNED
    return Outcome.PENDING


def check_integrity(snapshot: ResolutionSnapshot) -> None:
    """Raise SnapshotIntegrityError if a signed snapshot lacks its response details."""
    if classify(snapshot) is not Outcome.SIGNED:
        return
    if snapshot.response is None:
        raise SnapshotIntegrityError("Signed payload has no response details")
    if not snapshot.response.txid:
        raise SnapshotIntegrityError("Signed payload response is missing the transaction id")


def interpret(snapshot: ResolutionSnapshot) -> SigningResult:
    """Build the caller-visible result for a snapshot.

    A signed snapshot without response details still yields a result, flagged as
    degraded with the missing fields left empty.
    """
    outcome = classify(snapshot)
    result = SigningResult(
        outcome=outcome,
        tx_type=snapshot.payload.tx_type,
        tx_destination=snapshot.payload.tx_destination,
        created_at=snapshot.payload.created_at,
    )
    if outcome is not Outcome.SIGNED:
        return result

    try:
        check_integrity(snapshot)
    except SnapshotIntegrityError as e:
        logger.warning(f"Degraded signing result for {snapshot.meta.uuid}: {e.detail}")
        result.degraded = True
        result.detail = e.detail

    response = snapshot.response
    if response is not None:
        result.txid = response.txid
        result.account = response.account
        result.dispatched_result = response.dispatched_result
        result.resolved_at = response.resolved_at
    return result
