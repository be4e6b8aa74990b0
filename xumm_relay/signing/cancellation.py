import uuid


class CancellationToken:
    """Marks whether the caller still wants the outcome of one submission.

    Checked by the scheduler before each wait and fetch, and by the orchestrator
    before each event is delivered.
    """

    def __init__(self, submission_id: str | None = None) -> None:
        self.submission_id = submission_id or uuid.uuid4().hex
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        return f"CancellationToken({self.submission_id!r}, cancelled={self._cancelled})"
