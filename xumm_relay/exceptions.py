# Signing request errors


class XummRelayError(Exception):
    """Base exception for all signing request errors."""

    def __init__(self, *args, status_code: int | None = None, detail: str | None = None):
        super().__init__(*args)
        self.status_code = status_code
        # Use the first arg as detail if detail kwarg is not provided and args exist
        self.detail = detail or (args[0] if args else None)


class TransactionValidationError(XummRelayError, ValueError):
    """Raised when a transaction document is malformed or lacks a transaction type.

    Raised before any remote service is contacted.
    """

    def __init__(self, detail: str, status_code: int = 400):
        super().__init__(detail, status_code=status_code, detail=detail)


class CredentialError(XummRelayError):
    """Raised when the API key or secret is missing."""

    def __init__(self, detail: str, status_code: int = 400):
        super().__init__(detail, status_code=status_code, detail=detail)


class UpstreamError(XummRelayError):
    """Raised when a payload service answers with a non-success status or cannot be reached.

    `status_code` is the upstream HTTP status, or None for transport failures.
    """

    def __init__(self, detail: str, status_code: int | None = None, body: str | None = None):
        super().__init__(detail, status_code=status_code, detail=detail)
        self.body = body


class PollingTimeoutError(XummRelayError):
    """Raised when the poll ceiling is reached without a terminal snapshot."""

    def __init__(self, detail: str, attempts: int):
        super().__init__(detail, detail=detail)
        self.attempts = attempts


class SnapshotIntegrityError(XummRelayError):
    """A signed snapshot is missing its response details."""

    pass
