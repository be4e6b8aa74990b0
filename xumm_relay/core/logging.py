# Centralized logging configuration for the xumm_relay package.

import logging
import sys
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from xumm_relay.settings import Settings

# Recommended format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Default level if LOG_LEVEL env var is not set
DEFAULT_LOG_LEVEL = "INFO"

# Valid log levels
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Libraries known to be noisy that we might want to quiet down
NOISY_LIBRARIES = ["httpx", "httpcore"]


def setup_logging():
    """
    Configures logging for the application.

    Reads the desired log level from the LOG_LEVEL environment variable.
    Defaults to INFO if not set or invalid.
    Sets a standard format and directs logs to stderr.
    Sets louder libraries to WARNING level.
    """
    settings = Settings()
    log_level_name = settings.get_log_level(default=DEFAULT_LOG_LEVEL)

    if log_level_name not in VALID_LOG_LEVELS:
        print(
            f"WARNING: Invalid LOG_LEVEL '{log_level_name}'. "
            f"Defaulting to {DEFAULT_LOG_LEVEL}. "
            f"Valid levels are: {', '.join(VALID_LOG_LEVELS)}",
            file=sys.stderr,
        )
        log_level_name = DEFAULT_LOG_LEVEL

    log_level = logging.getLevelName(log_level_name)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # Quiet down noisy libraries
    for lib_name in NOISY_LIBRARIES:
        logging.getLogger(lib_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured with level {log_level_name}.")


def mask_secret(value: Optional[str]) -> str:
    """Return identifying characters of a credential (first 4 and last 2) for log lines."""
    if not value:
        return "empty"
    if len(value) <= 8:
        return f"{value[:2]}..."
    return f"{value[:4]}...{value[-2:]}"


def log_transition(submission_id: str, state: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Log a signing request state change."""
    logger = logging.getLogger("xumm_relay.signing.transitions")
    logger.debug(
        f"[{submission_id}] Signing request entered {state}",
        extra={"state": state, "timestamp": datetime.now(UTC).isoformat(), **(details or {})},
    )


def create_error_response(
    message: str,
    details: Optional[Dict[str, Any]] = None,
    include_debug_info: bool = False,
) -> Dict[str, Any]:
    """Create the JSON body the relay returns for failed requests."""
    response: Dict[str, Any] = {"error": message}

    if include_debug_info and details:
        response["debug"] = {"timestamp": datetime.now(UTC).isoformat(), **details}

    return response
