import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load .env file variables into environment
load_dotenv(verbose=True)

DEFAULT_XUMM_API_URL = "https://xumm.app/api/v1/platform"
DEFAULT_RELAY_URL = "http://127.0.0.1:8000"

MIN_EXPIRE_MINUTES = 1
MAX_EXPIRE_MINUTES = 1440


class Settings:
    """Application configuration settings loaded from environment variables."""

    # --- Upstream Settings ---
    XUMM_API_URL: str = DEFAULT_XUMM_API_URL
    XUMM_API_KEY: Optional[str] = None
    XUMM_API_SECRET: Optional[str] = None

    # --- Helper Methods using os.getenv ---
    def get_xumm_api_url(self) -> str:
        """Returns the upstream Xumm platform URL without a trailing slash."""
        url = os.getenv("XUMM_API_URL", DEFAULT_XUMM_API_URL)
        parsed = urlparse(url)
        if not all([parsed.scheme, parsed.netloc]):
            raise ValueError(f"Invalid XUMM_API_URL format: {url}")
        return url.rstrip("/")

    def get_relay_url(self) -> str:
        """Returns the base URL of the local relay, used by clients of the relay."""
        url = os.getenv("RELAY_URL", DEFAULT_RELAY_URL)
        parsed = urlparse(url)
        if not all([parsed.scheme, parsed.netloc]):
            raise ValueError(f"Invalid RELAY_URL format: {url}")
        return url.rstrip("/")

    def get_xumm_api_key(self) -> str | None:
        """Returns the server-side Xumm API key, if set."""
        return os.getenv("XUMM_API_KEY") or None

    def get_xumm_api_secret(self) -> str | None:
        """Returns the server-side Xumm API secret, if set."""
        return os.getenv("XUMM_API_SECRET") or None

    # --- Polling Settings ---
    def get_poll_interval_seconds(self) -> float:
        """Returns the fixed delay between two status checks."""
        try:
            interval = float(os.getenv("POLL_INTERVAL_SECONDS", "5"))
        except ValueError:
            raise ValueError("POLL_INTERVAL_SECONDS environment variable must be a number.")
        if interval < 0:
            raise ValueError("POLL_INTERVAL_SECONDS environment variable must not be negative.")
        return interval

    def get_poll_max_attempts(self) -> int:
        """Returns the maximum number of status checks per signing request."""
        try:
            attempts = int(os.getenv("POLL_MAX_ATTEMPTS", "60"))
        except ValueError:
            raise ValueError("POLL_MAX_ATTEMPTS environment variable must be an integer.")
        if attempts < 1:
            raise ValueError("POLL_MAX_ATTEMPTS environment variable must be at least 1.")
        return attempts

    def get_payload_expire_minutes(self) -> int:
        """Returns the default payload lifetime, clamped to the range the platform accepts."""
        try:
            minutes = int(os.getenv("PAYLOAD_EXPIRE_MINUTES", "5"))
        except ValueError:
            raise ValueError("PAYLOAD_EXPIRE_MINUTES environment variable must be an integer.")
        return max(MIN_EXPIRE_MINUTES, min(MAX_EXPIRE_MINUTES, minutes))

    def get_http_timeout_seconds(self) -> float:
        try:
            return float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
        except ValueError:
            raise ValueError("HTTP_TIMEOUT_SECONDS environment variable must be a number.")

    def get_credential_store_path(self) -> Path:
        """Returns the path of the JSON file holding persisted credentials."""
        return Path(os.getenv("CREDENTIAL_STORE_PATH", "~/.xumm_relay/state.json")).expanduser()

    # --- Logging Settings ---
    def get_log_level(self, default: str = "INFO") -> str:
        """Gets the configured log level, defaulting if not set."""
        return os.getenv("LOG_LEVEL", default).upper()

    # --- Server Settings ---
    def get_app_host(self) -> str:
        return os.getenv("XUMM_RELAY_HOST", "0.0.0.0")  # nosec B104

    def get_app_port(self) -> int:
        try:
            return int(os.getenv("XUMM_RELAY_PORT", "8000"))
        except ValueError:
            raise ValueError("XUMM_RELAY_PORT environment variable must be an integer.")

    def get_app_reload(self) -> bool:
        return os.getenv("XUMM_RELAY_RELOAD", "false").lower() == "true"

    def get_run_mode(self) -> str:
        """Returns the run mode, defaulting to 'prod' if not set."""
        return os.getenv("RUN_MODE", "prod")

    def dev_mode(self) -> bool:
        """Returns True if the run mode is 'dev', False otherwise."""
        return self.get_run_mode() == "dev"
