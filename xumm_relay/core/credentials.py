from pydantic import BaseModel, ConfigDict, Field

from xumm_relay.core.logging import mask_secret
from xumm_relay.exceptions import CredentialError


class Credentials(BaseModel):
    """An API key/secret pair for the Xumm platform.

    Read-only for the duration of a submission cycle.
    """

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="")
    api_secret: str = Field(default="", repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key.strip()) and bool(self.api_secret.strip())

    def require(self, message: str = "XUMM API credentials are required") -> "Credentials":
        """Return self, or raise CredentialError if either half is missing."""
        if not self.is_complete:
            raise CredentialError(message)
        return self

    def as_headers(self) -> dict[str, str]:
        """Headers the Xumm platform expects on every call."""
        return {"X-API-Key": self.api_key, "X-API-Secret": self.api_secret}

    @property
    def key_identifier(self) -> str:
        return mask_secret(self.api_key)
