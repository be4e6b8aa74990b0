"""File-backed persistence for credentials and the last submitted transaction document."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from xumm_relay.core.credentials import Credentials

logger = logging.getLogger(__name__)


class StoredState(BaseModel):
    """What survives between sessions."""

    api_key: str = Field(default="")
    api_secret: str = Field(default="", repr=False)
    last_document: Optional[Dict[str, Any]] = Field(default=None)

    @property
    def credentials(self) -> Credentials:
        return Credentials(api_key=self.api_key, api_secret=self.api_secret)


class CredentialStore:
    """Persists a StoredState as a JSON file readable only by the current user."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> StoredState:
        """Load the stored state. A missing or unreadable file yields an empty state."""
        if not self.path.exists():
            return StoredState()
        try:
            return StoredState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable credential store at {self.path}: {e}")
            return StoredState()

    def save(self, state: StoredState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(state.model_dump_json(indent=2))
        logger.debug(f"Saved credential store to {self.path}")

    def save_credentials(self, credentials: Credentials) -> StoredState:
        state = self.load().model_copy(
            update={"api_key": credentials.api_key, "api_secret": credentials.api_secret}
        )
        self.save(state)
        return state

    def remember_document(self, document: Dict[str, Any]) -> StoredState:
        """Record the last transaction document submitted, keeping stored credentials."""
        state = self.load().model_copy(update={"last_document": json.loads(json.dumps(document))})
        self.save(state)
        return state

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info(f"Removed credential store at {self.path}")
