"""Provider OAuth credential persistence and access-token refresh."""

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import requests

from ..errors import SessionExpired

logger = logging.getLogger("StoryStackMCP.providers.auth")

TOKEN_URL = "https://oauth2.googleapis.com/token"
CREDENTIALS_DIR = ".credentials"
CREDENTIALS_FILE = "google_photos.json"
EXPIRY_BUFFER = 300  # seconds


@dataclass
class ProviderCredentials:
    """Stored OAuth credentials for the photo provider."""
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    access_token: str = ""
    token_expires_at: float = 0.0

    def is_token_valid(self) -> bool:
        """Check if the access token is still valid (with 5-minute buffer)."""
        if not self.access_token:
            return False
        return time.time() < (self.token_expires_at - EXPIRY_BUFFER)

    def can_refresh(self) -> bool:
        return bool(self.refresh_token and self.client_id)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ProviderCredentials":
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered)


class ProviderAuth:
    """Loads, refreshes and saves provider credentials."""

    def __init__(self, repo_root: Optional[Path] = None):
        if repo_root is None:
            repo_root = Path.cwd()
        self._creds_path = repo_root / CREDENTIALS_DIR / CREDENTIALS_FILE
        self._credentials: Optional[ProviderCredentials] = None

    @property
    def credentials(self) -> Optional[ProviderCredentials]:
        return self._credentials

    def load_credentials(self) -> Optional[ProviderCredentials]:
        """Load credentials from disk. Returns None if file doesn't exist or is corrupt."""
        if not self._creds_path.exists():
            return None
        try:
            data = json.loads(self._creds_path.read_text())
            self._credentials = ProviderCredentials.from_dict(data)
            return self._credentials
        except (json.JSONDecodeError, TypeError, KeyError) as e:
            logger.warning(f"Corrupt credentials file, ignoring: {e}")
            return None

    def save_credentials(self) -> None:
        if self._credentials is None:
            return
        self._creds_path.parent.mkdir(parents=True, exist_ok=True)
        self._creds_path.write_text(json.dumps(self._credentials.to_dict(), indent=2))

    def set_access_token(self, access_token: str, expires_in: float = 3600) -> None:
        """Store a token obtained elsewhere (e.g. the sign-in flow)."""
        if self._credentials is None:
            self._credentials = ProviderCredentials()
        self._credentials.access_token = access_token
        self._credentials.token_expires_at = time.time() + expires_in
        self.save_credentials()

    def refresh(self) -> str:
        """Exchange the refresh token for a new access token."""
        creds = self._credentials
        if creds is None or not creds.can_refresh():
            raise SessionExpired("No refresh token available. Please sign in again.")

        try:
            resp = requests.post(
                TOKEN_URL,
                data={
                    "client_id": creds.client_id,
                    "client_secret": creds.client_secret,
                    "refresh_token": creds.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=15,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise SessionExpired(f"Token refresh failed: {e}") from e

        if not data.get("access_token"):
            raise SessionExpired("Token refresh returned no access token")

        creds.access_token = data["access_token"]
        creds.token_expires_at = time.time() + data.get("expires_in", 3600)
        self.save_credentials()
        logger.info("Refreshed provider access token")
        return creds.access_token

    def ensure_token(self) -> str:
        """Valid access token, refreshing if possible; empty string when anonymous."""
        creds = self._credentials or self.load_credentials()
        if creds is None:
            logger.info("No provider credentials, using anonymous access")
            return ""
        if creds.is_token_valid():
            return creds.access_token
        if creds.can_refresh():
            try:
                return self.refresh()
            except SessionExpired as e:
                logger.warning(f"{e}")
                return ""
        return ""
