from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from services.errors import AuthError, MissingCredentials, TransientProviderError

LOGGER = logging.getLogger(__name__)
SCOPES: Iterable[str] = (
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.labels",
    "https://www.googleapis.com/auth/gmail.send",
    "https://www.googleapis.com/auth/gmail.modify",
)
REQUIRED_FIELDS = ("refresh_token", "client_id", "client_secret")


class CredentialStore:
    """JSON token file holding the delegated Gmail credentials."""

    def __init__(self, token_file: Path, scopes: Iterable[str] = SCOPES):
        self._token_file = token_file
        self._scopes = list(scopes)

    @property
    def token_file(self) -> Path:
        return self._token_file

    def exists(self) -> bool:
        return self._token_file.exists()

    def save(self, creds: Credentials) -> None:
        LOGGER.debug("Persisting OAuth tokens to %s", self._token_file)
        self._token_file.parent.mkdir(parents=True, exist_ok=True)
        self._token_file.write_text(creds.to_json(), encoding="utf-8")
        LOGGER.info("Token stored to %s", self._token_file)

    def load(self) -> Credentials:
        if not self._token_file.exists():
            raise MissingCredentials(f"No token file at {self._token_file}; authorize first")
        try:
            data = json.loads(self._token_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise MissingCredentials(f"Unreadable token file {self._token_file}: {exc}") from exc
        if not isinstance(data, dict):
            raise MissingCredentials(f"Token file {self._token_file} does not hold a JSON object")
        missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
        if missing:
            raise MissingCredentials(f"Token file {self._token_file} lacks {', '.join(missing)}")
        try:
            return Credentials.from_authorized_user_info(data, self._scopes)
        except ValueError as exc:
            raise MissingCredentials(f"Malformed token file {self._token_file}: {exc}") from exc

    def valid_credentials(self) -> Credentials:
        """Return usable credentials, refreshing and persisting an expired token."""

        creds = self.load()
        if creds.valid:
            return creds
        if not creds.refresh_token:
            raise AuthError("Stored token expired and carries no refresh token")

        LOGGER.info("Refreshing expired Gmail token")
        try:
            creds.refresh(Request())
        except RefreshError as exc:
            raise AuthError(f"Token refresh was refused: {exc}") from exc
        except TransportError as exc:
            raise TransientProviderError(f"Token refresh failed: {exc}") from exc
        self.save(creds)
        return creds
