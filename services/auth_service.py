from __future__ import annotations

import logging

from google_auth_oauthlib.flow import Flow

from services.credential_store import SCOPES, CredentialStore
from utils.config import AppConfig

LOGGER = logging.getLogger(__name__)
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"


class AuthService:
    """Run the web OAuth2 consent flow and hand the resulting tokens to the store."""

    def __init__(self, config: AppConfig, store: CredentialStore):
        self._config = config
        self._store = store

    def _flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self._config.redirect_uri],
            }
        }
        # The consent redirect and the callback are separate requests, so no PKCE verifier is kept.
        return Flow.from_client_config(
            client_config,
            scopes=list(SCOPES),
            redirect_uri=self._config.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        url, _state = self._flow().authorization_url(access_type="offline", prompt="consent")
        LOGGER.debug("Generated consent URL for redirect %s", self._config.redirect_uri)
        return url

    def exchange_code(self, code: str) -> None:
        flow = self._flow()
        flow.fetch_token(code=code)
        self._store.save(flow.credentials)
        LOGGER.info("Authorization completed; credentials saved")
