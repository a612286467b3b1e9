"""Credential Authority: the one place the session token comes from."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build

from gmail_tui.core.exceptions import AuthenticationError
from gmail_tui.core.models import Token

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
]
TOKEN_FILE = Path("gmail-tui") / "token.json"


def default_token_path() -> Path:
    """Token cache under the user's config directory ($XDG_CONFIG_HOME or ~/.config)."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / TOKEN_FILE


def _run_local_server(flow: InstalledAppFlow) -> Credentials:
    return flow.run_local_server(port=0)


class CredentialAuthority:
    """Hand out a usable token: cached, refreshed, or freshly consented.

    The cache file holds the authorized-user JSON written by google-auth, so it
    carries everything needed for a later refresh. It is created owner-only.
    """

    def __init__(
        self,
        credentials_path: Path,
        token_path: Path | None = None,
        *,
        scopes: list[str] | None = None,
        consent: Callable[[InstalledAppFlow], Credentials] = _run_local_server,
    ) -> None:
        self.credentials_path = credentials_path
        self.token_path = token_path or default_token_path()
        self.scopes = scopes or SCOPES
        self._consent = consent

    def credentials(self) -> Credentials:
        """Return valid google credentials, running the consent flow only as a last resort.

        Raises:
            AuthenticationError: If no usable credentials can be obtained.
        """
        cached = self._load_cached()
        if cached is not None:
            if cached.valid:
                logger.debug("Using cached token from %s", self.token_path)
                return cached
            refreshed = self._refresh(cached)
            if refreshed is not None:
                return refreshed

        return self._consent_flow()

    def get_token(self) -> Token:
        creds = self.credentials()
        if not creds.token:
            raise AuthenticationError("Credentials carry no access token")
        token = Token.from_credentials(creds)
        if not token.can_refresh:
            logger.warning("Token cannot be refreshed; the session ends when it expires")
        return token

    def _load_cached(self) -> Credentials | None:
        if not self.token_path.exists():
            return None
        try:
            creds = Credentials.from_authorized_user_file(str(self.token_path), self.scopes)
        except (ValueError, OSError) as e:
            logger.warning("Ignoring unreadable token cache %s: %s", self.token_path, e)
            return None
        if not creds.has_scopes(self.scopes):
            logger.info("Cached token lacks required scopes, asking for consent again")
            return None
        return creds

    def _refresh(self, creds: Credentials) -> Credentials | None:
        if not (creds.expired and creds.refresh_token):
            return None
        try:
            creds.refresh(Request())
        except GoogleAuthError as e:
            logger.warning("Token refresh failed, asking for consent again: %s", e)
            return None
        self._store(creds)
        logger.info("Refreshed access token")
        return creds

    def _consent_flow(self) -> Credentials:
        if not self.credentials_path.exists():
            raise AuthenticationError(
                f"Credentials file not found: {self.credentials_path}. "
                "Download the OAuth client JSON from Google Cloud Console."
            )
        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                str(self.credentials_path), self.scopes
            )
            creds = self._consent(flow)
        except Exception as e:
            raise AuthenticationError(f"OAuth consent failed: {e}") from e
        self._store(creds)
        logger.info("Authorized, token cached at %s", self.token_path)
        return creds

    def _store(self, creds: Credentials) -> None:
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(creds.to_json())


def get_token(credentials_path: Path, token_path: Path | None = None) -> Token:
    """Obtain the session token. Called once at startup."""
    return CredentialAuthority(credentials_path, token_path).get_token()


def build_gmail_service(token: Token) -> Resource:
    """Build a Gmail API service resource.

    Requests are executed with a per-call authorized http (see GmailClient),
    so the resource itself is only used to shape requests.
    """
    return build("gmail", "v1", credentials=token.to_credentials(), cache_discovery=False)
