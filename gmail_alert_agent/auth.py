"""Gmail OAuth authenticators."""

import base64
import json
import logging
import os
import webbrowser
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

import requests
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from .config import DEFAULT_SCOPE, GmailAuthConfig

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"


class AuthError(Exception):
    """Raised when a usable credential handle cannot be produced."""


def _scopes(config: GmailAuthConfig) -> list:
    return (config.scope or DEFAULT_SCOPE).split()


def decode_base64_artifact(encoded_path: str, decoded_path: str) -> bool:
    """
    Write `decoded_path` from the base64 text in `encoded_path`.

    Only runs when the decoded file is absent and the encoded one exists.
    Malformed base64 raises binascii.Error.

    Returns:
        True if a file was written.
    """
    if os.path.exists(decoded_path) or not os.path.exists(encoded_path):
        return False

    with open(encoded_path, "r", encoding="utf-8") as f:
        encoded = f.read()
    decoded = base64.b64decode(encoded.strip()).decode("utf-8")

    with open(decoded_path, "w", encoding="utf-8") as f:
        f.write(decoded)
    logger.info(f"Decoded {encoded_path} -> {decoded_path}")
    return True


def decode_base64_artifacts(config: GmailAuthConfig) -> None:
    """Restore credentials/token files from their base64 mirrors if needed."""
    decode_base64_artifact(config.credentials_base64_file, config.credentials_file)
    decode_base64_artifact(config.token_base64_file, config.token_file)


class Authenticator(ABC):
    """Produces credentials the Gmail API accepts."""

    @abstractmethod
    def get_credentials(self) -> Credentials:
        """
        Build a credential handle for one poll cycle.

        Raises:
            AuthError: If no usable credentials can be produced.
        """
        pass


class DirectTokenAuthenticator(Authenticator):
    """Builds credentials straight from configured token fields."""

    def __init__(self, config: GmailAuthConfig):
        self.config = config

    def get_credentials(self) -> Credentials:
        token_type = (self.config.token_type or "Bearer").strip()
        if token_type.lower() != "bearer":
            raise AuthError(f"Unsupported TOKEN_TYPE {token_type!r}; only Bearer tokens are accepted")

        return Credentials(
            token=self.config.access_token,
            refresh_token=self.config.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            scopes=_scopes(self.config),
        )


class InteractiveAuthenticator(Authenticator):
    """
    Reuses a stored token file, or runs the manual OAuth consent flow.

    The consent flow prints the authorization URL, tries to open it in a
    browser, reads the code the operator pastes back and exchanges it for a
    token. The token is written to `token_file` and, base64 encoded, to
    `token_base64_file` so it can be kept as a single-line secret.
    """

    def __init__(
        self,
        config: GmailAuthConfig,
        prompt: Callable[[str], str] = input,
        open_browser: Optional[Callable[[str], bool]] = webbrowser.open,
    ):
        self.config = config
        self.prompt = prompt
        self.open_browser = open_browser

    def get_credentials(self) -> Credentials:
        if os.path.exists(self.config.token_file):
            logger.debug(f"Using stored token from {self.config.token_file}")
            return Credentials.from_authorized_user_info(self._load_stored_token(), _scopes(self.config))
        return self._request_new_token()

    def _load_stored_token(self) -> dict:
        """
        Read `token_file` as authorized-user info.

        Also accepts the bare token response shape
        (access_token, refresh_token, scope, token_type, expiry_date in ms),
        which carries no client fields; those come from CLIENT_ID/CLIENT_SECRET
        or credentials.json.

        Raises:
            ValueError: If the file is not JSON or no client fields are available.
        """
        with open(self.config.token_file, "r", encoding="utf-8") as f:
            info = json.load(f)

        if "token" not in info and "access_token" in info:
            info["token"] = info.pop("access_token")
        if "scopes" not in info and info.get("scope"):
            info["scopes"] = info.pop("scope").split()
        if "expiry" not in info and info.get("expiry_date"):
            expiry = datetime.fromtimestamp(info.pop("expiry_date") / 1000, tz=timezone.utc)
            info["expiry"] = expiry.strftime("%Y-%m-%dT%H:%M:%S")
        info.setdefault("token_uri", TOKEN_URI)

        if not (info.get("client_id") and info.get("client_secret")):
            client_id, client_secret = self.config.client_id, self.config.client_secret
            if not (client_id and client_secret):
                section = self._client_section()
                client_id, client_secret = section.get("client_id"), section.get("client_secret")
            if not (client_id and client_secret):
                raise ValueError(
                    f"{self.config.token_file} has no client_id/client_secret and none are configured"
                )
            info["client_id"], info["client_secret"] = client_id, client_secret
        return info

    def _client_section(self) -> dict:
        if not os.path.exists(self.config.credentials_file):
            return {}
        with open(self.config.credentials_file, "r", encoding="utf-8") as f:
            client_config = json.load(f)
        return client_config.get("installed") or client_config.get("web") or {}

    def _client_config(self) -> dict:
        """Client secrets from credentials.json, or from CLIENT_ID/CLIENT_SECRET/REDIRECT_URI."""
        if os.path.exists(self.config.credentials_file):
            with open(self.config.credentials_file, "r", encoding="utf-8") as f:
                return json.load(f)

        if self.config.client_id and self.config.client_secret and self.config.redirect_uri:
            return {
                "installed": {
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "redirect_uris": [self.config.redirect_uri],
                    "auth_uri": AUTH_URI,
                    "token_uri": TOKEN_URI,
                }
            }

        raise ValueError(
            f"No OAuth client configuration: {self.config.credentials_file} not found "
            "and CLIENT_ID/CLIENT_SECRET/REDIRECT_URI are not all set"
        )

    def _request_new_token(self) -> Credentials:
        client_config = self._client_config()
        section = client_config.get("installed") or client_config.get("web")
        if not section:
            raise ValueError(f"{self.config.credentials_file} has no 'installed' or 'web' section")
        redirect_uri = self.config.redirect_uri or section["redirect_uris"][0]

        flow = Flow.from_client_config(
            client_config,
            scopes=_scopes(self.config),
            redirect_uri=redirect_uri,
        )
        auth_url, _ = flow.authorization_url(access_type="offline")
        print(f"Authorize this app by visiting this URL: {auth_url}")
        if self.open_browser:
            try:
                self.open_browser(auth_url)
            except webbrowser.Error as e:
                logger.debug(f"Could not open browser: {e}")

        code = self.prompt("Enter the code from the page: ").strip()
        if not code:
            raise AuthError("No authorization code entered")

        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, requests.RequestException) as e:
            logger.error(f"Error retrieving token: {e}")
            raise AuthError(f"Token exchange failed: {e}") from e

        credentials = flow.credentials
        self._store_token(credentials.to_json())
        return credentials

    def _store_token(self, token_json: str) -> None:
        with open(self.config.token_file, "w", encoding="utf-8") as f:
            f.write(token_json)
        logger.info(f"Token stored to {self.config.token_file}")

        if self.config.token_base64_file:
            encoded = base64.b64encode(token_json.encode("utf-8")).decode("ascii")
            with open(self.config.token_base64_file, "w", encoding="utf-8") as f:
                f.write(encoded)
            logger.info(f"Encoded {self.config.token_file} -> {self.config.token_base64_file}")


def create_authenticator(config: GmailAuthConfig) -> Authenticator:
    """Create an authenticator based on configuration."""
    if config.mode == "direct":
        return DirectTokenAuthenticator(config)
    return InteractiveAuthenticator(config)
