"""
Tests for auth.py - authenticators and base64 artifacts.
"""

import base64
import binascii
import datetime
import json
from unittest.mock import Mock, patch

import pytest
import requests

from gmail_alert_agent.auth import (
    TOKEN_URI,
    AuthError,
    DirectTokenAuthenticator,
    InteractiveAuthenticator,
    create_authenticator,
    decode_base64_artifact,
    decode_base64_artifacts,
)
from gmail_alert_agent.config import DEFAULT_SCOPE, GmailAuthConfig

CLIENT_SECRETS = {
    "installed": {
        "client_id": "cid.apps.googleusercontent.com",
        "client_secret": "secret",
        "redirect_uris": ["urn:ietf:wg:oauth:2.0:oob", "http://localhost"],
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
    }
}

STORED_TOKEN = {
    "token": "stored-access",
    "refresh_token": "stored-refresh",
    "token_uri": "https://oauth2.googleapis.com/token",
    "client_id": "cid.apps.googleusercontent.com",
    "client_secret": "secret",
    "scopes": [DEFAULT_SCOPE],
}

# Raw token endpoint response with expiry in epoch milliseconds.
BARE_TOKEN = {
    "access_token": "bare-access",
    "refresh_token": "bare-refresh",
    "scope": DEFAULT_SCOPE,
    "token_type": "Bearer",
    "expiry_date": 1704067200000,
}


def interactive_config(tmp_path, **overrides):
    values = dict(
        mode="interactive",
        credentials_file=str(tmp_path / "credentials.json"),
        credentials_base64_file=str(tmp_path / "credentials.txt"),
        token_file=str(tmp_path / "token.json"),
        token_base64_file=str(tmp_path / "token.base64"),
    )
    values.update(overrides)
    return GmailAuthConfig(**values)


class TestBase64Artifacts:

    def test_decodes_when_plain_file_missing(self, tmp_path):
        encoded = tmp_path / "token.base64"
        decoded = tmp_path / "token.json"
        encoded.write_text(base64.b64encode(b'{"token": "x"}').decode() + "\n")

        assert decode_base64_artifact(str(encoded), str(decoded)) is True
        assert json.loads(decoded.read_text()) == {"token": "x"}

    def test_existing_plain_file_is_kept(self, tmp_path):
        encoded = tmp_path / "token.base64"
        decoded = tmp_path / "token.json"
        encoded.write_text(base64.b64encode(b'{"token": "new"}').decode())
        decoded.write_text('{"token": "old"}')

        assert decode_base64_artifact(str(encoded), str(decoded)) is False
        assert decoded.read_text() == '{"token": "old"}'

    def test_nothing_to_decode(self, tmp_path):
        assert decode_base64_artifact(str(tmp_path / "a"), str(tmp_path / "b")) is False
        assert not (tmp_path / "b").exists()

    def test_malformed_base64_fails_fast(self, tmp_path):
        encoded = tmp_path / "credentials.txt"
        encoded.write_text("not base64!")
        with pytest.raises(binascii.Error):
            decode_base64_artifact(str(encoded), str(tmp_path / "credentials.json"))

    def test_decodes_both_artifacts(self, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "credentials.txt").write_text(base64.b64encode(json.dumps(CLIENT_SECRETS).encode()).decode())
        (tmp_path / "token.base64").write_text(base64.b64encode(json.dumps(STORED_TOKEN).encode()).decode())

        decode_base64_artifacts(config)

        assert json.loads((tmp_path / "credentials.json").read_text()) == CLIENT_SECRETS
        assert json.loads((tmp_path / "token.json").read_text()) == STORED_TOKEN


class TestDirectTokenAuthenticator:

    def test_builds_credentials_from_config(self):
        config = GmailAuthConfig(
            mode="direct",
            client_id="cid",
            client_secret="secret",
            access_token="access",
            refresh_token="refresh",
            scope="scope-a scope-b",
        )

        credentials = DirectTokenAuthenticator(config).get_credentials()

        assert credentials.token == "access"
        assert credentials.refresh_token == "refresh"
        assert credentials.client_id == "cid"
        assert credentials.client_secret == "secret"
        assert credentials.token_uri == TOKEN_URI
        assert list(credentials.scopes) == ["scope-a", "scope-b"]

    def test_each_call_builds_a_fresh_handle(self):
        authenticator = DirectTokenAuthenticator(GmailAuthConfig(mode="direct", access_token="a"))
        assert authenticator.get_credentials() is not authenticator.get_credentials()

    def test_rejects_non_bearer_token_type(self):
        config = GmailAuthConfig(mode="direct", access_token="a", token_type="MAC")
        with pytest.raises(AuthError):
            DirectTokenAuthenticator(config).get_credentials()

    def test_token_type_case_insensitive(self):
        config = GmailAuthConfig(mode="direct", access_token="a", token_type="bearer")
        assert DirectTokenAuthenticator(config).get_credentials().token == "a"


class TestInteractiveAuthenticator:

    def test_reuses_stored_token(self, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "token.json").write_text(json.dumps(STORED_TOKEN))
        prompt = Mock()

        credentials = InteractiveAuthenticator(config, prompt=prompt, open_browser=None).get_credentials()

        assert credentials.token == "stored-access"
        assert credentials.refresh_token == "stored-refresh"
        prompt.assert_not_called()

    def test_bare_token_response_with_credentials_file(self, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "credentials.json").write_text(json.dumps(CLIENT_SECRETS))
        (tmp_path / "token.json").write_text(json.dumps(BARE_TOKEN))

        credentials = InteractiveAuthenticator(config, prompt=Mock(), open_browser=None).get_credentials()

        assert credentials.token == "bare-access"
        assert credentials.refresh_token == "bare-refresh"
        assert credentials.client_id == "cid.apps.googleusercontent.com"
        assert credentials.client_secret == "secret"
        assert credentials.token_uri == TOKEN_URI
        assert credentials.expiry == datetime.datetime(2024, 1, 1, 0, 0, 0)

    def test_bare_token_response_with_client_fields(self, tmp_path):
        config = interactive_config(tmp_path, client_id="env-cid", client_secret="env-secret")
        (tmp_path / "token.json").write_text(json.dumps(BARE_TOKEN))

        credentials = InteractiveAuthenticator(config, prompt=Mock(), open_browser=None).get_credentials()

        assert credentials.token == "bare-access"
        assert credentials.client_id == "env-cid"
        assert credentials.client_secret == "env-secret"

    def test_bare_token_response_without_client_fields_fails_fast(self, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "token.json").write_text(json.dumps(BARE_TOKEN))
        with pytest.raises(ValueError):
            InteractiveAuthenticator(config, prompt=Mock(), open_browser=None).get_credentials()

    def test_malformed_token_file_fails_fast(self, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "token.json").write_text("{not json")
        with pytest.raises(ValueError):
            InteractiveAuthenticator(config, prompt=Mock(), open_browser=None).get_credentials()

    @patch("gmail_alert_agent.auth.Flow")
    def test_consent_flow_stores_token_and_mirror(self, mock_flow_cls, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "credentials.json").write_text(json.dumps(CLIENT_SECRETS))

        flow = mock_flow_cls.from_client_config.return_value
        flow.authorization_url.return_value = ("https://accounts.google.com/o/oauth2/auth?x=1", "state")
        flow.credentials.to_json.return_value = json.dumps(STORED_TOKEN)
        open_browser = Mock()
        prompt = Mock(return_value=" the-code \n")

        credentials = InteractiveAuthenticator(config, prompt=prompt, open_browser=open_browser).get_credentials()

        assert credentials is flow.credentials
        mock_flow_cls.from_client_config.assert_called_once_with(
            CLIENT_SECRETS, scopes=[DEFAULT_SCOPE], redirect_uri="urn:ietf:wg:oauth:2.0:oob"
        )
        flow.authorization_url.assert_called_once_with(access_type="offline")
        open_browser.assert_called_once_with("https://accounts.google.com/o/oauth2/auth?x=1")
        flow.fetch_token.assert_called_once_with(code="the-code")

        assert json.loads((tmp_path / "token.json").read_text()) == STORED_TOKEN
        mirror = (tmp_path / "token.base64").read_text()
        assert json.loads(base64.b64decode(mirror)) == STORED_TOKEN

    @patch("gmail_alert_agent.auth.Flow")
    def test_failed_exchange_raises_auth_error(self, mock_flow_cls, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "credentials.json").write_text(json.dumps(CLIENT_SECRETS))
        flow = mock_flow_cls.from_client_config.return_value
        flow.authorization_url.return_value = ("https://auth", "state")
        flow.fetch_token.side_effect = requests.ConnectionError("down")

        with pytest.raises(AuthError):
            InteractiveAuthenticator(config, prompt=Mock(return_value="code"), open_browser=None).get_credentials()
        assert not (tmp_path / "token.json").exists()

    @patch("gmail_alert_agent.auth.Flow")
    def test_empty_code_raises_auth_error(self, mock_flow_cls, tmp_path):
        config = interactive_config(tmp_path)
        (tmp_path / "credentials.json").write_text(json.dumps(CLIENT_SECRETS))
        mock_flow_cls.from_client_config.return_value.authorization_url.return_value = ("https://auth", "s")

        with pytest.raises(AuthError):
            InteractiveAuthenticator(config, prompt=Mock(return_value="  "), open_browser=None).get_credentials()

    @patch("gmail_alert_agent.auth.Flow")
    def test_client_config_from_env_fields(self, mock_flow_cls, tmp_path):
        config = interactive_config(
            tmp_path, client_id="cid", client_secret="secret", redirect_uri="http://localhost:8080"
        )
        flow = mock_flow_cls.from_client_config.return_value
        flow.authorization_url.return_value = ("https://auth", "state")
        flow.credentials.to_json.return_value = "{}"

        InteractiveAuthenticator(config, prompt=Mock(return_value="code"), open_browser=None).get_credentials()

        client_config = mock_flow_cls.from_client_config.call_args.args[0]
        assert client_config["installed"]["client_id"] == "cid"
        assert mock_flow_cls.from_client_config.call_args.kwargs["redirect_uri"] == "http://localhost:8080"

    def test_missing_client_configuration_fails_fast(self, tmp_path):
        config = interactive_config(tmp_path)
        with pytest.raises(ValueError):
            InteractiveAuthenticator(config, prompt=Mock(), open_browser=None).get_credentials()


def test_create_authenticator():
    assert isinstance(create_authenticator(GmailAuthConfig(mode="direct")), DirectTokenAuthenticator)
    assert isinstance(create_authenticator(GmailAuthConfig(mode="interactive")), InteractiveAuthenticator)
