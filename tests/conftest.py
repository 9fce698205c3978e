"""
Shared test fixtures for the Gmail alert agent tests.
"""

import pytest

from gmail_alert_agent.config import (
    AppConfig,
    GmailAuthConfig,
    MailboxQueryConfig,
    TelegramConfig,
)

ENV_VARS = [
    "KEYWORDS", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID", "TELEGRAM_API_BASE",
    "TELEGRAM_TIMEOUT", "AUTH_MODE", "CLIENT_ID", "CLIENT_SECRET", "REDIRECT_URI",
    "ACCESS_TOKEN", "REFRESH_TOKEN", "SCOPE", "TOKEN_TYPE", "CREDENTIALS_FILE",
    "CREDENTIALS_BASE64_FILE", "TOKEN_FILE", "TOKEN_BASE64_FILE", "GMAIL_QUERY",
    "MAX_RESULTS", "DEDUP_ENABLED", "SCHEDULE_MODE", "RUN_ON_START", "PORT",
    "KEEPALIVE_ENABLED", "KEEPALIVE_HOST",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep values from the developer's shell or .env out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_config():
    """Factory fixture for AppConfig objects."""
    def _make_config(keywords=("invoice",), dedup_enabled=True, max_results=10):
        return AppConfig(
            keywords=list(keywords),
            gmail_auth=GmailAuthConfig(
                mode="direct",
                client_id="client-id",
                client_secret="client-secret",
                access_token="access",
                refresh_token="refresh",
            ),
            telegram=TelegramConfig(bot_token="123:abc", chat_id="42"),
            mailbox=MailboxQueryConfig(query="is:unread", max_results=max_results),
            dedup_enabled=dedup_enabled,
        )
    return _make_config
