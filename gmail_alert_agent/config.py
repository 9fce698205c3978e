"""Configuration management."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"

AUTH_MODES = ("direct", "interactive")
SCHEDULE_MODES = ("interval", "daily")


@dataclass
class GmailAuthConfig:
    """Gmail OAuth configuration."""
    mode: str                  # "direct" (tokens from env) or "interactive"
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    scope: str = DEFAULT_SCOPE  # space-separated
    token_type: str = "Bearer"
    credentials_file: str = "credentials.json"
    credentials_base64_file: str = "credentials.txt"
    token_file: str = "token.json"
    token_base64_file: str = "token.base64"


@dataclass
class MailboxQueryConfig:
    """Which messages a cycle looks at."""
    query: str = "is:unread"
    max_results: int = 10  # no pagination beyond this cap


@dataclass
class TelegramConfig:
    """Telegram Bot API configuration."""
    bot_token: str
    chat_id: str
    api_base: str = "https://api.telegram.org"
    timeout: int = 30


@dataclass
class SchedulerConfig:
    """Scheduler configuration."""
    mode: str = "interval"   # "interval" or "daily"
    interval_hours: int = 3
    daily_at: str = "09:00"
    run_on_start: bool = True


@dataclass
class KeepAliveConfig:
    """Keep-alive HTTP listener configuration."""
    enabled: bool = False
    port: int = 8080
    host: str = "0.0.0.0"


@dataclass
class AppConfig:
    """Complete application configuration."""
    keywords: List[str]
    gmail_auth: GmailAuthConfig
    telegram: TelegramConfig
    mailbox: MailboxQueryConfig = field(default_factory=MailboxQueryConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    keepalive: KeepAliveConfig = field(default_factory=KeepAliveConfig)
    dedup_enabled: bool = True


def parse_keywords(value: Optional[str]) -> List[str]:
    """
    Parse a comma-separated keyword list.

    Keywords are trimmed and lowercased; empty entries are dropped and
    the original order is kept.
    """
    if not value:
        return []
    return [item.strip().lower() for item in value.split(",") if item.strip()]


def load_keywords(default: Optional[List[str]] = None) -> List[str]:
    """Re-read KEYWORDS from the environment, falling back to `default`."""
    keywords = parse_keywords(os.getenv("KEYWORDS"))
    if not keywords and default is not None:
        return list(default)
    return keywords


def _get_bool_env(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}")


def _load_auth_config(missing: List[str]) -> GmailAuthConfig:
    access_token = os.getenv("ACCESS_TOKEN")
    refresh_token = os.getenv("REFRESH_TOKEN")

    default_mode = "direct" if (access_token or refresh_token) else "interactive"
    mode = os.getenv("AUTH_MODE", default_mode).strip().lower()
    if mode not in AUTH_MODES:
        raise ValueError(f"AUTH_MODE must be one of {', '.join(AUTH_MODES)}, got {mode!r}")

    auth = GmailAuthConfig(
        mode=mode,
        client_id=os.getenv("CLIENT_ID"),
        client_secret=os.getenv("CLIENT_SECRET"),
        redirect_uri=os.getenv("REDIRECT_URI"),
        access_token=access_token,
        refresh_token=refresh_token,
        scope=os.getenv("SCOPE") or DEFAULT_SCOPE,
        token_type=os.getenv("TOKEN_TYPE") or "Bearer",
        credentials_file=os.getenv("CREDENTIALS_FILE", "credentials.json"),
        credentials_base64_file=os.getenv("CREDENTIALS_BASE64_FILE", "credentials.txt"),
        token_file=os.getenv("TOKEN_FILE", "token.json"),
        token_base64_file=os.getenv("TOKEN_BASE64_FILE", "token.base64"),
    )

    # Interactive mode validates its files when it authenticates.
    if mode == "direct":
        for key, value in (
            ("CLIENT_ID", auth.client_id),
            ("CLIENT_SECRET", auth.client_secret),
            ("ACCESS_TOKEN", auth.access_token),
            ("REFRESH_TOKEN", auth.refresh_token),
        ):
            if not value:
                missing.append(key)

    return auth


def load_config() -> AppConfig:
    """
    Load configuration from environment variables.

    Raises:
        ValueError: If required configuration values are missing or malformed.
    """
    missing: List[str] = []

    keywords = parse_keywords(os.getenv("KEYWORDS"))
    if not keywords:
        missing.append("KEYWORDS")

    bot_token = os.getenv("TELEGRAM_BOT_TOKEN")
    chat_id = os.getenv("TELEGRAM_CHAT_ID")
    if not bot_token:
        missing.append("TELEGRAM_BOT_TOKEN")
    if not chat_id:
        missing.append("TELEGRAM_CHAT_ID")

    gmail_auth = _load_auth_config(missing)

    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    schedule_mode = os.getenv("SCHEDULE_MODE", "interval").strip().lower()
    if schedule_mode not in SCHEDULE_MODES:
        raise ValueError(
            f"SCHEDULE_MODE must be one of {', '.join(SCHEDULE_MODES)}, got {schedule_mode!r}"
        )

    max_results = _get_int_env("MAX_RESULTS", 10)
    if max_results < 1:
        raise ValueError(f"MAX_RESULTS must be positive, got {max_results}")

    port = os.getenv("PORT")
    keepalive_enabled = _get_bool_env("KEEPALIVE_ENABLED", bool(port))

    return AppConfig(
        keywords=keywords,
        gmail_auth=gmail_auth,
        telegram=TelegramConfig(
            bot_token=bot_token,
            chat_id=chat_id,
            api_base=os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/"),
            timeout=_get_int_env("TELEGRAM_TIMEOUT", 30),
        ),
        mailbox=MailboxQueryConfig(
            query=os.getenv("GMAIL_QUERY", "is:unread"),
            max_results=max_results,
        ),
        scheduler=SchedulerConfig(
            mode=schedule_mode,
            run_on_start=_get_bool_env("RUN_ON_START", True),
        ),
        keepalive=KeepAliveConfig(
            enabled=keepalive_enabled,
            port=_get_int_env("PORT", 8080),
            host=os.getenv("KEEPALIVE_HOST", "0.0.0.0"),
        ),
        dedup_enabled=_get_bool_env("DEDUP_ENABLED", True),
    )
