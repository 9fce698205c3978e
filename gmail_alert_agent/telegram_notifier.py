"""Telegram notification module."""

import logging

import requests

from .config import TelegramConfig

logger = logging.getLogger(__name__)

GMAIL_LINK_TEMPLATE = "https://mail.google.com/mail/u/0/#inbox/{message_id}"
ALERT_TEMPLATE = (
    "\U0001F4E7 *New Email Matched Keyword!*\n"
    "*Subject:* {subject}\n"
    "\U0001F517 [Open Email]({link})"
)

# Characters with meaning in Telegram's legacy Markdown mode.
_MARKDOWN_SPECIAL = ("_", "*", "`", "[")


class NotificationError(Exception):
    """Raised when the Telegram API does not accept a message."""


def build_gmail_link(message_id: str) -> str:
    """Deep link that opens the message in the Gmail web UI."""
    return GMAIL_LINK_TEMPLATE.format(message_id=message_id)


def escape_markdown(text: str) -> str:
    for char in _MARKDOWN_SPECIAL:
        text = text.replace(char, "\\" + char)
    return text


def format_alert(subject: str, message_id: str) -> str:
    """Render the alert text for a matched message."""
    return ALERT_TEMPLATE.format(
        subject=escape_markdown(subject or ""),
        link=build_gmail_link(message_id),
    )


def send_telegram_message(text: str, config: TelegramConfig) -> dict:
    """
    Send a Markdown message to the configured chat.

    Args:
        text: Message text.
        config: Telegram configuration.

    Returns:
        The `result` object from the Bot API response.

    Raises:
        NotificationError: If the request fails or the API reports an error.
    """
    url = f"{config.api_base}/bot{config.bot_token}/sendMessage"
    payload = {
        "chat_id": config.chat_id,
        "text": text,
        "parse_mode": "Markdown",
    }

    try:
        response = requests.post(url, json=payload, timeout=config.timeout)
        response.raise_for_status()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        if status == 401:
            logger.error(
                "Telegram authentication failed (401). "
                "Check TELEGRAM_BOT_TOKEN; the token may have been revoked via @BotFather."
            )
        elif status in (400, 403):
            logger.error(
                f"Telegram rejected the message ({status}). "
                f"Check TELEGRAM_CHAT_ID and that the bot was added to the chat."
            )
        else:
            logger.error(f"Telegram API error: HTTP {status}")
        raise NotificationError(f"Telegram API returned HTTP {status}") from e
    except requests.RequestException as e:
        # Exception text may contain the URL, and with it the bot token.
        logger.error(f"Failed to reach Telegram API: {type(e).__name__}")
        raise NotificationError(f"Telegram request failed: {type(e).__name__}") from e

    try:
        data = response.json()
    except ValueError as e:
        raise NotificationError("Telegram API returned a non-JSON response") from e

    if not data.get("ok"):
        description = data.get("description", "unknown error")
        logger.error(f"Telegram API error: {description}")
        raise NotificationError(f"Telegram API error: {description}")

    return data.get("result", {})


def notify_match(subject: str, message_id: str, config: TelegramConfig) -> None:
    """Send the alert for one matched message."""
    send_telegram_message(format_alert(subject, message_id), config)
    logger.info(f"Telegram alert sent for message {message_id}")
