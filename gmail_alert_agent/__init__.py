"""Gmail keyword alert agent: polls unread mail and alerts a Telegram chat."""
