"""Data models for mailbox messages and poll cycles."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MessageSummary:
    """One entry returned by the unread-message list call."""
    id: str
    thread_id: str = ""


@dataclass
class MessageDetail:
    """Fields of a fetched message used for matching and alerting."""
    id: str
    snippet: str          # lowercased
    subject: str          # lowercased, "" when no Subject header
    display_subject: str  # original case, shown in the alert


@dataclass
class CycleResult:
    """Counters for one list -> fetch -> match -> notify cycle."""
    listed: int = 0
    fetched: int = 0
    matched: int = 0
    notified: int = 0
    skipped_seen: int = 0
    failed: int = 0
    aborted: bool = False
