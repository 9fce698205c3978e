"""Poll-and-notify loop: list unread mail, match keywords, alert once."""

import logging
import threading
from typing import Callable, List, Optional, Set

from .config import AppConfig, TelegramConfig, load_keywords
from .gmail_client import GmailClient, MailboxError
from .matcher import first_match
from .models import CycleResult
from .telegram_notifier import NotificationError, notify_match

logger = logging.getLogger(__name__)

SendFn = Callable[[str, str, TelegramConfig], None]


class PollLoop:
    """
    Long-lived owner of the poll cycle and its notified-ID set.

    The notified-ID set lives in memory only and starts empty on every
    process start. With deduplication disabled the set is None and a message
    that stays unread and matching is alerted on every cycle.
    """

    def __init__(
        self,
        config: AppConfig,
        client_factory: Callable[..., GmailClient] = GmailClient,
        send_fn: Optional[SendFn] = None,
        keywords_provider: Optional[Callable[[], List[str]]] = None,
    ):
        """
        Args:
            config: Application configuration.
            client_factory: credentials -> GmailClient.
            send_fn: (subject, message_id, telegram_config) -> None.
                     Defaults to telegram_notifier.notify_match.
            keywords_provider: Returns the keyword list for a cycle.
                               Defaults to re-reading KEYWORDS from the environment.
        """
        self.config = config
        self.client_factory = client_factory
        self.send_fn = send_fn or notify_match
        self.keywords_provider = keywords_provider or (
            lambda: load_keywords(default=config.keywords)
        )
        self.notified_ids: Optional[Set[str]] = set() if config.dedup_enabled else None
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Forget every notified ID."""
        with self._lock:
            if self.notified_ids is not None:
                self.notified_ids.clear()

    def run_cycle(self, credentials) -> CycleResult:
        """
        Run one list -> fetch -> match -> notify cycle.

        Cycles are serialized; a call made while another cycle is running
        waits for it to finish.
        """
        with self._lock:
            return self._run_cycle(credentials)

    def _run_cycle(self, credentials) -> CycleResult:
        result = CycleResult()
        mailbox = self.config.mailbox

        try:
            client = self.client_factory(credentials)
            summaries = client.list_unread(mailbox.query, mailbox.max_results)
        except MailboxError as e:
            logger.error(f"Gmail API error, skipping this cycle: {e}")
            result.aborted = True
            return result

        result.listed = len(summaries)
        if not summaries:
            logger.info("No unread messages")
            return result

        keywords = self.keywords_provider()
        if not keywords:
            logger.warning("Keyword list is empty; no message can match")

        logger.info(f"Checking {len(summaries)} unread message(s) against {len(keywords)} keyword(s)")

        for summary in summaries:
            if self.notified_ids is not None and summary.id in self.notified_ids:
                logger.debug(f"Message {summary.id} already notified, skipping")
                result.skipped_seen += 1
                continue

            try:
                detail = client.get_message(summary.id)
            except MailboxError as e:
                logger.error(f"Skipping message {summary.id}: {e}")
                result.failed += 1
                continue
            result.fetched += 1

            keyword = first_match(keywords, detail.snippet, detail.subject)
            if keyword is None:
                continue

            result.matched += 1
            logger.info(f"Message {detail.id} matched keyword {keyword!r}")

            try:
                self.send_fn(detail.display_subject, detail.id, self.config.telegram)
                result.notified += 1
            except NotificationError as e:
                logger.warning(f"Alert for message {detail.id} not delivered: {e}")
                result.failed += 1

            # Recorded after the attempt, delivered or not; failed alerts are not retried.
            if self.notified_ids is not None:
                self.notified_ids.add(detail.id)

        logger.info(
            f"Cycle done: {result.listed} listed, {result.fetched} fetched, "
            f"{result.matched} matched, {result.notified} notified, "
            f"{result.skipped_seen} already notified, {result.failed} failed"
        )
        return result
