"""Gmail API client for listing and fetching unread messages."""

import logging
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from .models import MessageDetail, MessageSummary

logger = logging.getLogger(__name__)

# Errors from the API, token refresh or the network.
API_ERRORS = (HttpError, HttpLib2Error, GoogleAuthError, OSError)


class MailboxError(Exception):
    """Raised when a Gmail API call fails."""


def _get_header(headers: List[Dict[str, str]], name: str) -> Optional[str]:
    """Return the value of the first header called `name`, or None."""
    for header in headers or []:
        if header.get("name") == name:
            return header.get("value", "")
    return None


def parse_message_detail(data: Dict[str, Any]) -> MessageDetail:
    """Build a MessageDetail from a users.messages.get response."""
    headers = data.get("payload", {}).get("headers", [])
    subject = _get_header(headers, "Subject") or ""
    snippet = data.get("snippet") or ""
    return MessageDetail(
        id=data["id"],
        snippet=snippet.lower(),
        subject=subject.lower(),
        display_subject=subject,
    )


class GmailClient:
    """Thin wrapper over the Gmail v1 messages resource."""

    def __init__(self, credentials, user_id: str = "me", service=None):
        """
        Args:
            credentials: google.oauth2 credentials for the mailbox.
            user_id: Gmail user ("me" is the authenticated user).
            service: Prebuilt API resource; built from credentials if omitted.

        Raises:
            MailboxError: If the API resource cannot be built.
        """
        self.user_id = user_id
        if service is None:
            try:
                service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
            except API_ERRORS as e:
                raise MailboxError(f"Could not build Gmail service: {e}") from e
        self.service = service

    def list_unread(self, query: str = "is:unread", max_results: int = 10) -> List[MessageSummary]:
        """
        List message summaries matching `query`, newest first.

        Only the first page is read, so at most `max_results` summaries are
        returned even if more messages match.

        Raises:
            MailboxError: On API or transport failure.
        """
        try:
            response = self.service.users().messages().list(
                userId=self.user_id, q=query, maxResults=max_results
            ).execute()
        except API_ERRORS as e:
            raise MailboxError(f"Listing messages failed: {e}") from e

        messages = response.get("messages") or []
        if response.get("nextPageToken"):
            logger.debug(f"More than {max_results} messages match {query!r}; only the first page is processed")
        return [
            MessageSummary(id=item["id"], thread_id=item.get("threadId", ""))
            for item in messages
        ]

    def get_message(self, message_id: str) -> MessageDetail:
        """
        Fetch one message and extract its snippet and subject.

        Raises:
            MailboxError: On API or transport failure, or a malformed response.
        """
        try:
            data = self.service.users().messages().get(
                userId=self.user_id, id=message_id
            ).execute()
        except API_ERRORS as e:
            raise MailboxError(f"Fetching message {message_id} failed: {e}") from e

        try:
            return parse_message_detail(data)
        except (KeyError, AttributeError, TypeError) as e:
            raise MailboxError(f"Malformed response for message {message_id}: {e}") from e
