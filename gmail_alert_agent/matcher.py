"""Keyword matching against message snippet and subject."""

from typing import Optional, Sequence


def first_match(keywords: Sequence[str], snippet: str, subject: str) -> Optional[str]:
    """
    Return the first keyword found in the snippet or the subject.

    Matching is a case-insensitive substring test. Keywords are checked in
    order, so the result is deterministic for a given keyword list.

    Args:
        keywords: Keywords to look for.
        snippet: Message snippet.
        subject: Message subject ("" when the message has none).

    Returns:
        The matching keyword, or None if nothing matched.
    """
    snippet_lower = (snippet or "").lower()
    subject_lower = (subject or "").lower()

    for keyword in keywords:
        keyword_lower = keyword.lower()
        if not keyword_lower:
            continue
        if keyword_lower in snippet_lower or keyword_lower in subject_lower:
            return keyword
    return None


def matches(keywords: Sequence[str], snippet: str, subject: str) -> bool:
    """True if any keyword occurs in the snippet or the subject."""
    return first_match(keywords, snippet, subject) is not None
