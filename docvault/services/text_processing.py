"""
Text Normalization

Cleans raw extracted text before chunking: markup tags, the ampersand
entity, repost attribution prefixes, @-mentions, URLs and whitespace
runs. Also detects JSON payloads shaped like a collection of
social-media posts, which are indexed one post per chunk.

All functions are pure and total.
"""

from __future__ import annotations

import json
import re
from typing import Any

TAG_PATTERN = re.compile(r"<[^>]+>")
REPOST_PREFIX_PATTERN = re.compile(r"^RT\s+@\w+:\s*")
MENTION_PATTERN = re.compile(r"@\w+")
URL_PATTERN = re.compile(r"https?://\S+")
WHITESPACE_PATTERN = re.compile(r"\s+")

POST_TEXT_FIELDS: tuple[str, ...] = ("text", "content")


def clean_html_tags(text: str) -> str:
    """Strip markup tags and decode ``&amp;``."""
    text = TAG_PATTERN.sub("", text)
    return text.replace("&amp;", "&")


def clean_tweet_text(text: str) -> str:
    """Strip repost prefix, mentions and URLs, then collapse whitespace."""
    text = REPOST_PREFIX_PATTERN.sub("", text)
    # Mentions before URLs: "@bob https://x.co" must not leave residue
    text = MENTION_PATTERN.sub("", text)
    text = URL_PATTERN.sub("", text)
    text = WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


def clean(text: str) -> str:
    """
    Normalize one piece of text.

    Example::

        >>> clean("RT @ann: <b>Fish &amp; chips</b> @bob https://x.co")
        'Fish & chips'
    """
    return clean_tweet_text(clean_html_tags(text))


def _parse_json(content: str | bytes) -> Any:
    return json.loads(content)


def is_tweet_shaped(content: str | bytes) -> bool:
    """
    True if ``content`` parses as a non-empty JSON array whose first
    element is an object with a ``text`` or ``content`` field.

    Parse failures return False rather than raising.
    """
    try:
        data = _parse_json(content)
    except (ValueError, TypeError):
        return False
    return (
        isinstance(data, list)
        and len(data) > 0
        and isinstance(data[0], dict)
        and any(field in data[0] for field in POST_TEXT_FIELDS)
    )


def post_text(post: Any) -> str:
    """Raw text of one post object (``text`` first, ``content`` as fallback)."""
    if not isinstance(post, dict):
        return ""
    for field in POST_TEXT_FIELDS:
        value = post.get(field)
        if isinstance(value, str) and value:
            return value
    return ""


def format_posts(content: str | bytes) -> list[str]:
    """
    Clean every post of a tweet-shaped payload, dropping empty results.

    Returns an empty list if the payload is not valid JSON.
    """
    try:
        posts = _parse_json(content)
    except (ValueError, TypeError):
        return []
    if not isinstance(posts, list):
        return []

    cleaned = (clean(post_text(post)) for post in posts)
    return [text for text in cleaned if text.strip()]

