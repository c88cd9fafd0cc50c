from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_tz
from typing import Any

import feedparser
import requests

from strss import __version__
from strss.models import Channel, FetchError, Item, Source

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 15
_HEADERS = {"User-Agent": f"strss/{__version__} (+terminal feed reader)"}


def _entry_content(entry: Any) -> str | None:
    content = entry.get("content") or []
    if content:
        value = content[0].get("value", "")
        if value:
            return value
    return entry.get("summary") or None


def _entry_pub_date(entry: Any) -> str | None:
    raw = entry.get("published") or entry.get("updated")
    if not raw or parsedate_tz(raw) is not None:
        return raw or None
    # Atom dates are RFC 3339; restate them from feedparser's UTC struct_time.
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return raw
    try:
        return format_datetime(datetime(*parsed[:6], tzinfo=timezone.utc), usegmt=True)
    except (TypeError, ValueError):
        return raw


def _entry_source(entry: Any) -> Source | None:
    source = entry.get("source")
    if not source:
        return None
    return Source(title=source.get("title"), url=source.get("href", ""))


def channel_from_parsed(parsed: Any, locator: str) -> Channel:
    items = tuple(
        Item(
            title=entry.get("title") or None,
            content=_entry_content(entry),
            pub_date=_entry_pub_date(entry),
            source=_entry_source(entry),
            guid=entry.get("id") or None,
            link=entry.get("link") or None,
        )
        for entry in parsed.entries
    )
    feed = parsed.get("feed", {})
    return Channel(
        title=feed.get("title") or None,
        link=feed.get("link") or None,
        locator=locator,
        items=items,
    )


def fetch_channel(locator: str, timeout: int = HTTP_TIMEOUT_SECONDS) -> Channel:
    """
    Retrieve and parse one source document.

    The whole payload is read before parsing. Anything feedparser does not
    recognise as RSS/Atom (an HTML page, an error body) is rejected.

    Raises:
        FetchError: On transport errors, non-2xx responses or non-feed payloads.
    """
    try:
        response = requests.get(locator, headers=_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Fetch failed for %s: %s", locator, exc)
        raise FetchError(locator, str(exc)) from exc

    parsed = feedparser.parse(response.content)
    if not parsed.get("version"):
        reason = str(parsed.get("bozo_exception") or "not a syndication document")
        logger.warning("Rejected %s: %s", locator, reason)
        raise FetchError(locator, reason)

    channel = channel_from_parsed(parsed, locator)
    logger.info("Fetched %s (%s, %d items)", locator, parsed.version, len(channel.items))
    return channel
