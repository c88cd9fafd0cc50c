from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Iterable, Mapping, Sequence

from strss.fetch import fetch_channel
from strss.models import Channel, FetchError, Item, Source

logger = logging.getLogger(__name__)

# Sort key for items without a usable timestamp; sorts after everything else.
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

Fetcher = Callable[[str], Channel]


def parse_pub_date(raw: str | None) -> datetime:
    if not raw:
        return EARLIEST
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        return EARLIEST
    if parsed is None:
        return EARLIEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def tag_items(channel: Channel) -> list[Item]:
    origin = Source(title=channel.title, url=channel.locator)
    return [replace(item, source=origin) for item in channel.items]


def derive_items(channels: Iterable[Channel]) -> tuple[Item, ...]:
    """
    Merge the items of *channels* into one list, newest first.

    Every item is re-tagged with the channel it came from. The sort is stable,
    so items with equal timestamps (including all undated ones) keep their
    channel order.
    """
    items: list[Item] = []
    for channel in channels:
        items.extend(tag_items(channel))
    items.sort(key=lambda item: parse_pub_date(item.pub_date), reverse=True)
    return tuple(items)


@dataclass
class Feed:
    id: str
    name: str
    channels: tuple[Channel, ...] = ()
    fetcher: Fetcher = field(default=fetch_channel, repr=False, compare=False)
    items: tuple[Item, ...] = field(init=False, default=())

    def __post_init__(self) -> None:
        self.channels = tuple(self.channels)
        self.items = derive_items(self.channels)

    @classmethod
    def load(
        cls,
        feed_id: str,
        locators: Sequence[str],
        name: str | None = None,
        fetcher: Fetcher = fetch_channel,
    ) -> "Feed":
        channels: list[Channel] = []
        for locator in locators:
            try:
                channels.append(fetcher(locator))
            except FetchError as exc:
                logger.warning("Dropping %s from feed '%s': %s", locator, feed_id, exc.reason)
        logger.info(
            "Loaded feed '%s': %d/%d sources",
            feed_id,
            len(channels),
            len(locators),
        )
        return cls(id=feed_id, name=name or feed_id, channels=tuple(channels), fetcher=fetcher)

    def add(self, locator: str) -> None:
        """Fetch one more source document and re-derive the item list.

        Raises FetchError without touching the feed when retrieval fails.
        """
        channel = self.fetcher(locator)
        self.channels = (*self.channels, channel)
        self.items = derive_items(self.channels)
        logger.info("Added %s to feed '%s' (%d items)", locator, self.id, len(self.items))

    def snapshot(self) -> "Feed":
        return copy.copy(self)


def load_registry(
    feeds: Mapping[str, Sequence[str]],
    fetcher: Fetcher = fetch_channel,
) -> dict[str, Feed]:
    return {
        feed_id: Feed.load(feed_id, locators, fetcher=fetcher)
        for feed_id, locators in feeds.items()
    }
