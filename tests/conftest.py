from __future__ import annotations

import pytest

from strss.models import Channel, FetchError, Item


def make_channel(title: str, locator: str, *items: Item) -> Channel:
    return Channel(title=title, link=None, locator=locator, items=tuple(items))


class FakeFetcher:
    """Serves canned channels by locator; anything else fails like a dead URL."""

    def __init__(self, channels: dict[str, Channel] | None = None) -> None:
        self.channels = dict(channels or {})
        self.calls: list[str] = []

    def __call__(self, locator: str) -> Channel:
        self.calls.append(locator)
        if locator not in self.channels:
            raise FetchError(locator, "unreachable")
        return self.channels[locator]


NEW_2020 = Item(
    title="Rust 2020 roadmap",
    content="<p>Plans for <strong>2020</strong>.</p>",
    pub_date="Wed, 02 Jan 2020 10:00:00 GMT",
    guid="a-2020",
    link="https://a.example/2020",
)
EPOCH_1970 = Item(
    title="Epoch",
    content="<p>Old news.</p>",
    pub_date="Thu, 01 Jan 1970 00:00:00 GMT",
    guid="a-1970",
)
UNDATED = Item(title="Undated", content="<p>No date.</p>", guid="b-undated")


@pytest.fixture
def channel_a() -> Channel:
    return make_channel("Blog A", "https://a.example/feed", EPOCH_1970, NEW_2020)


@pytest.fixture
def channel_b() -> Channel:
    return make_channel("Blog B", "https://b.example/feed", UNDATED)


@pytest.fixture
def fetcher(channel_a: Channel, channel_b: Channel) -> FakeFetcher:
    return FakeFetcher({channel_a.locator: channel_a, channel_b.locator: channel_b})
