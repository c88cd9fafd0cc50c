from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Union

from strss.feeds import Feed
from strss.models import InvariantViolation, Item

logger = logging.getLogger(__name__)


# Navigation requests.


@dataclass(frozen=True)
class EmptyPage:
    pass


@dataclass(frozen=True)
class FeedPage:
    feed_id: str


@dataclass(frozen=True)
class ArticlePage:
    item: Item


Page = Union[EmptyPage, FeedPage, ArticlePage]


# What a request resolved to against the registry.


@dataclass(frozen=True)
class EmptyView:
    pass


@dataclass(frozen=True)
class FeedView:
    feed_id: str
    feed: Feed = field(compare=False)


@dataclass(frozen=True)
class ArticleView:
    item: Item
    identifier: str


PageState = Union[EmptyView, FeedView, ArticleView]


def resolve(feeds: Mapping[str, Feed], page: Page) -> PageState:
    if isinstance(page, FeedPage):
        feed = feeds.get(page.feed_id)
        if feed is None:
            logger.debug("Feed '%s' not found", page.feed_id)
            return EmptyView()
        return FeedView(feed_id=page.feed_id, feed=feed.snapshot())
    if isinstance(page, ArticlePage):
        if page.item.guid is None:
            raise InvariantViolation(f"article {page.item.title!r} has no identifier")
        return ArticleView(item=page.item, identifier=page.item.guid)
    return EmptyView()


class State:
    """Current page, what it resolved to, and the scroll offset."""

    def __init__(self, feeds: dict[str, Feed] | None = None) -> None:
        self.feeds: dict[str, Feed] = feeds if feeds is not None else {}
        self.page: Page = EmptyPage()
        self.page_state: PageState = EmptyView()
        self.scroll = 0

    def navigate(self, page: Page) -> None:
        page_state = resolve(self.feeds, page)
        self.page = page
        self.page_state = page_state
        self.scroll = 0
        logger.debug("Navigated to %s", type(page_state).__name__)

    def refresh(self) -> None:
        self.navigate(self.page)

    def current_feed(self) -> Feed | None:
        if isinstance(self.page_state, FeedView):
            return self.page_state.feed
        return None

    def scroll_up(self) -> None:
        self.scroll = max(self.scroll - 1, 0)

    def scroll_down(self) -> None:
        self.scroll += 1
