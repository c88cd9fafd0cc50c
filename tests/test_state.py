"""
Tests for strss.state

Navigation is a function of (registry, request); scroll resets on every
successful navigate and never goes below zero.
"""
import pytest

from conftest import NEW_2020, UNDATED
from strss.feeds import Feed
from strss.models import InvariantViolation, Item
from strss.state import (
    ArticlePage,
    ArticleView,
    EmptyPage,
    EmptyView,
    FeedPage,
    FeedView,
    State,
    resolve,
)


@pytest.fixture
def registry(fetcher):
    return {"reading": Feed.load("reading", ["https://a.example/feed"], fetcher=fetcher)}


class TestResolve:
    def test_empty_request(self, registry):
        assert resolve(registry, EmptyPage()) == EmptyView()

    def test_unknown_feed_is_empty_view(self):
        assert resolve({}, FeedPage("missing-id")) == EmptyView()

    def test_known_feed_holds_a_snapshot(self, registry):
        view = resolve(registry, FeedPage("reading"))

        assert isinstance(view, FeedView)
        assert view.feed_id == "reading"
        assert view.feed is not registry["reading"]
        assert view.feed.items == registry["reading"].items

    def test_article_uses_the_item_identifier(self):
        assert resolve({}, ArticlePage(NEW_2020)) == ArticleView(item=NEW_2020, identifier="a-2020")

    def test_article_without_identifier_fails_fast(self):
        with pytest.raises(InvariantViolation):
            resolve({}, ArticlePage(Item(title="No guid")))


class TestNavigate:
    def test_missing_feed_on_empty_registry(self):
        state = State()
        state.scroll = 7

        state.navigate(FeedPage("missing-id"))

        assert state.page_state == EmptyView()
        assert state.page == FeedPage("missing-id")
        assert state.scroll == 0

    @pytest.mark.parametrize(
        "page",
        [EmptyPage(), FeedPage("reading"), FeedPage("nope"), ArticlePage(UNDATED)],
    )
    def test_every_navigation_resets_scroll(self, registry, page):
        state = State(registry)
        for _ in range(5):
            state.scroll_down()

        state.navigate(page)

        assert state.scroll == 0

    def test_failed_navigation_changes_nothing(self, registry):
        state = State(registry)
        state.navigate(FeedPage("reading"))
        state.scroll_down()
        page, page_state = state.page, state.page_state

        with pytest.raises(InvariantViolation):
            state.navigate(ArticlePage(Item(title="No guid")))

        assert state.page is page
        assert state.page_state is page_state
        assert state.scroll == 1

    def test_article_request_survives_feed_changes(self, registry, fetcher):
        state = State(registry)
        state.navigate(FeedPage("reading"))
        item = state.current_feed().items[0]
        state.navigate(ArticlePage(item))

        registry["reading"].add("https://b.example/feed")

        assert state.page_state == ArticleView(item=item, identifier=item.guid)

    def test_feed_view_is_stale_until_refreshed(self, registry):
        state = State(registry)
        state.navigate(FeedPage("reading"))
        state.scroll_down()

        registry["reading"].add("https://b.example/feed")
        assert len(state.current_feed().items) == 2

        state.refresh()
        assert len(state.current_feed().items) == 3
        assert state.scroll == 0

    def test_current_feed_outside_feed_view(self, registry):
        state = State(registry)
        assert state.current_feed() is None

        state.navigate(ArticlePage(NEW_2020))
        assert state.current_feed() is None


class TestScroll:
    def test_floor_at_zero(self):
        state = State()

        for _ in range(3):
            state.scroll_up()

        assert state.scroll == 0

    def test_down_is_unbounded(self):
        state = State()

        for _ in range(1000):
            state.scroll_down()

        assert state.scroll == 1000

    def test_up_after_down(self):
        state = State()
        state.scroll_down()
        state.scroll_down()

        state.scroll_up()

        assert state.scroll == 1
