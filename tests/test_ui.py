"""
Tests for strss.ui

Renders to a recording console; geometry helpers are checked directly.
"""
import io

import pytest
from rich.console import Console

from strss.feeds import Feed
from strss.models import Channel, Item
from strss.state import ArticlePage, FeedPage, State
from strss.ui import (
    APP_TITLE,
    NOT_FOUND_MESSAGE,
    draw_ui,
    feed_lines,
    is_back_button,
    item_index_at_row,
    margin_for,
    window_title,
)


def render(state, width=100, height=30, **kwargs) -> str:
    console = Console(width=width, file=io.StringIO(), record=True, color_system=None)
    console.print(draw_ui(state, console, width, height, **kwargs))
    return console.export_text()


@pytest.fixture
def state(fetcher):
    feeds = {
        "reading": Feed.load(
            "reading",
            ["https://a.example/feed", "https://b.example/feed"],
            name="Reading",
            fetcher=fetcher,
        )
    }
    state = State(feeds)
    state.navigate(FeedPage("reading"))
    return state


class TestGeometry:
    @pytest.mark.parametrize(
        "row,scroll,expected",
        [
            (0, 0, None),
            (1, 0, None),
            (2, 0, 0),
            (3, 0, 0),
            (4, 0, None),
            (5, 0, 1),
            (6, 0, 1),
            (8, 0, 2),
            (2, 3, 1),
            (11, 0, None),
        ],
    )
    def test_item_index_at_row(self, row, scroll, expected):
        assert item_index_at_row(row, scroll, count=3) == expected

    def test_margin_shrinks_on_narrow_terminals(self):
        assert margin_for(120) == 20
        assert margin_for(50) == 5
        assert margin_for(30) == 0

    @pytest.mark.parametrize(
        "column,row,expected",
        [(20, 0, True), (26, 0, True), (27, 0, False), (19, 0, False), (20, 1, False)],
    )
    def test_back_button(self, column, row, expected):
        assert is_back_button(column, row, width=120) is expected


class TestWindowTitle:
    def test_titles_follow_the_view(self, state):
        assert window_title(state) == "Reading"

        state.navigate(ArticlePage(state.current_feed().items[0]))
        assert window_title(state) == "Blog A - Rust 2020 roadmap"

        state.navigate(FeedPage("missing"))
        assert window_title(state) == APP_TITLE


class TestFeedLines:
    def test_three_rows_per_item(self, state):
        lines = feed_lines(state.current_feed(), selected_index=None)

        assert [line.plain for line in lines] == [
            "Rust 2020 roadmap",
            "Blog A | 2020-01-02",
            "",
            "Epoch",
            "Blog A | 1970-01-01",
            "",
            "Undated",
            "Blog B",
            "",
        ]

    def test_untitled_and_unknown(self):
        channel = Channel(title=None, link=None, locator="https://x/feed", items=(Item(guid="1"),))
        feed = Feed(id="x", name="x", channels=(channel,))

        lines = feed_lines(feed, selected_index=0)

        assert lines[0].plain == "Untitled"
        assert lines[1].plain == "Unknown"


class TestDrawUi:
    def test_not_found(self):
        state = State()
        state.navigate(FeedPage("missing-id"))

        text = render(state)

        assert APP_TITLE in text
        assert NOT_FOUND_MESSAGE in text

    def test_feed_view(self, state):
        text = render(state)

        assert "Reading" in text
        assert "Rust 2020 roadmap" in text
        assert "Blog B" in text

    def test_feed_view_scrolls(self, state):
        for _ in range(3):
            state.scroll_down()

        text = render(state)

        assert "Rust 2020 roadmap" not in text
        assert "Epoch" in text

    def test_article_view(self, state):
        state.navigate(ArticlePage(state.current_feed().items[0]))

        text = render(state)

        assert "<- Back" in text
        assert "Blog A - Rust 2020 roadmap" in text
        assert "Plans for 2020." in text

    def test_height_crops_the_body(self, state):
        text = render(state, height=5)

        assert "Rust 2020 roadmap" in text
        assert "Undated" not in text

    def test_status_line(self, state):
        assert "/add https://x" in render(state, status="/add https://x")

    def test_uncropped(self, state):
        text = render(state, height=None)

        assert "Undated" in text
