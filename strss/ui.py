from __future__ import annotations

from rich.console import Console, Group, RenderableType
from rich.padding import Padding
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from strss.feeds import Feed
from strss.render import format_pub_date, origin_title, render_rich
from strss.state import ArticleView, FeedView, State

APP_TITLE = "strss"
BACK_LABEL = "<- Back"
NOT_FOUND_MESSAGE = "That feed doesn't exist."

MARGIN = 20
MIN_CONTENT_WIDTH = 40
HEADER_ROWS = 2
# Title row, origin/date row, separator row.
ITEM_ROWS = 3

META_STYLE = "bright_black"
SELECTED_STYLE = "bold bright_white on rgb(28,28,28)"


def margin_for(width: int) -> int:
    return max(0, min(MARGIN, (width - MIN_CONTENT_WIDTH) // 2))


def body_rows(height: int, status: str = "") -> int:
    return max(0, height - HEADER_ROWS - (1 if status else 0))


def item_index_at_row(row: int, scroll: int, count: int) -> int | None:
    """Item under a screen row of the feed view, or None for headers and gaps."""
    if row < HEADER_ROWS:
        return None
    content_y = row - HEADER_ROWS + scroll
    if content_y % ITEM_ROWS == ITEM_ROWS - 1:
        return None
    index = content_y // ITEM_ROWS
    if index >= count:
        return None
    return index


def is_back_button(column: int, row: int, width: int) -> bool:
    margin = margin_for(width)
    return row == 0 and margin <= column < margin + len(BACK_LABEL)


def article_title(state: State) -> str:
    if not isinstance(state.page_state, ArticleView):
        return APP_TITLE
    item = state.page_state.item
    return f"{origin_title(item)} - {item.title or 'Untitled'}"


def window_title(state: State) -> str:
    page_state = state.page_state
    if isinstance(page_state, FeedView):
        return page_state.feed.name
    if isinstance(page_state, ArticleView):
        return article_title(state)
    return APP_TITLE


def title_header(title: str) -> list[RenderableType]:
    return [
        Text(title, style="bold", justify="center", no_wrap=True, overflow="ellipsis"),
        Rule(style="dim"),
    ]


def article_header(title: str) -> list[RenderableType]:
    navbar = Table.grid(expand=True)
    navbar.add_column(ratio=15, no_wrap=True)
    navbar.add_column(ratio=70, justify="center", no_wrap=True, overflow="ellipsis")
    navbar.add_column(ratio=15)
    navbar.add_row(Text(BACK_LABEL, style="bold"), Text(title, style="bold"), "")
    return [navbar, Rule(style="dim")]


def feed_lines(feed: Feed, selected_index: int | None) -> list[Text]:
    lines: list[Text] = []
    for index, item in enumerate(feed.items):
        title = Text(
            item.title or "Untitled",
            style="bold",
            no_wrap=True,
            overflow="ellipsis",
        )
        if index == selected_index:
            title.stylize(SELECTED_STYLE)
        meta = Text(origin_title(item), style=META_STYLE, no_wrap=True, overflow="ellipsis")
        published = format_pub_date(item)
        if published:
            meta.append(" | ", style=META_STYLE)
            meta.append(published, style=META_STYLE)
        lines.extend([title, meta, Text("")])
    return lines


def article_lines(state: State, console: Console, width: int) -> list[Text]:
    if not isinstance(state.page_state, ArticleView):
        return []
    lines: list[Text] = []
    for line in render_rich(state.page_state.item.content, width=max(1, width)):
        if not line.plain:
            lines.append(Text(""))
            continue
        lines.extend(line.wrap(console, max(1, width)))
    return lines


def draw_ui(
    state: State,
    console: Console,
    width: int,
    height: int | None,
    status: str = "",
    selected_index: int | None = None,
) -> RenderableType:
    margin = margin_for(width)
    content_width = max(1, width - 2 * margin)
    page_state = state.page_state

    if isinstance(page_state, FeedView):
        header = title_header(page_state.feed.name)
        body = feed_lines(page_state.feed, selected_index)
    elif isinstance(page_state, ArticleView):
        header = article_header(article_title(state))
        body = article_lines(state, console, content_width)
    else:
        header = title_header(APP_TITLE)
        body = [Text(NOT_FOUND_MESSAGE)]

    if height is None:
        visible: list[RenderableType] = list(body[state.scroll :])
    else:
        body_height = body_rows(height, status)
        visible = list(body[state.scroll : state.scroll + body_height])
        visible.extend(Text("") for _ in range(body_height - len(visible)))

    screen: list[RenderableType] = [Padding(Group(*header, *visible), (0, margin))]
    if status:
        screen.append(Text(status, style="reverse", no_wrap=True, overflow="ellipsis"))
    return Group(*screen)
