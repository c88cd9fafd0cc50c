from __future__ import annotations

import logging
import re
import subprocess
import sys
import time
import webbrowser
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console, RenderableType
from rich.live import Live

from strss.config import AppConfig, configure_logging, parse_args
from strss.feeds import Feed, Fetcher, load_registry
from strss.fetch import fetch_channel
from strss.models import FetchError, Item
from strss.render import export_article
from strss.state import ArticlePage, ArticleView, FeedPage, FeedView, State
from strss.terminal import Event, read_event, terminal_mode
from strss.ui import (
    ITEM_ROWS,
    body_rows,
    draw_ui,
    is_back_button,
    item_index_at_row,
    window_title,
)

logger = logging.getLogger(__name__)

# Roughly five seconds at the default tick rate.
STATUS_TICKS = 120
PAGE_ROWS = 10
HELP_TEXT = (
    "q quit | Up/Down scroll | j/k select | Enter open | Left back | o browser | "
    "e export | /add URL | /feed ID | /export [PATH]"
)


@dataclass
class RuntimeState:
    fetcher: Fetcher = fetch_channel
    last_feed_id: str = ""
    selected_index: int = 0
    status_message: str = ""
    status_ticks: int = 0
    in_command_mode: bool = False
    command_buffer: str = ""


def set_status(runtime_state: RuntimeState, message: str, ticks: int = STATUS_TICKS) -> None:
    runtime_state.status_message = message
    runtime_state.status_ticks = ticks


def on_tick(runtime_state: RuntimeState) -> None:
    if runtime_state.status_ticks <= 0:
        return
    runtime_state.status_ticks -= 1
    if runtime_state.status_ticks == 0:
        runtime_state.status_message = ""


def status_line(runtime_state: RuntimeState) -> str:
    if runtime_state.in_command_mode:
        return runtime_state.command_buffer
    return runtime_state.status_message


def clamp_selection(index: int, count: int) -> int:
    if count <= 0 or index < 0:
        return 0
    if index >= count:
        return count - 1
    return index


def open_link(url: str) -> str:
    clean_url = url.strip()
    if not clean_url:
        return "No link available for this item."
    try:
        if sys.platform == "darwin":
            subprocess.Popen(["open", clean_url], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        else:
            webbrowser.open(clean_url, new=2)
        return ""
    except Exception as exc:
        return f"Failed to open link: {exc}"


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:60] or "article"


def show_feed(state: State, runtime_state: RuntimeState, feed_id: str) -> None:
    if feed_id != runtime_state.last_feed_id:
        runtime_state.selected_index = 0
    runtime_state.last_feed_id = feed_id
    state.navigate(FeedPage(feed_id))


def go_back(state: State, runtime_state: RuntimeState, config: AppConfig) -> None:
    show_feed(state, runtime_state, runtime_state.last_feed_id or config.start_feed)


def open_item(state: State, runtime_state: RuntimeState, index: int) -> None:
    feed = state.current_feed()
    if feed is None or not 0 <= index < len(feed.items):
        return
    item = feed.items[index]
    runtime_state.selected_index = index
    if item.guid is None:
        set_status(runtime_state, f"Cannot open '{item.title or 'Untitled'}': item has no id.")
        return
    state.navigate(ArticlePage(item))


def ensure_visible(state: State, index: int, rows: int) -> None:
    top = index * ITEM_ROWS
    bottom = top + ITEM_ROWS - 2
    while state.scroll > top:
        state.scroll_up()
    while rows > 0 and bottom >= state.scroll + rows:
        state.scroll_down()


def move_selection(state: State, runtime_state: RuntimeState, delta: int, rows: int) -> None:
    feed = state.current_feed()
    if feed is None:
        return
    runtime_state.selected_index = clamp_selection(
        runtime_state.selected_index + delta,
        len(feed.items),
    )
    ensure_visible(state, runtime_state.selected_index, rows)


def current_item(state: State, runtime_state: RuntimeState) -> Item | None:
    if isinstance(state.page_state, ArticleView):
        return state.page_state.item
    feed = state.current_feed()
    if feed is not None and feed.items:
        return feed.items[clamp_selection(runtime_state.selected_index, len(feed.items))]
    return None


def export_current(state: State, runtime_state: RuntimeState, config: AppConfig, raw_path: str = "") -> None:
    if not isinstance(state.page_state, ArticleView):
        set_status(runtime_state, "Open an article to export it.")
        return
    item = state.page_state.item
    output_path = Path(raw_path) if raw_path else config.export_dir / f"{slugify(item.title or '')}.txt"
    try:
        written = export_article(item, output_path)
    except OSError as exc:
        set_status(runtime_state, f"Export failed: {exc}")
        return
    set_status(runtime_state, f"Exported to {written}")


def add_source(state: State, runtime_state: RuntimeState, config: AppConfig, locator: str) -> None:
    if isinstance(state.page_state, FeedView):
        feed_id = state.page_state.feed_id
    else:
        feed_id = runtime_state.last_feed_id or config.start_feed
    feed = state.feeds.get(feed_id)
    if feed is None:
        feed = Feed(id=feed_id, name=feed_id, fetcher=runtime_state.fetcher)
    try:
        feed.add(locator)
    except FetchError as exc:
        set_status(runtime_state, f"Could not add {locator}: {exc.reason}")
        return
    state.feeds[feed_id] = feed
    # The feed view holds a snapshot; re-resolve so the new items show.
    if not isinstance(state.page_state, ArticleView):
        show_feed(state, runtime_state, feed_id)
    set_status(runtime_state, f"Added {locator} to '{feed_id}' ({len(feed.items)} items)")


def handle_slash_command(
    raw_line: str,
    state: State,
    runtime_state: RuntimeState,
    config: AppConfig,
) -> bool:
    """Run one slash command. Returns True when the app should exit."""
    parts = raw_line.strip().split(maxsplit=1)
    if not parts:
        return False
    command = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else ""

    if command in {"/q", "/quit", "/exit"}:
        return True
    if command == "/help":
        set_status(runtime_state, HELP_TEXT, ticks=STATUS_TICKS * 3)
        return False
    if command == "/add":
        if not argument:
            set_status(runtime_state, "Usage: /add URL")
            return False
        add_source(state, runtime_state, config, argument)
        return False
    if command == "/feed":
        show_feed(state, runtime_state, argument or config.start_feed)
        return False
    if command == "/export":
        export_current(state, runtime_state, config, argument)
        return False
    set_status(runtime_state, f"Unknown command '{command}'. Try /help.")
    return False


def handle_command_key(
    key: str,
    state: State,
    runtime_state: RuntimeState,
    config: AppConfig,
) -> bool:
    if key == "ESC":
        runtime_state.in_command_mode = False
        runtime_state.command_buffer = ""
        return False
    if key == "ENTER":
        command = runtime_state.command_buffer.strip()
        runtime_state.in_command_mode = False
        runtime_state.command_buffer = ""
        return handle_slash_command(command, state, runtime_state, config)
    if key == "BACKSPACE":
        runtime_state.command_buffer = runtime_state.command_buffer[:-1]
        if not runtime_state.command_buffer:
            runtime_state.in_command_mode = False
        return False
    if len(key) == 1 and key.isprintable():
        runtime_state.command_buffer += key
    return False


def handle_key(
    key: str,
    state: State,
    runtime_state: RuntimeState,
    config: AppConfig,
    rows: int,
) -> bool:
    if runtime_state.in_command_mode:
        return handle_command_key(key, state, runtime_state, config)

    lowered = key.lower() if len(key) == 1 else ""
    if key == "QUIT" or lowered == "q":
        return True
    if key == "UP":
        state.scroll_up()
    elif key == "DOWN":
        state.scroll_down()
    elif key == "PGUP":
        for _ in range(PAGE_ROWS):
            state.scroll_up()
    elif key == "PGDN":
        for _ in range(PAGE_ROWS):
            state.scroll_down()
    elif key == "LEFT" or lowered in {"h", "b"}:
        go_back(state, runtime_state, config)
    elif lowered == "j":
        move_selection(state, runtime_state, 1, rows)
    elif lowered == "k":
        move_selection(state, runtime_state, -1, rows)
    elif key in {"ENTER", "RIGHT"} or lowered == "l":
        open_item(state, runtime_state, runtime_state.selected_index)
    elif lowered == "o":
        item = current_item(state, runtime_state)
        error = open_link(item.link or "") if item is not None else "Nothing selected."
        if error:
            set_status(runtime_state, error)
    elif lowered == "e":
        export_current(state, runtime_state, config)
    elif key == "/":
        runtime_state.in_command_mode = True
        runtime_state.command_buffer = "/"
    return False


def handle_event(
    event: Event,
    state: State,
    runtime_state: RuntimeState,
    config: AppConfig,
    width: int,
    height: int,
) -> bool:
    """Apply one input event. Returns True when the app should exit."""
    kind, value = event
    if kind == "key":
        rows = body_rows(height, status_line(runtime_state))
        return handle_key(value, state, runtime_state, config, rows)
    if kind == "wheel":
        if value == "UP":
            state.scroll_up()
        else:
            state.scroll_down()
        return False
    if kind == "click":
        column, row = value
        if isinstance(state.page_state, FeedView):
            index = item_index_at_row(row, state.scroll, len(state.page_state.feed.items))
            if index is not None:
                open_item(state, runtime_state, index)
        elif isinstance(state.page_state, ArticleView) and is_back_button(column, row, width):
            go_back(state, runtime_state, config)
    return False


def build_screen(state: State, runtime_state: RuntimeState, console: Console) -> RenderableType:
    selected = runtime_state.selected_index if isinstance(state.page_state, FeedView) else None
    return draw_ui(
        state,
        console,
        console.size.width,
        console.size.height,
        status=status_line(runtime_state),
        selected_index=selected,
    )


def run(config: AppConfig, console: Console) -> int:
    fetcher = partial(fetch_channel, timeout=config.timeout)
    # Blocking: no input is serviced while sources are fetched.
    with console.status("Fetching feeds..."):
        feeds = load_registry(config.feeds, fetcher=fetcher)

    state = State(feeds)
    runtime_state = RuntimeState(fetcher=fetcher)
    show_feed(state, runtime_state, config.start_feed)

    if config.once:
        console.print(draw_ui(state, console, console.size.width, None))
        return 0

    if not sys.stdin.isatty():
        console.print("[red]stdin is not a terminal.[/red] Use --once for non-interactive output.")
        return 2

    set_status(runtime_state, "Press / for commands, /help for keys, q to quit.")
    tick_rate = config.tick_ms / 1000.0
    title = ""
    with terminal_mode() as fd, Live(
        console=console,
        screen=True,
        auto_refresh=False,
        vertical_overflow="crop",
    ) as live:
        last_tick = time.monotonic()
        while True:
            new_title = window_title(state)
            if new_title != title:
                console.set_window_title(new_title)
                title = new_title
            live.update(build_screen(state, runtime_state, console), refresh=True)

            timeout = max(0.0, tick_rate - (time.monotonic() - last_tick))
            event = read_event(fd, timeout)
            if event is not None and handle_event(
                event,
                state,
                runtime_state,
                config,
                console.size.width,
                console.size.height,
            ):
                return 0

            if time.monotonic() - last_tick >= tick_rate:
                on_tick(runtime_state)
                last_tick = time.monotonic()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    console = Console()
    try:
        config = parse_args(argv if argv is not None else sys.argv[1:])
    except Exception as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        return 2

    configure_logging(config)
    logger.info("Starting with feeds: %s", ", ".join(config.feeds))
    try:
        return run(config, console)
    except KeyboardInterrupt:
        console.print("\n[bold]Stopped.[/bold]")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
