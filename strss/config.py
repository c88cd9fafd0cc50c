from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from strss.fetch import HTTP_TIMEOUT_SECONDS

DEFAULT_START_FEED = "reading"
DEFAULT_FEEDS: dict[str, list[str]] = {
    "reading": [
        "https://blog.rust-lang.org/feed.xml",
        "https://lwn.net/headlines/rss",
        "https://hnrss.org/best",
    ],
}
FEEDS_ENV_VAR = "STRSS_FEEDS"
# Around 24 frames per second.
DEFAULT_TICK_MS = 42
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class AppConfig:
    feeds: dict[str, list[str]]
    start_feed: str
    tick_ms: int
    timeout: int
    once: bool
    export_dir: Path
    log_file: Path | None
    log_level: str


def parse_feed_spec(raw: str) -> tuple[str, str]:
    feed_id, sep, locator = raw.partition("=")
    feed_id = feed_id.strip()
    locator = locator.strip()
    if not sep or not feed_id or not locator:
        raise ValueError(f"Invalid feed '{raw}'. Expected ID=URL")
    return feed_id, locator


def group_feed_specs(specs: list[str]) -> dict[str, list[str]]:
    feeds: dict[str, list[str]] = {}
    for spec in specs:
        feed_id, locator = parse_feed_spec(spec)
        feeds.setdefault(feed_id, []).append(locator)
    return feeds


def feeds_from_env(raw: str) -> dict[str, list[str]]:
    return group_feed_specs([part for part in raw.split(";") if part.strip()])


def parse_args(argv: list[str]) -> AppConfig:
    parser = argparse.ArgumentParser(
        description="Terminal reader for RSS/Atom feeds, merged newest first."
    )
    parser.add_argument(
        "--feed",
        action="append",
        default=[],
        metavar="ID=URL",
        help=f"Add a source to a feed (repeatable). Overrides ${FEEDS_ENV_VAR}.",
    )
    parser.add_argument("--start", default=None, help="Feed shown at startup.")
    parser.add_argument("--tick-ms", type=int, default=DEFAULT_TICK_MS)
    parser.add_argument("--timeout", type=int, default=HTTP_TIMEOUT_SECONDS)
    parser.add_argument("--once", action="store_true", help="Print the start feed and exit.")
    parser.add_argument("--export-dir", default=".")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--log-level", default="INFO", type=str.upper, choices=LOG_LEVELS)

    args = parser.parse_args(argv)

    if args.tick_ms < 1:
        raise ValueError("--tick-ms must be >= 1")
    if args.timeout < 1:
        raise ValueError("--timeout must be >= 1")

    if args.feed:
        feeds = group_feed_specs(args.feed)
    elif os.getenv(FEEDS_ENV_VAR, "").strip():
        feeds = feeds_from_env(os.environ[FEEDS_ENV_VAR])
    else:
        feeds = {feed_id: list(locators) for feed_id, locators in DEFAULT_FEEDS.items()}

    start_feed = args.start or (DEFAULT_START_FEED if DEFAULT_START_FEED in feeds else next(iter(feeds)))

    return AppConfig(
        feeds=feeds,
        start_feed=start_feed,
        tick_ms=args.tick_ms,
        timeout=args.timeout,
        once=args.once,
        export_dir=Path(args.export_dir),
        log_file=Path(args.log_file) if args.log_file else None,
        log_level=args.log_level,
    )


def configure_logging(config: AppConfig) -> None:
    # The screen belongs to the live display, so logs only ever go to a file.
    if config.log_file is None:
        return
    logging.basicConfig(
        filename=str(config.log_file),
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
