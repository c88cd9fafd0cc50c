import logging
from pathlib import Path

import pytest

from strss.config import (
    DEFAULT_FEEDS,
    DEFAULT_TICK_MS,
    FEEDS_ENV_VAR,
    AppConfig,
    configure_logging,
    feeds_from_env,
    parse_args,
    parse_feed_spec,
)


@pytest.fixture(autouse=True)
def no_env_feeds(monkeypatch):
    monkeypatch.delenv(FEEDS_ENV_VAR, raising=False)


class TestParseArgs:
    def test_defaults(self):
        config = parse_args([])

        assert config.feeds == DEFAULT_FEEDS
        assert config.feeds is not DEFAULT_FEEDS
        assert config.start_feed == "reading"
        assert config.tick_ms == DEFAULT_TICK_MS
        assert config.once is False
        assert config.export_dir == Path(".")
        assert config.log_file is None
        assert config.log_level == "INFO"

    def test_feed_flags_group_by_id(self):
        config = parse_args(
            [
                "--feed", "reading=https://a.example/feed",
                "--feed", "reading=https://b.example/feed",
                "--feed", "news=https://c.example/feed",
            ]
        )

        assert config.feeds == {
            "reading": ["https://a.example/feed", "https://b.example/feed"],
            "news": ["https://c.example/feed"],
        }
        assert config.start_feed == "reading"

    def test_repeated_locators_are_kept_in_order(self):
        config = parse_args(
            [
                "--feed", "reading=https://a.example/feed",
                "--feed", "reading=https://b.example/feed",
                "--feed", "reading=https://a.example/feed",
            ]
        )

        assert config.feeds == {
            "reading": [
                "https://a.example/feed",
                "https://b.example/feed",
                "https://a.example/feed",
            ],
        }

    def test_start_feed(self):
        config = parse_args(["--feed", "news=https://c.example/feed", "--start", "news"])

        assert config.start_feed == "news"

    def test_first_feed_is_the_default_start(self):
        config = parse_args(["--feed", "news=https://c.example/feed"])

        assert config.start_feed == "news"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv(
            FEEDS_ENV_VAR,
            "tech=https://x.example/rss; tech=https://y.example/rss;tech=https://x.example/rss",
        )

        config = parse_args([])

        assert config.feeds == {
            "tech": ["https://x.example/rss", "https://y.example/rss", "https://x.example/rss"]
        }
        assert config.start_feed == "tech"

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv(FEEDS_ENV_VAR, "tech=https://x.example/rss")

        config = parse_args(["--feed", "news=https://c.example/feed"])

        assert list(config.feeds) == ["news"]

    def test_log_options(self, tmp_path):
        config = parse_args(["--log-file", str(tmp_path / "strss.log"), "--log-level", "debug"])

        assert config.log_file == tmp_path / "strss.log"
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "argv",
        [["--feed", "no-separator"], ["--feed", "=https://x"], ["--tick-ms", "0"], ["--timeout", "0"]],
    )
    def test_invalid(self, argv):
        with pytest.raises(ValueError):
            parse_args(argv)


def test_parse_feed_spec_strips_whitespace():
    assert parse_feed_spec(" reading = https://a.example/feed ") == (
        "reading",
        "https://a.example/feed",
    )


def test_feeds_from_env_ignores_empty_parts():
    assert feeds_from_env(";a=https://a;;") == {"a": ["https://a"]}


def test_configure_logging_only_writes_to_a_file(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    config = AppConfig(
        feeds={},
        start_feed="reading",
        tick_ms=42,
        timeout=15,
        once=False,
        export_dir=Path("."),
        log_file=None,
        log_level="INFO",
    )

    configure_logging(config)
    assert calls == []

    config.log_file = Path("strss.log")
    configure_logging(config)
    assert calls[0]["filename"] == "strss.log"
    assert calls[0]["level"] == logging.INFO
