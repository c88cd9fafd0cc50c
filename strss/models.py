from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Source:
    title: str | None
    url: str


@dataclass(frozen=True)
class Item:
    title: str | None = None
    content: str | None = None
    pub_date: str | None = None
    source: Source | None = None
    guid: str | None = None
    link: str | None = None


@dataclass(frozen=True)
class Channel:
    """One parsed source document and the items it carries, in document order."""

    title: str | None
    link: str | None
    locator: str
    items: tuple[Item, ...] = ()


class FetchError(Exception):
    """A source document could not be retrieved or is not a syndication feed."""

    def __init__(self, locator: str, reason: str) -> None:
        super().__init__(f"{locator}: {reason}")
        self.locator = locator
        self.reason = reason


class InvariantViolation(RuntimeError):
    pass
