"""
HTML item bodies as lines of annotated text runs.

The walker knows document structure (blocks, lists, quotes, preformatted
text); a decorator decides how each construct shows up. ``RichDecorator``
tags runs with annotations for styled display, ``PlainDecorator`` writes
inline markers instead and collects links as numbered footnotes.

Width is unconstrained unless asked for: wrapping is the display's job.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import NamedTuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString


@dataclass(frozen=True)
class Default:
    pass


@dataclass(frozen=True)
class Link:
    target: str


@dataclass(frozen=True)
class Image:
    pass


@dataclass(frozen=True)
class Emphasis:
    pass


@dataclass(frozen=True)
class Strong:
    pass


@dataclass(frozen=True)
class Strikeout:
    pass


@dataclass(frozen=True)
class Code:
    pass


@dataclass(frozen=True)
class Preformat:
    # True for the tail pieces of a preformatted line split at the width.
    continuation: bool = False


Annotation = Union[Default, Link, Image, Emphasis, Strong, Strikeout, Code, Preformat]
Run = tuple[str, tuple[Annotation, ...]]
Line = list[Run]


class Decoration(NamedTuple):
    start: str
    end: str
    annotations: tuple[Annotation, ...]


class RichDecorator:
    def link(self, target: str) -> Decoration:
        return Decoration("", "", (Link(target),))

    def emphasis(self) -> Decoration:
        return Decoration("", "", (Emphasis(),))

    def strong(self) -> Decoration:
        return Decoration("", "", (Strong(),))

    def strikeout(self) -> Decoration:
        return Decoration("", "", (Strikeout(),))

    def code(self) -> Decoration:
        return Decoration("", "", (Code(),))

    def header(self, level: int) -> Decoration:
        return Decoration("#" * level + " ", "", (Strong(),))

    def image(self, title: str) -> tuple[str, tuple[Annotation, ...]]:
        return title, (Image(),)

    def preformat(self, continuation: bool) -> tuple[Annotation, ...]:
        return (Preformat(continuation),)

    def quote_prefix(self) -> str:
        return "> "

    def list_item_prefix(self, ordinal: int | None) -> str:
        return "* " if ordinal is None else f"{ordinal}. "

    def finalise(self) -> list[Line]:
        return []


class PlainDecorator(RichDecorator):
    """Markdown-ish markers, no annotations. Links become ``[label][n]``."""

    def __init__(self) -> None:
        self.links: list[str] = []

    def link(self, target: str) -> Decoration:
        self.links.append(target)
        return Decoration("[", f"][{len(self.links)}]", ())

    def emphasis(self) -> Decoration:
        return Decoration("*", "*", ())

    def strong(self) -> Decoration:
        return Decoration("**", "**", ())

    def strikeout(self) -> Decoration:
        return Decoration("~~", "~~", ())

    def code(self) -> Decoration:
        return Decoration("`", "`", ())

    def header(self, level: int) -> Decoration:
        return Decoration("#" * level + " ", "", ())

    def image(self, title: str) -> tuple[str, tuple[Annotation, ...]]:
        return f"[{title}]", ()

    def preformat(self, continuation: bool) -> tuple[Annotation, ...]:
        return ()

    def finalise(self) -> list[Line]:
        if not self.links:
            return []
        footnotes: list[Line] = [[]]
        for number, target in enumerate(self.links, start=1):
            footnotes.append([(f"[{number}]: {target}", ())])
        return footnotes


WHITESPACE_RE = re.compile(r"\s+")


def _common_prefix(
    first: tuple[Annotation, ...],
    second: tuple[Annotation, ...],
) -> tuple[Annotation, ...]:
    shared: list[Annotation] = []
    for left, right in zip(first, second):
        if left != right:
            break
        shared.append(left)
    return tuple(shared)

_SKIP_TAGS = {"script", "style", "head", "title", "template", "noscript"}
_PARAGRAPH_TAGS = {"p", "figure", "table", "dl", "details"}
_BLOCK_TAGS = {
    "div",
    "section",
    "article",
    "header",
    "footer",
    "aside",
    "nav",
    "main",
    "figcaption",
    "tr",
    "dt",
    "dd",
    "address",
    "summary",
    "form",
}
_HEADER_LEVELS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_INLINE_DECORATIONS = {
    "em": "emphasis",
    "i": "emphasis",
    "cite": "emphasis",
    "strong": "strong",
    "b": "strong",
    "s": "strikeout",
    "strike": "strikeout",
    "del": "strikeout",
    "code": "code",
    "kbd": "code",
    "samp": "code",
    "tt": "code",
}


class _LineBuilder:
    def __init__(self, decorator: RichDecorator, width: int | None) -> None:
        self.decorator = decorator
        self.width = width
        self.lines: list[Line] = []
        self.current: Line = []
        self.annotations: list[Annotation] = []
        self.prefixes: list[str] = []
        self.lists: list[list[int] | None] = []
        self.pending_prefix = ""
        self.gap = 0
        self.pre_depth = 0
        self.pre_fresh = False
        self.space_pending = False
        self.line_has_text = False
        # Opening markers wait here until the element produces text.
        self.pending_markers: list[Run] = []

    # Line bookkeeping

    def start_line(self) -> None:
        if self.lines:
            self.lines.extend([] for _ in range(self.gap))
        self.gap = 0
        prefix = "".join(self.prefixes) + self.pending_prefix
        self.pending_prefix = ""
        self.space_pending = False
        self.line_has_text = False
        if prefix:
            self.current.append((prefix, ()))

    def break_line(self, force: bool = False) -> None:
        if self.current or force:
            self.lines.append(self.current)
        self.current = []
        self.space_pending = False

    def block(self, gap: int) -> None:
        self.break_line()
        self.gap = max(self.gap, gap)

    def finish(self) -> list[Line]:
        self.break_line()
        while self.lines and not self.lines[-1]:
            self.lines.pop()
        return self.lines

    # Content

    def begin_content(self, annotations: tuple[Annotation, ...]) -> str:
        """Open a line if needed, write any separating space and queued markers.

        Returns the space still owed to the next run, if it can ride along
        with it.
        """
        space = ""
        if not self.current:
            self.start_line()
        elif self.space_pending and self.line_has_text:
            # The space belongs only to what both neighbours share.
            previous_text, previous = self.current[-1]
            shared = _common_prefix(previous, annotations)
            if not self.pending_markers and shared == annotations:
                space = " "
            elif shared == previous:
                self.current[-1] = (previous_text + " ", previous)
            else:
                self.current.append((" ", shared))
        self.space_pending = False
        self.current.extend(self.pending_markers)
        self.pending_markers = []
        self.line_has_text = True
        return space

    def inline(self, text: str, extra: tuple[Annotation, ...] = ()) -> None:
        annotations = tuple(self.annotations) + extra
        space = self.begin_content(annotations)
        self.current.append((space + text, annotations))

    def marker(self, text: str, opening: bool) -> None:
        if not text:
            return
        run = (text, tuple(self.annotations))
        if opening:
            self.pending_markers.append(run)
            return
        if self.pending_markers:
            # The element produced no text; keep the pair together.
            self.begin_content(run[1])
        if self.current:
            self.current.append(run)
            return
        # A block inside the element already ended the line holding its text.
        for line in reversed(self.lines):
            if line:
                line.append(run)
                return
        self.start_line()
        self.current.append(run)

    def text(self, raw: str) -> None:
        if self.pre_depth:
            self.pre_text(raw)
            return
        collapsed = WHITESPACE_RE.sub(" ", raw)
        stripped = collapsed.strip()
        if collapsed.startswith(" "):
            self.space_pending = True
        if stripped:
            self.inline(stripped)
        if collapsed.endswith(" "):
            self.space_pending = True

    def pre_text(self, raw: str) -> None:
        if self.pre_fresh and raw:
            # A newline straight after <pre> is not content.
            if raw.startswith("\n"):
                raw = raw[1:]
            self.pre_fresh = False
        for index, segment in enumerate(raw.split("\n")):
            if index:
                if not self.current:
                    self.start_line()
                self.break_line(force=True)
            if segment:
                self.pre_segment(segment.expandtabs(8))

    def pre_segment(self, segment: str) -> None:
        if self.width and self.width > 0:
            pieces = [segment[i : i + self.width] for i in range(0, len(segment), self.width)]
        else:
            pieces = [segment]
        for index, piece in enumerate(pieces):
            if index:
                self.break_line(force=True)
            if not self.current:
                self.start_line()
            annotations = tuple(self.annotations) + self.decorator.preformat(index > 0)
            self.current.extend(self.pending_markers)
            self.pending_markers = []
            self.current.append((piece, annotations))
            self.line_has_text = True

    def line_break(self) -> None:
        if self.current:
            self.break_line()
        elif self.lines:
            self.lines.append([])

    # Tree walking

    def walk(self, node: Tag) -> None:
        for child in node.children:
            if isinstance(child, PreformattedString):
                # Comments, doctypes, processing instructions.
                continue
            if isinstance(child, NavigableString):
                self.text(str(child))
            elif isinstance(child, Tag):
                self.element(child)

    def decorated(self, tag: Tag, decoration: Decoration) -> None:
        start, end, annotations = decoration
        depth = len(self.annotations)
        self.annotations.extend(annotations)
        self.marker(start, opening=True)
        self.walk(tag)
        self.marker(end, opening=False)
        del self.annotations[depth:]

    def element(self, tag: Tag) -> None:
        name = tag.name
        if name in _SKIP_TAGS:
            return
        if name == "br":
            self.line_break()
            return
        if name == "hr":
            self.block(1)
            return
        if name == "img":
            title = (tag.get("alt") or tag.get("title") or "").strip()
            if title:
                text, annotations = self.decorator.image(title)
                self.inline(text, annotations)
            return
        if name == "a" and tag.get("href"):
            self.decorated(tag, self.decorator.link(tag["href"]))
            return
        if name in _INLINE_DECORATIONS:
            if name == "code" and self.pre_depth:
                self.walk(tag)
                return
            decoration = getattr(self.decorator, _INLINE_DECORATIONS[name])()
            self.decorated(tag, decoration)
            return
        if name in _HEADER_LEVELS:
            self.block(1)
            self.decorated(tag, self.decorator.header(_HEADER_LEVELS[name]))
            self.block(1)
            return
        if name == "blockquote":
            self.block(1)
            self.prefixes.append(self.decorator.quote_prefix())
            self.walk(tag)
            self.prefixes.pop()
            self.block(1)
            return
        if name in ("ul", "ol"):
            self.list_block(tag)
            return
        if name == "li":
            self.list_item(tag)
            return
        if name == "pre":
            self.block(1)
            self.pre_depth += 1
            self.pre_fresh = True
            self.walk(tag)
            self.pre_depth -= 1
            self.pre_fresh = False
            self.block(1)
            return
        if name in _PARAGRAPH_TAGS:
            self.block(1)
            self.walk(tag)
            self.block(1)
            return
        if name in _BLOCK_TAGS:
            self.block(0)
            self.walk(tag)
            self.block(0)
            return
        self.walk(tag)

    def list_block(self, tag: Tag) -> None:
        nested = bool(self.lists)
        self.block(0 if nested else 1)
        if nested:
            self.prefixes.append("  ")
        counter: list[int] | None = None
        if tag.name == "ol":
            try:
                counter = [int(tag.get("start", 1))]
            except (TypeError, ValueError):
                counter = [1]
        self.lists.append(counter)
        self.walk(tag)
        self.lists.pop()
        if nested:
            self.prefixes.pop()
        self.block(0 if nested else 1)

    def list_item(self, tag: Tag) -> None:
        self.break_line()
        counter = self.lists[-1] if self.lists else None
        ordinal = None
        if counter is not None:
            ordinal = counter[0]
            counter[0] += 1
        self.pending_prefix = self.decorator.list_item_prefix(ordinal)
        self.walk(tag)
        self.break_line()
        self.pending_prefix = ""


def parse(
    body: str | bytes | None,
    decorator: RichDecorator,
    width: int | None = None,
) -> list[Line]:
    """
    Walk an HTML body into lines of ``(text, annotations)`` runs.

    Empty or whitespace-only bodies produce no lines. Footnotes collected by
    the decorator are not included; ask ``decorator.finalise()`` for those.
    """
    if not body:
        return []
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    soup = BeautifulSoup(body, "html.parser")
    builder = _LineBuilder(decorator, width)
    builder.walk(soup)
    return builder.finish()
