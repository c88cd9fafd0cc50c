from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from rich.style import Style
from rich.text import Text

from strss.feeds import EARLIEST, parse_pub_date
from strss.markup import (
    Annotation,
    Code,
    Emphasis,
    Image,
    Line,
    Link,
    PlainDecorator,
    Preformat,
    RichDecorator,
    Strikeout,
    Strong,
    parse,
)
from strss.models import Item

IMAGE_COLOR = "blue"
PREFORMAT_COLOR = "magenta"
PREFORMAT_CONTINUATION_COLOR = "bright_magenta"
CODE_BACKGROUND = "grey15"


def style_for(annotations: Iterable[Annotation]) -> Style:
    """
    Map a run's annotations to one terminal style.

    Effects accumulate. Foreground is the only contested attribute and is
    picked by rank: preformatted continuation, then preformatted, then image.
    Attributes no annotation asks for are left unset, not switched off.
    """
    underline = italic = bold = strike = dim = False
    bgcolor: str | None = None
    color: str | None = None
    color_rank = 0

    for annotation in annotations:
        if isinstance(annotation, Link):
            underline = True
        elif isinstance(annotation, Emphasis):
            italic = True
        elif isinstance(annotation, Strong):
            bold = True
        elif isinstance(annotation, Strikeout):
            strike = True
        elif isinstance(annotation, Code):
            dim = True
            bgcolor = CODE_BACKGROUND
        elif isinstance(annotation, Image):
            if color_rank < 1:
                color, color_rank = IMAGE_COLOR, 1
        elif isinstance(annotation, Preformat):
            if annotation.continuation:
                if color_rank < 3:
                    color, color_rank = PREFORMAT_CONTINUATION_COLOR, 3
            elif color_rank < 2:
                color, color_rank = PREFORMAT_COLOR, 2

    return Style(
        color=color,
        bgcolor=bgcolor,
        bold=bold or None,
        italic=italic or None,
        underline=underline or None,
        strike=strike or None,
        dim=dim or None,
    )


def line_to_text(line: Line) -> Text:
    text = Text(end="\n")
    for content, annotations in line:
        text.append(content, style=style_for(annotations) if annotations else None)
    return text


def freeze_lines(lines: list[Line]) -> tuple[tuple[tuple[str, tuple[Annotation, ...]], ...], ...]:
    return tuple(tuple(line) for line in lines)


@lru_cache(maxsize=32)
def _parse_rich(body: str, width: int | None) -> tuple[tuple[tuple[str, tuple[Annotation, ...]], ...], ...]:
    return freeze_lines(parse(body, RichDecorator(), width=width))


def render_rich(body: str | None, width: int | None = None) -> list[Text]:
    """One styled ``Text`` per document line."""
    if not body:
        return []
    return [line_to_text(list(line)) for line in _parse_rich(body, width)]


def render_plain(body: str | None) -> list[str]:
    if not body:
        return []
    decorator = PlainDecorator()
    lines = parse(body, decorator)
    lines.extend(decorator.finalise())
    return ["".join(content for content, _ in line) for line in lines]


def format_pub_date(item: Item, fmt: str = "%Y-%m-%d") -> str:
    published: datetime = parse_pub_date(item.pub_date)
    if published == EARLIEST:
        return ""
    return published.strftime(fmt)


def origin_title(item: Item) -> str:
    if item.source is None or not item.source.title:
        return "Unknown"
    return item.source.title


def export_article(item: Item, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    published = format_pub_date(item, "%Y-%m-%d %H:%M %Z") or "unknown"
    lines: list[str] = [
        f"# {item.title or 'Untitled'}",
        "",
        f"- Source: {origin_title(item)}",
        f"- Published: {published}",
    ]
    if item.source is not None and item.source.url:
        lines.append(f"- Feed: {item.source.url}")
    if item.guid:
        lines.append(f"- Id: {item.guid}")
    lines.append("")
    lines.extend(render_plain(item.content))
    lines.append("")
    output_path.write_text("\n".join(lines), encoding="utf-8")
    return output_path
