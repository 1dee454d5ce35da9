from __future__ import annotations

from typing import List

from .model import (
    BlockQuote,
    Document,
    Element,
    HeadingOne,
    HeadingThree,
    HeadingTwo,
    Image,
    Leaf,
    ListItem,
    MathBlock,
    NumberedList,
    is_list,
)


def render_text(doc: Document) -> str:
    """Plain-text rendering, one line per block."""
    lines: List[str] = []
    for block in doc.blocks:
        _render_block(block, lines, depth=0)
    return "\n".join(lines)


def inline_text(element: Element) -> str:
    parts: List[str] = []
    for child in element.children:
        if isinstance(child, Leaf):
            parts.append(f"${child.inline_math}$" if child.inline_math else child.text)
    return "".join(parts)


def _render_block(block: Element, lines: List[str], depth: int) -> None:
    if is_list(block):
        for number, item in enumerate(block.children, start=1):
            bullet = f"{number}." if isinstance(block, NumberedList) else "-"
            _render_item(item, bullet, lines, depth)
    elif isinstance(block, MathBlock):
        lines.append(f"$${block.formula}$$")
    elif isinstance(block, Image):
        label = block.caption or block.alt or block.url
        lines.append(f"[Image: {label}]")
    elif isinstance(block, (HeadingOne, HeadingTwo, HeadingThree)):
        level = {HeadingOne: 1, HeadingTwo: 2, HeadingThree: 3}[type(block)]
        lines.append(f"{'#' * level} {inline_text(block)}")
    elif isinstance(block, BlockQuote):
        lines.append(f"> {inline_text(block)}")
    else:
        lines.append(inline_text(block))


def _render_item(item: Element, bullet: str, lines: List[str], depth: int) -> None:
    indent = "    " * depth
    lines.append(f"{indent}{bullet} {inline_text(item)}")
    if isinstance(item, ListItem):
        for child in item.children:
            if is_list(child):
                _render_block(child, lines, depth + 1)
