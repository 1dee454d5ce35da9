from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from markdown_it import MarkdownIt
from mdit_py_plugins.texmath import texmath_plugin

from .model import (
    BlockQuote,
    BulletedList,
    Document,
    Element,
    HeadingOne,
    HeadingThree,
    HeadingTwo,
    Image,
    Leaf,
    ListItem,
    MathBlock,
    Node,
    NumberedList,
    Paragraph,
)
from .tree import normalize

logger = logging.getLogger(__name__)

HEADINGS = {1: HeadingOne, 2: HeadingTwo, 3: HeadingThree}


@dataclass
class _InlineImage:
    src: str
    alt: str
    title: str | None


def parse_markdown(text: str) -> Document:
    """Convert Markdown (with `$...$` / `$$...$$` math) into an editor document."""
    md = MarkdownIt("commonmark").use(texmath_plugin).enable(["strikethrough"])
    tokens = md.parse(text)
    blocks, _ = _parse_blocks(tokens, 0, stop_types=set())
    doc = Document(blocks=[block for block in blocks if isinstance(block, Element)] or [Paragraph()])
    return normalize(doc)


def _parse_blocks(tokens, index: int, stop_types: set[str]) -> tuple[list, int]:
    blocks: List = []
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type in stop_types:
            break
        if tok.type == "heading_open":
            level = int(tok.tag[1])
            inline = tokens[i + 1]
            blocks.append(HEADINGS.get(level, HeadingThree)(children=_leaves_or_empty(inline.children or [])))
            i += 3
        elif tok.type == "paragraph_open":
            inline = tokens[i + 1]
            display_latex = _extract_display_math_inline(inline.content or "")
            if display_latex is not None:
                blocks.append(MathBlock(formula=display_latex))
                i += 3
                continue
            inline_elements = _parse_inline(inline.children or [])
            if len(inline_elements) == 1 and isinstance(inline_elements[0], _InlineImage):
                image = inline_elements[0]
                blocks.append(Image(url=image.src, alt=image.alt, caption=image.title))
            else:
                blocks.append(Paragraph(children=_as_leaves(inline_elements)))
            i += 3
        elif tok.type in ("bullet_list_open", "ordered_list_open"):
            ordered = tok.type == "ordered_list_open"
            closing = "ordered_list_close" if ordered else "bullet_list_close"
            i += 1
            items: list[ListItem] = []
            while i < len(tokens) and tokens[i].type != closing:
                if tokens[i].type == "list_item_open":
                    i += 1
                    item_blocks, i = _parse_blocks(tokens, i, stop_types={"list_item_close"})
                    items.append(_list_item(item_blocks))
                    i += 1  # skip list_item_close
                else:
                    i += 1
            cls = NumberedList if ordered else BulletedList
            blocks.append(cls(children=items or [ListItem()]))
            i += 1  # skip list close
        elif tok.type == "blockquote_open":
            inner, i = _parse_blocks(tokens, i + 1, stop_types={"blockquote_close"})
            blocks.append(BlockQuote(children=_join_text_blocks(inner)))
            i += 1  # skip blockquote_close
        elif tok.type in ("fence", "code_block"):
            code = tok.content.rstrip("\n")
            blocks.append(Paragraph(children=[Leaf(text=code, code=True)]))
            i += 1
        elif tok.type in ("math_block", "math_block_eqno"):
            blocks.append(MathBlock(formula=tok.content.strip()))
            i += 1
        else:
            i += 1
    return blocks, i


def _list_item(item_blocks: list) -> ListItem:
    nested = [block for block in item_blocks if isinstance(block, (BulletedList, NumberedList))]
    text_blocks = [block for block in item_blocks if not isinstance(block, (BulletedList, NumberedList))]
    children: List[Node] = _join_text_blocks(text_blocks)
    return ListItem(children=children + nested)


def _join_text_blocks(blocks: Iterable[Element]) -> List[Node]:
    """Leaves of several text blocks run together, separated by spaces."""
    result: List[Node] = []
    for block in blocks:
        if isinstance(block, MathBlock):
            leaves = [Leaf(text=block.formula, inline_math=block.formula)]
        elif isinstance(block, Image):
            leaves = [Leaf(text=block.alt or block.url)]
        else:
            leaves = [child for child in block.children if isinstance(child, Leaf)]
        if result and leaves:
            result.append(Leaf(text=" "))
        result.extend(leaves)
    return result or [Leaf()]


def _leaves_or_empty(children: Iterable) -> List[Node]:
    return _as_leaves(_parse_inline(children))


def _as_leaves(elements: list) -> List[Node]:
    leaves: List[Node] = []
    for element in elements:
        if isinstance(element, _InlineImage):
            leaves.append(Leaf(text=element.alt or element.src))
        else:
            leaves.append(element)
    return leaves or [Leaf()]


def _parse_inline(children: Iterable) -> List[Leaf | _InlineImage]:
    result: List[Leaf | _InlineImage] = []
    bold = False
    italic = False
    strike = False
    link: Optional[str] = None
    for tok in children:
        if tok.type in ("text", "softbreak", "hardbreak"):
            content = tok.content if tok.type == "text" else " "
            result.append(Leaf(content, bold=bold, italic=italic, strikethrough=strike, link=link))
        elif tok.type == "strong_open":
            bold = True
        elif tok.type == "strong_close":
            bold = False
        elif tok.type == "em_open":
            italic = True
        elif tok.type == "em_close":
            italic = False
        elif tok.type == "s_open":
            strike = True
        elif tok.type == "s_close":
            strike = False
        elif tok.type == "code_inline":
            result.append(Leaf(tok.content, bold=bold, italic=italic, code=True, link=link))
        elif tok.type in {"math_inline", "math_single"}:
            result.append(Leaf(tok.content, inline_math=tok.content, link=link))
        elif tok.type == "link_open":
            link = tok.attrGet("href") or None
        elif tok.type == "link_close":
            link = None
        elif tok.type == "image":
            src = tok.attrGet("src") or ""
            alt = tok.content or tok.attrGet("alt") or ""
            title = tok.attrGet("title")
            result.append(_InlineImage(src=src, alt=alt, title=title))
        elif tok.type == "html_inline":
            logger.debug("Dropping inline HTML %r", tok.content)
    return result


def _extract_display_math_inline(text: str) -> str | None:
    stripped = text.strip()
    if not (stripped.startswith("$$") and stripped.endswith("$$")) or len(stripped) < 4:
        return None
    inner = stripped[2:-2].strip()
    return inner or None
