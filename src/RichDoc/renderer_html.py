from __future__ import annotations

import html
import logging
from typing import Callable, Dict, Iterable, List

from . import latex
from .errors import MalformedFormula
from .model import (
    ALIGNMENTS,
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
    UnknownElement,
)

logger = logging.getLogger(__name__)

UNSAFE_SCHEMES = ("javascript:", "vbscript:", "data:")

IMAGE_ALIGN_CLASSES = {
    "left": "image-left",
    "center": "image-center",
    "right": "image-right",
}


def render_html(doc: Document) -> str:
    return "".join(render_node(block) for block in doc.blocks)


def render_node(node: Node) -> str:
    if isinstance(node, Leaf):
        return render_leaf(node)
    rule = BLOCK_RULES.get(type(node), _render_paragraph)
    return rule(node)


def _children(element: Element) -> str:
    return "".join(render_node(child) for child in element.children)


def _attrs(element: Element, classes: Iterable[str] = ()) -> str:
    parts = []
    class_list = [c for c in classes if c]
    if class_list:
        parts.append(f' class="{" ".join(class_list)}"')
    if element.align in ALIGNMENTS:
        parts.append(f' style="text-align: {element.align}"')
    return "".join(parts)


def _tag(tag: str) -> Callable[[Element], str]:
    def render(element: Element) -> str:
        return f"<{tag}{_attrs(element)}>{_children(element)}</{tag}>"

    return render


def _render_paragraph(element: Element) -> str:
    return f"<p{_attrs(element)}>{_children(element)}</p>"


def render_formula(source: str, display: bool) -> str:
    """Typeset a formula, or show the untouched source in an error marker."""
    tag = "div" if display else "span"
    kind = "math-display" if display else "math-inline"
    try:
        rendered = latex.typeset(source)
    except MalformedFormula as exc:
        logger.warning("Cannot typeset formula: %s", exc)
        return (
            f'<{tag} class="math-error" title="{html.escape(exc.reason)}">'
            f"{html.escape(source, quote=False)}</{tag}>"
        )
    return f'<{tag} class="{kind}" data-latex="{html.escape(source)}">{html.escape(rendered, quote=False)}</{tag}>'


def _render_math_block(element: MathBlock) -> str:
    return f'<div{_attrs(element, ["math-block"])}>{render_formula(element.formula, display=True)}</div>'


def _render_image(element: Image) -> str:
    align_class = IMAGE_ALIGN_CLASSES.get(element.image_align, IMAGE_ALIGN_CLASSES["center"])
    style = ""
    if element.size is not None:
        style = f' style="width: {html.escape(element.size.width)}; height: {html.escape(element.size.height)}"'
    parts: List[str] = [
        f'<figure{_attrs(element, ["image", align_class])}>',
        f'<img src="{html.escape(safe_url(element.url))}" alt="{html.escape(element.alt or "Image")}"{style}>',
    ]
    if element.caption:
        parts.append(f"<figcaption>{html.escape(element.caption, quote=False)}</figcaption>")
    parts.append("</figure>")
    return "".join(parts)


def _render_unknown(element: UnknownElement) -> str:
    return _render_paragraph(element)


BLOCK_RULES: Dict[type, Callable] = {
    Paragraph: _render_paragraph,
    HeadingOne: _tag("h1"),
    HeadingTwo: _tag("h2"),
    HeadingThree: _tag("h3"),
    BlockQuote: _tag("blockquote"),
    BulletedList: _tag("ul"),
    NumberedList: _tag("ol"),
    ListItem: _tag("li"),
    MathBlock: _render_math_block,
    Image: _render_image,
    UnknownElement: _render_unknown,
}


def safe_url(url: str) -> str:
    if url.strip().lower().startswith(UNSAFE_SCHEMES):
        return "#"
    return url


# Inner to outer; a link always ends up outermost.
_MARK_TAGS = (
    ("bold", "strong"),
    ("italic", "em"),
    ("underline", "u"),
    ("strikethrough", "del"),
    ("code", "code"),
    ("highlight", "mark"),
    ("superscript", "sup"),
    ("subscript", "sub"),
)


def render_leaf(leaf: Leaf) -> str:
    if leaf.inline_math:
        content = render_formula(leaf.inline_math, display=False)
    else:
        content = html.escape(leaf.text, quote=False)
    for attr, tag in _MARK_TAGS:
        if getattr(leaf, attr):
            content = f"<{tag}>{content}</{tag}>"
    if leaf.link:
        content = (
            f'<a href="{html.escape(safe_url(leaf.link))}" target="_blank" rel="noopener noreferrer">{content}</a>'
        )
    styles = []
    if leaf.color:
        styles.append(f"color: {leaf.color}")
    if leaf.background_color:
        styles.append(f"background-color: {leaf.background_color}")
    if leaf.font_size:
        styles.append(f"font-size: {leaf.font_size}")
    if styles:
        return f'<span style="{html.escape("; ".join(styles))}">{content}</span>'
    return content
