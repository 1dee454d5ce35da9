from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable

from docx import Document as DocxDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import UnrecognizedImageError
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Cm

from . import docx_style, latex
from .errors import MalformedFormula
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
    NumberedList,
    Paragraph,
    UnknownElement,
    is_list,
)

logger = logging.getLogger(__name__)

IMAGE_WIDTH_CM = 12.0


@dataclass
class RenderState:
    asset_root: Path | None = None
    font_name: str = docx_style.FONT_NAME
    formula_errors: int = 0


def render_document(
    doc: Document,
    output_path: str | Path,
    asset_root: Path | None = None,
    font_name: str = docx_style.FONT_NAME,
    font_size_pt: float = docx_style.FONT_SIZE_PT,
) -> RenderState:
    output_path = Path(output_path)
    state = RenderState(asset_root=asset_root, font_name=font_name)
    docx = DocxDocument()
    docx_style.apply_page_layout(docx, font_name=font_name, font_size_pt=font_size_pt)

    for block in doc.blocks:
        _dispatch_block(docx, block, state)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    docx.save(output_path)
    return state


def _dispatch_block(docx: DocxDocument, block: Element, state: RenderState) -> None:
    rule = BLOCK_RULES.get(type(block), _render_paragraph)
    rule(docx, block, state)


def _render_paragraph(docx: DocxDocument, block: Element, state: RenderState) -> None:
    paragraph = docx.add_paragraph()
    _add_leaves(paragraph, _leaves(block), state)
    docx_style.apply_body_paragraph_format(paragraph, block.align)


def _heading(level: int) -> Callable[[DocxDocument, Element, RenderState], None]:
    def render(docx: DocxDocument, block: Element, state: RenderState) -> None:
        paragraph = docx.add_paragraph()
        _add_leaves(paragraph, _leaves(block), state)
        docx_style.apply_heading_format(paragraph, level, block.align)

    return render


def _render_quote(docx: DocxDocument, block: BlockQuote, state: RenderState) -> None:
    paragraph = docx.add_paragraph()
    _add_leaves(paragraph, _leaves(block), state)
    docx_style.apply_quote_format(paragraph, block.align)


def _render_list(docx: DocxDocument, block: Element, state: RenderState, depth: int = 0) -> None:
    for idx, item in enumerate(block.children, start=1):
        paragraph = docx.add_paragraph()
        prefix = f"{idx}. " if isinstance(block, NumberedList) else "• "
        run = paragraph.add_run(prefix)
        run.font.name = state.font_name
        _add_leaves(paragraph, _leaves(item), state)
        docx_style.apply_list_format(paragraph, depth, item.align)
        for child in item.children:
            if is_list(child):
                _render_list(docx, child, state, depth + 1)


def _render_list_item(docx: DocxDocument, block: ListItem, state: RenderState) -> None:
    # Only reachable for a list item outside a list; render it as a one-item list.
    _render_list(docx, BulletedList(children=[block]), state)


def _render_math_block(docx: DocxDocument, block: MathBlock, state: RenderState) -> None:
    paragraph = docx.add_paragraph()
    paragraph.alignment = docx_style.ALIGNMENT.get(block.align or "center", WD_ALIGN_PARAGRAPH.CENTER)
    paragraph.paragraph_format.first_line_indent = Cm(0)
    try:
        text = latex.typeset(block.formula)
    except MalformedFormula as exc:
        logger.warning("Cannot typeset formula: %s", exc)
        state.formula_errors += 1
        _add_formula_error(paragraph, block.formula, state)
        return
    _append_math(paragraph, text)


def _render_image(docx: DocxDocument, block: Image, state: RenderState) -> None:
    paragraph = docx.add_paragraph()
    paragraph.alignment = docx_style.ALIGNMENT.get(block.image_align, WD_ALIGN_PARAGRAPH.CENTER)
    run = paragraph.add_run()
    image_path = _local_image(block.url, state)
    if image_path is None:
        run.add_text(f"[Image: {block.alt or block.url}]")
    else:
        try:
            run.add_picture(str(image_path), width=Cm(IMAGE_WIDTH_CM))
        except (FileNotFoundError, UnrecognizedImageError) as exc:
            logger.warning("Cannot embed image %s: %s", image_path, exc)
            run.add_text(f"[Image: {block.alt or block.url}]")
    if block.caption:
        caption_paragraph = docx.add_paragraph(block.caption)
        docx_style.apply_caption_format(caption_paragraph, block.image_align)


def _local_image(url: str, state: RenderState) -> Path | None:
    if "://" in url or url.startswith("data:"):
        return None
    candidate = Path(url)
    if state.asset_root is not None and not candidate.is_absolute():
        candidate = state.asset_root / candidate
    return candidate if candidate.exists() else None


BLOCK_RULES: Dict[type, Callable] = {
    Paragraph: _render_paragraph,
    HeadingOne: _heading(1),
    HeadingTwo: _heading(2),
    HeadingThree: _heading(3),
    BlockQuote: _render_quote,
    BulletedList: _render_list,
    NumberedList: _render_list,
    ListItem: _render_list_item,
    MathBlock: _render_math_block,
    Image: _render_image,
    UnknownElement: _render_paragraph,
}


def _leaves(block: Element) -> Iterable[Leaf]:
    return [child for child in block.children if isinstance(child, Leaf)]


def _add_leaves(paragraph, leaves: Iterable[Leaf], state: RenderState) -> None:
    for leaf in leaves:
        if leaf.inline_math:
            try:
                text = latex.typeset(leaf.inline_math)
            except MalformedFormula as exc:
                logger.warning("Cannot typeset inline formula: %s", exc)
                state.formula_errors += 1
                _add_formula_error(paragraph, leaf.inline_math, state)
                continue
        else:
            text = leaf.text
        if not text:
            continue
        if leaf.link:
            _add_hyperlink(paragraph, text, leaf, state)
            continue
        run = paragraph.add_run(text)
        docx_style.set_run_format(run, leaf, state.font_name)
        _shade(run, leaf.background_color)


def _add_formula_error(paragraph, source: str, state: RenderState) -> None:
    run = paragraph.add_run(f"[formula error: {source}]")
    run.font.name = state.font_name
    run.font.color.rgb = docx_style.parse_color("#cc0000")


def _shade(run, color: str | None) -> None:
    rgb = docx_style.parse_color(color)
    if rgb is None:
        return
    r_pr = run._r.get_or_add_rPr()
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), str(rgb))
    r_pr.append(shd)


def _add_hyperlink(paragraph, text: str, leaf: Leaf, state: RenderState) -> None:
    """Append an external hyperlink; python-docx has no public API for this."""
    rel_id = paragraph.part.relate_to(leaf.link, RT.HYPERLINK, is_external=True)
    hyperlink = OxmlElement("w:hyperlink")
    hyperlink.set(qn("r:id"), rel_id)
    # Build the run through the paragraph API, then move it into the hyperlink.
    run = paragraph.add_run(text)
    docx_style.set_run_format(run, leaf, state.font_name)
    run.font.underline = True
    run.font.color.rgb = docx_style.parse_color("#0563c1")
    _shade(run, leaf.background_color)
    hyperlink.append(run._r)
    paragraph._p.append(hyperlink)


def _append_math(paragraph, text: str) -> None:
    """Insert a simple Word math object into the paragraph."""
    omath_para = OxmlElement("m:oMathPara")
    oMath = OxmlElement("m:oMath")
    run = OxmlElement("m:r")
    text_el = OxmlElement("m:t")
    text_el.text = text
    run.append(text_el)
    oMath.append(run)
    omath_para.append(oMath)
    paragraph._p.append(omath_para)
