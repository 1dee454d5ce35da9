from __future__ import annotations

import re

from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_COLOR_INDEX
from docx.shared import Cm, Pt, RGBColor

FONT_NAME = "Calibri"
CODE_FONT_NAME = "Courier New"
FONT_SIZE_PT = 11
LINE_SPACING_PT = 15
LIST_INDENT_CM = 0.75
QUOTE_INDENT_CM = 1.0

HEADING_SIZES_PT = {1: 20, 2: 16, 3: 13}

ALIGNMENT = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
}

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")
_SHORT_HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{3})$")
_FONT_SIZE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(px|pt)?\s*$")


def apply_page_layout(doc, font_name: str = FONT_NAME, font_size_pt: float = FONT_SIZE_PT) -> None:
    """Set the default body font for the whole document."""
    normal = doc.styles["Normal"]
    normal.font.name = font_name
    normal.font.size = Pt(font_size_pt)


def apply_alignment(paragraph, align: str | None) -> None:
    if align in ALIGNMENT:
        paragraph.alignment = ALIGNMENT[align]


def apply_body_paragraph_format(paragraph, align: str | None = None) -> None:
    paragraph.paragraph_format.space_after = Pt(6)
    paragraph.paragraph_format.space_before = Pt(0)
    paragraph.paragraph_format.line_spacing = Pt(LINE_SPACING_PT)
    apply_alignment(paragraph, align)


def apply_heading_format(paragraph, level: int, align: str | None = None) -> None:
    paragraph.paragraph_format.space_before = Pt(12)
    paragraph.paragraph_format.space_after = Pt(6)
    paragraph.paragraph_format.keep_with_next = True
    apply_alignment(paragraph, align)
    for run in paragraph.runs:
        run.bold = True
        run.font.size = Pt(HEADING_SIZES_PT.get(level, FONT_SIZE_PT))


def apply_quote_format(paragraph, align: str | None = None) -> None:
    apply_body_paragraph_format(paragraph, align)
    paragraph.paragraph_format.left_indent = Cm(QUOTE_INDENT_CM)
    for run in paragraph.runs:
        run.italic = True


def apply_list_format(paragraph, depth: int, align: str | None = None) -> None:
    apply_body_paragraph_format(paragraph, align)
    paragraph.paragraph_format.space_after = Pt(0)
    paragraph.paragraph_format.left_indent = Cm(LIST_INDENT_CM * (depth + 1))
    paragraph.paragraph_format.first_line_indent = Cm(-LIST_INDENT_CM / 2)


def apply_caption_format(paragraph, align: str | None = None) -> None:
    paragraph.alignment = ALIGNMENT.get(align or "center", WD_ALIGN_PARAGRAPH.CENTER)
    paragraph.paragraph_format.space_after = Pt(LINE_SPACING_PT)
    paragraph.paragraph_format.space_before = Pt(0)
    for run in paragraph.runs:
        run.italic = True
        run.font.size = Pt(FONT_SIZE_PT - 1)


def parse_color(value: str | None) -> RGBColor | None:
    """Accept `#rrggbb`, `rrggbb` and `#rgb`; anything else is ignored."""
    if not value:
        return None
    match = _HEX_COLOR.match(value.strip())
    if match:
        return RGBColor.from_string(match.group(1).upper())
    match = _SHORT_HEX_COLOR.match(value.strip())
    if match:
        return RGBColor.from_string("".join(ch * 2 for ch in match.group(1)).upper())
    return None


def parse_font_size(value: str | None) -> Pt | None:
    if not value:
        return None
    match = _FONT_SIZE.match(value)
    if not match:
        return None
    size = float(match.group(1))
    if match.group(2) == "px":
        size = size * 0.75
    return Pt(size)


def set_run_format(run, leaf, font_name: str = FONT_NAME) -> None:
    """Apply a leaf's marks to a python-docx run."""
    run.font.name = CODE_FONT_NAME if leaf.code else font_name
    run.bold = leaf.bold or None
    run.italic = leaf.italic or None
    run.underline = leaf.underline or None
    run.font.strike = leaf.strikethrough or None
    run.font.superscript = leaf.superscript or None
    run.font.subscript = leaf.subscript or None
    if leaf.highlight:
        run.font.highlight_color = WD_COLOR_INDEX.YELLOW
    color = parse_color(leaf.color)
    if color is not None:
        run.font.color.rgb = color
    size = parse_font_size(leaf.font_size)
    if size is not None:
        run.font.size = size
