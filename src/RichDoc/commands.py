from __future__ import annotations

import copy
import dataclasses
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Union

from . import latex
from .errors import InvalidInput, InvalidSelection, MalformedFormula, PathNotFound
from .model import (
    ALIGNMENTS,
    BOOLEAN_MARKS,
    LIST_TYPES,
    TEXT_BLOCK_TYPES,
    Document,
    Element,
    Image,
    ImageSize,
    Leaf,
    ListItem,
    MathBlock,
    Node,
    Paragraph,
    apply_marks,
    canonical_type,
    element_class,
    empty_leaf,
    is_list,
    is_void,
    mark_attr,
    node_text,
    retype,
    set_mark_value,
)
from .queries import active_marks, covered_leaves, enclosing_list, is_block_active, is_mark_active
from .selection import Point, Selection, Span, is_prefix
from .tree import (
    Bookmark,
    Path,
    bookmark,
    get_container,
    get_element,
    insert_node,
    locate,
    nodes_matching,
    normalize,
    prune_empty,
    resolve_point,
    split_leaf,
    walk,
)

logger = logging.getLogger(__name__)


class EditResult(NamedTuple):
    document: Document
    selection: Selection


# --- shared plumbing --------------------------------------------------------


def checked_span(doc: Document, selection: Optional[Selection]) -> Span:
    """Resolve both selection points or raise InvalidSelection."""
    if selection is None:
        raise InvalidSelection("There is no selection")
    try:
        resolve_point(doc, selection.anchor)
        resolve_point(doc, selection.focus)
    except PathNotFound as exc:
        raise InvalidSelection(str(exc)) from exc
    return selection.edges()


def _finish(
    work: Document, selection: Selection, start: Bookmark, end: Bookmark, edited: Sequence[Element]
) -> EditResult:
    normalize(work, [start, end], within=edited)
    start_point, end_point = locate(work, start), locate(work, end)
    if selection.is_backward:
        return EditResult(work, Selection(end_point, start_point))
    return EditResult(work, Selection(start_point, end_point))


def _caret_result(work: Document, mark: Bookmark, edited: Sequence[Element]) -> EditResult:
    normalize(work, [mark], within=edited)
    return EditResult(work, Selection.collapsed(locate(work, mark)))


def _path_of(doc: Document, target: Node) -> Path:
    for node, path in walk(doc):
        if node is target:
            return path
    raise PathNotFound((), "Node is not part of the document")


def _detach(doc: Document, element: Element) -> None:
    path = _path_of(doc, element)
    get_container(doc, path[:-1]).children.pop(path[-1])
    prune_empty(doc, path[:-1])


def _touched_blocks(doc: Document, span: Span, include_void: bool = False) -> List[Element]:
    """Nearest element ancestors of every leaf the span touches, in document order."""
    blocks: List[Element] = []
    seen = set()
    for _, path in nodes_matching(doc, span, lambda n: isinstance(n, Leaf)):
        block = get_element(doc, path[:-1])
        if id(block) in seen or (is_void(block) and not include_void):
            continue
        seen.add(id(block))
        blocks.append(block)
    return blocks


def _require_text(value: Optional[str], what: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidInput(f"{what} must not be empty")
    return str(value).strip()


# --- marks ------------------------------------------------------------------


def _apply_to_range(doc: Document, selection: Selection, update: Callable[[Leaf], None]) -> EditResult:
    span = selection.edges()
    work = copy.deepcopy(doc)
    touched = [entry for entry in covered_leaves(work, span) if entry.end > entry.start]
    if not touched:
        return EditResult(doc, selection)
    edited: List[Element] = []
    start_mark = end_mark = None
    # Right to left, so that replacing one leaf never shifts a pending one.
    for entry in reversed(touched):
        leaf, text = entry.leaf, entry.leaf.text
        middle = leaf.copy_with(text[entry.start : entry.end])
        update(middle)
        pieces: List[Node] = []
        if entry.start > 0:
            pieces.append(leaf.copy_with(text[: entry.start]))
        pieces.append(middle)
        if entry.end < len(text):
            pieces.append(leaf.copy_with(text[entry.end :]))
        parent = get_container(work, entry.path[:-1])
        edited.append(parent)
        index = entry.path[-1]
        parent.children[index : index + 1] = pieces
        if end_mark is None:
            end_mark = Bookmark(middle, len(middle.text))
        start_mark = Bookmark(middle, 0)
    return _finish(work, selection, start_mark, end_mark, edited)


def _pending_marks(doc: Document, selection: Selection) -> Dict[str, Any]:
    marks = dict(active_marks(doc, selection))
    marks.pop("inlineMath", None)
    return marks


def toggle_mark(doc: Document, selection: Selection, mark: str) -> EditResult:
    if mark not in BOOLEAN_MARKS:
        raise InvalidInput(f"{mark!r} is not a toggleable mark")
    checked_span(doc, selection)
    active = is_mark_active(doc, selection, mark)
    logger.debug("toggle_mark %s (active=%s)", mark, active)
    if selection.is_collapsed:
        marks = _pending_marks(doc, selection)
        if active:
            marks.pop(mark, None)
        else:
            marks[mark] = True
        return EditResult(doc, selection.with_marks(marks))
    return _apply_to_range(doc, selection, lambda leaf: set_mark_value(leaf, mark, not active))


def set_mark(doc: Document, selection: Selection, mark: str, value: Any) -> EditResult:
    """Set (or with a false value, clear) a mark on the selected text."""
    mark_attr(mark)
    checked_span(doc, selection)
    if selection.is_collapsed:
        marks = _pending_marks(doc, selection)
        if value:
            marks[mark] = value
        else:
            marks.pop(mark, None)
        return EditResult(doc, selection.with_marks(marks))
    return _apply_to_range(doc, selection, lambda leaf: set_mark_value(leaf, mark, value))


def remove_mark(doc: Document, selection: Selection, mark: str) -> EditResult:
    return set_mark(doc, selection, mark, None)


# --- blocks -----------------------------------------------------------------


def _flatten(container: Element, depth: int, out: List[tuple]) -> None:
    """Pre-order (depth, item, list class) entries; nested lists are detached from items."""
    for item in container.children:
        nested = [child for child in item.children if is_list(child)]
        item.children[:] = [child for child in item.children if not is_list(child)]
        out.append((depth, item, type(container)))
        for sub in nested:
            _flatten(sub, depth + 1, out)


def _build(entries: Sequence[tuple]) -> List[Element]:
    """Rebuild nested lists from flattened entries; returns the top-level lists."""
    roots: List[Element] = []
    stack: List[tuple] = []
    for depth, item, cls in entries:
        depth = min(depth, stack[-1][0] + 1 if stack else 0)
        while stack and stack[-1][0] > depth:
            stack.pop()
        if stack and stack[-1][0] == depth and type(stack[-1][1]) is cls:
            container = stack[-1][1]
        else:
            if stack and stack[-1][0] == depth:
                stack.pop()
            container = cls(children=[])
            if stack:
                stack[-1][1].children[-1].children.append(container)
            else:
                roots.append(container)
            stack.append((depth, container))
        container.children.append(item)
    for _, item, _ in entries:
        if not item.children:
            item.children.append(empty_leaf())
    return roots


def _unwrap_lists(work: Document, targets: List[Element]) -> List[Element]:
    """Lift every target list item out of its lists, splitting them around it.

    Returns the blocks that now sit at the top level in place of the lifted
    items.
    """
    target_ids = {id(block) for block in targets}
    lifted: List[Element] = []
    blocks: List[Element] = []
    for top in work.blocks:
        inside = is_list(top) and any(id(node) in target_ids for node, _ in walk(top))
        if not inside:
            blocks.append(top)
            continue
        entries: List[tuple] = []
        _flatten(top, 0, entries)
        hits = [index for index, (_, item, _) in enumerate(entries) if id(item) in target_ids]
        first, last = hits[0], hits[-1]
        blocks.extend(_build(entries[:first]))
        for _, item, _ in entries[first : last + 1]:
            if item.children:
                blocks.append(item)
                lifted.append(item)
        blocks.extend(_build(entries[last + 1 :]))
    work.blocks[:] = blocks
    lifted_ids = {id(item) for item in lifted}
    return [block for block in targets if id(block) not in lifted_ids] + lifted


def toggle_block(doc: Document, selection: Selection, block_type: str) -> EditResult:
    """Switch the selected blocks to `block_type`, or back to paragraphs when already active."""
    block_type = canonical_type(block_type)
    if block_type not in LIST_TYPES and (block_type not in TEXT_BLOCK_TYPES or block_type == "list-item"):
        raise InvalidInput(f"Cannot toggle block type {block_type!r}")
    span = checked_span(doc, selection)
    active = is_block_active(doc, selection, block_type)
    wrap_in_list = block_type in LIST_TYPES and not active
    logger.debug("toggle_block %s (active=%s)", block_type, active)

    work = copy.deepcopy(doc)
    start, end = bookmark(work, span.start), bookmark(work, span.end)
    targets = _touched_blocks(work, span)
    if not targets:
        return EditResult(doc, selection)
    targets = _unwrap_lists(work, targets)

    if active:
        new_type = "paragraph"
    elif wrap_in_list:
        new_type = "list-item"
    else:
        new_type = block_type
    target_ids = {id(block) for block in targets}
    converted = set()
    for index, block in enumerate(work.blocks):
        if id(block) in target_ids:
            work.blocks[index] = retype(block, new_type)
            converted.add(id(work.blocks[index]))

    if wrap_in_list:
        list_cls = element_class(block_type)
        blocks: List[Element] = []
        run: List[Element] = []
        for block in work.blocks + [None]:
            if block is not None and id(block) in converted:
                run.append(block)
                continue
            if run:
                blocks.append(list_cls(children=run))
                run = []
            if block is not None:
                blocks.append(block)
        work.blocks[:] = blocks
    edited = [node for node, _ in walk(work) if id(node) in converted]
    return _finish(work, selection, start, end, edited)


def set_align(doc: Document, selection: Selection, align: Optional[str]) -> EditResult:
    if align is not None and align not in ALIGNMENTS:
        raise InvalidInput(f"Unknown alignment {align!r}")
    span = checked_span(doc, selection)
    if all(block.align == align for block in _touched_blocks(doc, span, include_void=True)):
        return EditResult(doc, selection)
    work = copy.deepcopy(doc)
    for block in _touched_blocks(work, span, include_void=True):
        block.align = align
    return EditResult(work, selection)


# --- insertion --------------------------------------------------------------


def _place_leaf(work: Document, point: Point, leaf: Leaf) -> Element:
    """Insert `leaf` at a caret, splitting the caret leaf when needed.

    Returns the element that received the leaf.
    """
    block_path = point.path[:-1]
    block = get_element(work, block_path)
    if is_void(block):
        paragraph = Paragraph(children=[leaf])
        insert_node(work, (block_path[0] + 1,), paragraph)
        return paragraph
    insert_node(work, split_leaf(work, point), leaf)
    return block


def _collapse_first(doc: Document, selection: Selection) -> EditResult:
    if selection.is_collapsed:
        return EditResult(doc, selection)
    return delete_selection(doc, selection)


def insert_text(doc: Document, selection: Selection, text: str) -> EditResult:
    """Type `text` at the selection, honouring pending marks on a caret."""
    checked_span(doc, selection)
    if not text:
        return EditResult(doc, selection)
    pending = selection.marks
    doc, selection = _collapse_first(doc, selection)
    work = copy.deepcopy(doc)
    point = selection.anchor
    leaf = resolve_point(work, point)
    if pending is not None:
        marks = {name: value for name, value in pending.items() if value}
    else:
        marks = _pending_marks(doc, selection)
    block = get_element(work, point.path[:-1])
    if not is_void(block) and not leaf.inline_math and marks == leaf.marks():
        leaf.text = leaf.text[: point.offset] + text + leaf.text[point.offset :]
        return _caret_result(work, Bookmark(leaf, point.offset + len(text)), [block])
    new_leaf = apply_marks(Leaf(text=text), marks)
    target = _place_leaf(work, point, new_leaf)
    return _caret_result(work, Bookmark(new_leaf, len(text)), [target])


def insert_break(doc: Document, selection: Selection) -> EditResult:
    """Split the current block at the caret (Enter)."""
    checked_span(doc, selection)
    doc, selection = _collapse_first(doc, selection)
    point = selection.anchor
    block = get_element(doc, point.path[:-1])
    if isinstance(block, ListItem) and not node_text(block) and not any(is_list(c) for c in block.children):
        # Enter on an empty list item leaves the list.
        around = enclosing_list(doc, point.path[:-1])
        if around is not None:
            return toggle_block(doc, selection, around[0].type_name)

    work = copy.deepcopy(doc)
    block_path = point.path[:-1]
    block = get_element(work, block_path)
    if is_void(block):
        paragraph = Paragraph()
        work.blocks.insert(block_path[0] + 1, paragraph)
        return _caret_result(work, Bookmark(paragraph.children[0], 0), [paragraph])

    caret_leaf = resolve_point(work, point)
    index = split_leaf(work, point)[-1]
    moved = block.children[index:]
    del block.children[index:]
    if not block.children:
        block.children.append(caret_leaf.copy_with(""))
    if not moved or not isinstance(moved[0], Leaf):
        moved.insert(0, caret_leaf.copy_with(""))
    sibling = dataclasses.replace(block, children=moved)
    insert_node(work, block_path[:-1] + (block_path[-1] + 1,), sibling)
    return _caret_result(work, Bookmark(moved[0], 0), [block, sibling])


def insert_link(doc: Document, selection: Selection, url: Optional[str], text: Optional[str] = None) -> EditResult:
    """Insert a link at a caret, or link every leaf in a range."""
    url = _require_text(url, "Link URL")
    checked_span(doc, selection)
    if not selection.is_collapsed:
        return _apply_to_range(doc, selection, lambda leaf: set_mark_value(leaf, "link", url))
    work = copy.deepcopy(doc)
    leaf = Leaf(text=text or url, link=url)
    target = _place_leaf(work, selection.anchor, leaf)
    return _caret_result(work, Bookmark(leaf, len(leaf.text)), [target])


def insert_inline_formula(doc: Document, selection: Selection, source: Optional[str]) -> EditResult:
    source = _require_text(source, "Formula")
    checked_span(doc, selection)
    if not latex.is_well_formed(source):
        logger.warning("Inserting malformed inline formula %r", source)
    if not selection.is_collapsed:
        return _apply_to_range(doc, selection, lambda leaf: set_mark_value(leaf, "inlineMath", source))
    work = copy.deepcopy(doc)
    leaf = Leaf(text=source, inline_math=source)
    target = _place_leaf(work, selection.anchor, leaf)
    return _caret_result(work, Bookmark(leaf, len(leaf.text)), [target])


def _insert_block_after(doc: Document, selection: Selection, element: Element) -> EditResult:
    span = checked_span(doc, selection)
    work = copy.deepcopy(doc)
    index = span.end.path[0] + 1
    work.blocks.insert(index, element)
    if index == len(work.blocks) - 1:
        # keep somewhere to type after a trailing embedded block
        work.blocks.append(Paragraph())
    return _caret_result(work, Bookmark(element.children[0], 0), [element])


def insert_block_formula(doc: Document, selection: Selection, source: Optional[str]) -> EditResult:
    """Insert a math block after the top-level block holding the selection.

    A formula that fails to typeset is still inserted; renderers show an
    error marker in its place until it is fixed.
    """
    source = _require_text(source, "Formula")
    try:
        latex.typeset(source)
    except MalformedFormula as exc:
        logger.warning("Inserting malformed block formula: %s", exc)
    return _insert_block_after(doc, selection, MathBlock(formula=source))


SizeLike = Union[ImageSize, Dict[str, Any], Sequence[str], None]


def _image_size(size: SizeLike) -> Optional[ImageSize]:
    if size is None or isinstance(size, ImageSize):
        return size
    if isinstance(size, dict):
        try:
            return ImageSize(width=str(size["width"]), height=str(size["height"]))
        except KeyError as exc:
            raise InvalidInput(f"Image size is missing {exc.args[0]!r}") from None
    width, height = size
    return ImageSize(width=str(width), height=str(height))


def insert_image(
    doc: Document,
    selection: Selection,
    url: Optional[str],
    alt: str = "",
    image_align: str = "center",
    caption: Optional[str] = None,
    size: SizeLike = None,
) -> EditResult:
    url = _require_text(url, "Image URL")
    if image_align not in ALIGNMENTS:
        raise InvalidInput(f"Unknown image alignment {image_align!r}")
    image = Image(
        url=url,
        alt=alt or "",
        caption=caption or None,
        image_align=image_align,
        size=_image_size(size),
    )
    return _insert_block_after(doc, selection, image)


# --- deletion ---------------------------------------------------------------


def _strictly_between(path: Path, start: Path, end: Path) -> bool:
    return start < path < end and not is_prefix(path, end)


def delete_selection(doc: Document, selection: Selection) -> EditResult:
    """Remove the selected content and merge the blocks at either edge."""
    span = checked_span(doc, selection)
    if span.is_collapsed:
        return EditResult(doc, selection)
    work = copy.deepcopy(doc)
    start, end = span.start, span.end
    start_leaf, end_leaf = resolve_point(work, start), resolve_point(work, end)

    if start.path == end.path:
        start_leaf.text = start_leaf.text[: start.offset] + start_leaf.text[end.offset :]
        return _caret_result(work, Bookmark(start_leaf, start.offset), [get_element(work, start.path[:-1])])

    start_block = get_element(work, start.path[:-1])
    end_block = get_element(work, end.path[:-1])
    doomed: List[Path] = []
    for _, path in walk(work):
        if doomed and is_prefix(doomed[-1], path):
            continue
        if _strictly_between(path, start.path, end.path):
            doomed.append(path)
    for path in reversed(doomed):
        get_container(work, path[:-1]).children.pop(path[-1])

    start_leaf.text = start_leaf.text[: start.offset]
    end_leaf.text = end_leaf.text[end.offset :]
    caret = Bookmark(start_leaf, start.offset)

    if start_block is end_block:
        pass
    elif is_void(start_block) and is_void(end_block):
        paragraph = Paragraph()
        work.blocks.insert(_path_of(work, start_block)[0], paragraph)
        _detach(work, start_block)
        _detach(work, end_block)
        caret = Bookmark(paragraph.children[0], 0)
    elif is_void(start_block):
        _detach(work, start_block)
        caret = Bookmark(end_leaf, 0)
    elif is_void(end_block):
        _detach(work, end_block)
    else:
        moving: List[Node] = []
        while end_block.children and isinstance(end_block.children[0], Leaf):
            moving.append(end_block.children.pop(0))
        position = next(i for i, child in enumerate(start_block.children) if child is start_leaf) + 1
        start_block.children[position:position] = moving
        if not end_block.children:
            _detach(work, end_block)
    return _caret_result(work, caret, [start_block, end_block])
