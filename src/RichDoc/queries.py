from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .errors import PathNotFound
from .model import (
    LIST_TYPES,
    MARKS,
    Document,
    Element,
    Leaf,
    ListItem,
    canonical_type,
    is_list,
    mark_attr,
)
from .selection import Selection, Span
from .tree import Path, get_container, get_element, leaves, nodes_matching, resolve_point

WORDS_PER_MINUTE = 200


@dataclass(frozen=True)
class CoveredLeaf:
    leaf: Leaf
    path: Path
    start: int
    end: int


def covered_leaves(doc: Document, span: Span) -> Iterator[CoveredLeaf]:
    """Leaves inside `span` with the character range the span covers in each."""
    for node, path in nodes_matching(doc, span, lambda n: isinstance(n, Leaf)):
        start = span.start.offset if path == span.start.path else 0
        end = span.end.offset if path == span.end.path else len(node.text)
        yield CoveredLeaf(node, path, start, end)


def _leaf_at(doc: Document, selection: Selection) -> Optional[Leaf]:
    try:
        return resolve_point(doc, selection.anchor)
    except PathNotFound:
        return None


def active_marks(doc: Document, selection: Optional[Selection]) -> Dict[str, Any]:
    """Marks in effect for the selection, keyed by wire name."""
    if selection is None:
        return {}
    if selection.is_collapsed:
        if selection.marks is not None:
            return {name: value for name, value in selection.marks.items() if value}
        leaf = _leaf_at(doc, selection)
        return leaf.marks() if leaf is not None else {}
    touched = [entry for entry in covered_leaves(doc, selection.edges()) if entry.end > entry.start]
    if not touched:
        return active_marks(doc, Selection.collapsed(selection.edges().start))
    common = touched[0].leaf.marks()
    for entry in touched[1:]:
        marks = entry.leaf.marks()
        common = {name: value for name, value in common.items() if marks.get(name) == value}
    return common


def is_mark_active(doc: Document, selection: Optional[Selection], mark: str) -> bool:
    mark_attr(mark)
    if selection is None:
        return False
    if selection.is_collapsed:
        return bool(active_marks(doc, selection).get(mark))
    touched = [entry for entry in covered_leaves(doc, selection.edges()) if entry.end > entry.start]
    if not touched:
        return is_mark_active(doc, Selection.collapsed(selection.edges().start), mark)
    attr = MARKS[mark]
    return all(getattr(entry.leaf, attr) for entry in touched)


def _anchor_block(doc: Document, selection: Selection) -> Optional[Tuple[Element, Path]]:
    try:
        resolve_point(doc, selection.anchor)
    except PathNotFound:
        return None
    path = selection.anchor.path[:-1]
    return get_element(doc, path), path


def enclosing_list(doc: Document, block_path: Path) -> Optional[Tuple[Element, Path]]:
    """The list container directly around the list item at or above `block_path`."""
    path = block_path
    while path:
        node = get_element(doc, path)
        if isinstance(node, ListItem):
            parent = get_container(doc, path[:-1])
            if is_list(parent):
                return parent, path[:-1]
        path = path[:-1]
    return None


def is_block_active(doc: Document, selection: Optional[Selection], block_type: str) -> bool:
    if selection is None:
        return False
    found = _anchor_block(doc, selection)
    if found is None:
        return False
    block, path = found
    block_type = canonical_type(block_type)
    if block_type in LIST_TYPES:
        around = enclosing_list(doc, path)
        return around is not None and around[0].type_name == block_type
    return block.type_name == block_type


def is_align_active(doc: Document, selection: Optional[Selection], align: Optional[str]) -> bool:
    if selection is None:
        return False
    found = _anchor_block(doc, selection)
    if found is None:
        return False
    return found[0].align == align


@dataclass(frozen=True)
class ReadingStats:
    words: int
    minutes: int


def reading_stats(doc: Document) -> ReadingStats:
    parts: List[str] = [leaf.text for leaf, _ in leaves(doc)]
    words = len([word for word in re.split(r"\s+", " ".join(parts)) if word])
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return ReadingStats(words=words, minutes=minutes)
