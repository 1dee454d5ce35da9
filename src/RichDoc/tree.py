from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import PathNotFound, StructuralInvariantViolation
from .model import (
    Document,
    Element,
    Leaf,
    ListItem,
    Node,
    Paragraph,
    UnknownElement,
    empty_leaf,
    is_list,
    is_void,
)
from .selection import Point, Span, after_span, overlaps

logger = logging.getLogger(__name__)

Path = Tuple[int, ...]
Container = Union[Document, Element]
Entry = Tuple[Node, Path]


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def get_node(doc: Document, path: Sequence[int]) -> Node:
    try:
        path = tuple(path)
    except TypeError:
        raise PathNotFound((), f"Path {path!r} is not a sequence of indices") from None
    if not all(_is_index(index) for index in path):
        raise PathNotFound((), f"Path {list(path)} holds a non-integer index")
    if not path:
        raise PathNotFound(path, "The empty path addresses the document, not a node")
    current: Container | Leaf = doc
    for depth, index in enumerate(path):
        if isinstance(current, Leaf) or not 0 <= index < len(current.children):
            raise PathNotFound(path[: depth + 1])
        current = current.children[index]
    return current


def get_leaf(doc: Document, path: Sequence[int]) -> Leaf:
    node = get_node(doc, path)
    if not isinstance(node, Leaf):
        raise PathNotFound(path, f"Node at {list(path)} is not a text leaf")
    return node


def get_element(doc: Document, path: Sequence[int]) -> Element:
    node = get_node(doc, path)
    if not isinstance(node, Element):
        raise PathNotFound(path, f"Node at {list(path)} is not an element")
    return node


def get_container(doc: Document, path: Sequence[int]) -> Container:
    """Like get_element, but the empty path returns the document itself."""
    if not path:
        return doc
    return get_element(doc, path)


def get_parent(doc: Document, path: Sequence[int]) -> Container:
    path = tuple(path)
    get_node(doc, path)
    return get_container(doc, path[:-1])


def siblings(doc: Document, path: Sequence[int]) -> Tuple[List[Node], List[Node]]:
    """Children of the parent before and after the node at `path`."""
    parent = get_parent(doc, path)
    index = path[-1]
    return list(parent.children[:index]), list(parent.children[index + 1 :])


def common_ancestor(path_a: Sequence[int], path_b: Sequence[int]) -> Path:
    common: List[int] = []
    for a, b in zip(path_a, path_b):
        if a != b:
            break
        common.append(a)
    return tuple(common)


def text_block_path(doc: Document, leaf_path: Sequence[int]) -> Path:
    """Path of the nearest element ancestor of a leaf."""
    get_leaf(doc, leaf_path)
    return tuple(leaf_path[:-1])


def top_block_path(path: Sequence[int]) -> Path:
    return tuple(path[:1])


def walk(container: Container, base: Path = ()) -> Iterator[Entry]:
    """Pre-order traversal of every node below `container`."""
    for index, child in enumerate(container.children):
        path = base + (index,)
        yield child, path
        if isinstance(child, Element):
            yield from walk(child, path)


def leaves(container: Container, base: Path = ()) -> Iterator[Tuple[Leaf, Path]]:
    for node, path in walk(container, base):
        if isinstance(node, Leaf):
            yield node, path


class NodeMatches:
    """Lazy, restartable view over the entries of a document.

    Each iteration walks the current tree again, so the view reflects the
    document as it is when iterated.
    """

    def __init__(
        self,
        doc: Document,
        span: Optional[Span] = None,
        predicate: Optional[Callable[[Node], bool]] = None,
    ) -> None:
        self.doc = doc
        self.span = span
        self.predicate = predicate

    def __iter__(self) -> Iterator[Entry]:
        return self._walk(self.doc, ())

    def _walk(self, container: Container, base: Path) -> Iterator[Entry]:
        for index, child in enumerate(container.children):
            path = base + (index,)
            if self.span is not None:
                if after_span(path, self.span):
                    return
                if not overlaps(path, self.span):
                    continue
            if self.predicate is None or self.predicate(child):
                yield child, path
            if isinstance(child, Element):
                yield from self._walk(child, path)


def nodes_matching(
    doc: Document,
    span: Optional[Span] = None,
    predicate: Optional[Callable[[Node], bool]] = None,
) -> NodeMatches:
    return NodeMatches(doc, span, predicate)


def resolve_point(doc: Document, point: Point) -> Leaf:
    """Return the leaf a point sits in, checking the offset against its text."""
    leaf = get_leaf(doc, point.path)
    if not _is_index(point.offset):
        raise PathNotFound(point.path, f"Offset {point.offset!r} is not an integer")
    if not 0 <= point.offset <= len(leaf.text):
        raise PathNotFound(point.path, f"Offset {point.offset} is outside leaf {list(point.path)}")
    return leaf


# --- structural edits -------------------------------------------------------


def insert_node(doc: Document, path: Sequence[int], node: Node) -> None:
    path = tuple(path)
    parent = get_container(doc, path[:-1])
    index = path[-1]
    if not 0 <= index <= len(parent.children):
        raise PathNotFound(path)
    parent.children.insert(index, node)


def remove_node(doc: Document, path: Sequence[int]) -> Node:
    """Detach the node at `path`; an emptied branch receives a placeholder."""
    path = tuple(path)
    parent = get_parent(doc, path)
    node = parent.children.pop(path[-1])
    if not parent.children:
        if isinstance(parent, Document):
            parent.children.append(Paragraph())
        elif is_list(parent):
            parent.children.append(ListItem())
        else:
            parent.children.append(empty_leaf())
    return node


def split_leaf(doc: Document, point: Point) -> Path:
    """Split the leaf at `point`; return the path of the right-hand piece.

    Nothing is split at either end of the leaf: an offset of 0 returns the
    leaf's own path and an offset at the end returns the next sibling index.
    """
    leaf = resolve_point(doc, point)
    parent = get_parent(doc, point.path)
    index = point.path[-1]
    if point.offset == 0:
        return point.path
    if point.offset == len(leaf.text):
        return point.path[:-1] + (index + 1,)
    right = leaf.copy_with(leaf.text[point.offset :])
    leaf.text = leaf.text[: point.offset]
    parent.children.insert(index + 1, right)
    return point.path[:-1] + (index + 1,)


def prune_empty(doc: Document, path: Sequence[int]) -> None:
    """Remove containers left without content, walking up from `path`.

    Lists and list items that no longer hold anything are dropped; any other
    element keeps a placeholder leaf.
    """
    path = tuple(path)
    while path:
        node = get_element(doc, path)
        if node.children:
            return
        if not (is_list(node) or isinstance(node, ListItem)):
            node.children.append(empty_leaf())
            return
        get_container(doc, path[:-1]).children.pop(path[-1])
        path = path[:-1]
    if not doc.blocks:
        doc.blocks.append(Paragraph())


# --- bookmarks and normalization --------------------------------------------


@dataclass
class Bookmark:
    """A text position held by leaf identity, stable across restructuring."""

    leaf: Leaf
    offset: int


def bookmark(doc: Document, point: Point) -> Bookmark:
    return Bookmark(resolve_point(doc, point), point.offset)


def locate(doc: Document, mark: Bookmark) -> Point:
    for leaf, path in leaves(doc):
        if leaf is mark.leaf:
            return Point(path, min(mark.offset, len(leaf.text)))
    raise PathNotFound((), "Bookmarked leaf is no longer part of the document")


def _mergeable(left: Leaf, right: Leaf) -> bool:
    if left.inline_math or right.inline_math:
        return False
    return left.same_marks(right)


def _droppable(leaf: Leaf) -> bool:
    return not leaf.text and not leaf.inline_math


def normalize(
    doc: Document,
    bookmarks: Sequence[Bookmark] = (),
    within: Optional[Iterable[Element]] = None,
) -> Document:
    """Merge adjacent same-mark leaves and drop redundant empty leaves.

    Only the children of `within` are touched when it is given; otherwise every
    element of the document is. Bookmarks pointing at merged or dropped leaves
    are moved so that they keep designating the same text position.
    """
    if within is None:
        within = [node for node, _ in walk(doc) if isinstance(node, Element)]
    seen = set()
    for element in within:
        if id(element) not in seen:
            seen.add(id(element))
            _normalize_children(element, bookmarks)
    if not doc.blocks:
        doc.blocks.append(Paragraph())
    return doc


def _normalize_children(element: Element, bookmarks: Sequence[Bookmark]) -> None:
    if is_void(element):
        if not element.children:
            element.children.append(empty_leaf())
        return
    result: List[Node] = []
    for child in element.children:
        previous = result[-1] if result else None
        if isinstance(child, Leaf) and isinstance(previous, Leaf):
            if _mergeable(previous, child) or _droppable(child) or _droppable(previous):
                _absorb(result, previous, child, bookmarks)
                continue
        result.append(child)
    if not result:
        result.append(empty_leaf())
    element.children[:] = result


def _absorb(result: List[Node], previous: Leaf, child: Leaf, bookmarks: Sequence[Bookmark]) -> None:
    """Fold `child` into the run ending at `previous`."""
    if _mergeable(previous, child):
        shift = len(previous.text)
        previous.text += child.text
        for mark in bookmarks:
            if mark.leaf is child:
                mark.leaf, mark.offset = previous, mark.offset + shift
    elif _droppable(child):
        for mark in bookmarks:
            if mark.leaf is child:
                mark.leaf, mark.offset = previous, len(previous.text)
    else:
        # previous is an empty leaf with other marks: the child replaces it
        for mark in bookmarks:
            if mark.leaf is previous:
                mark.leaf, mark.offset = child, 0
        result[-1] = child


# --- validation -------------------------------------------------------------


def find_problems(doc: Document) -> List[Tuple[Path, str]]:
    problems: List[Tuple[Path, str]] = []
    if not doc.blocks:
        problems.append(((), "document has no blocks"))
    for index, block in enumerate(doc.blocks):
        if not isinstance(block, Element):
            problems.append(((index,), "top-level entry is not an element"))
            continue
        if isinstance(block, ListItem):
            problems.append(((index,), "list item outside a list"))
        _check_element(block, (index,), problems)
    return problems


def _check_element(element: Element, path: Path, problems: List[Tuple[Path, str]]) -> None:
    if not element.children:
        problems.append((path, f"{element.type_name} has no children"))
        return
    for index, child in enumerate(element.children):
        child_path = path + (index,)
        if is_list(element):
            if not isinstance(child, ListItem):
                problems.append((child_path, f"{element.type_name} holds a non list-item child"))
        elif isinstance(element, ListItem):
            if isinstance(child, Element) and not is_list(child):
                problems.append((child_path, "list item holds a non-list element"))
        elif isinstance(child, Element) and not isinstance(element, UnknownElement):
            problems.append((child_path, f"{element.type_name} holds a nested element"))
        if isinstance(child, Element):
            _check_element(child, child_path, problems)


def validate(doc: Document) -> Document:
    problems = find_problems(doc)
    if problems:
        raise StructuralInvariantViolation(problems)
    return doc


def repair(doc: Document) -> Document:
    """Return a copy of `doc` in which every structural violation is patched."""
    fixed = copy.deepcopy(doc)
    blocks: List[Element] = []
    for block in fixed.blocks:
        if not isinstance(block, Element):
            logger.warning("Replacing dangling top-level node with an empty paragraph")
            blocks.append(Paragraph())
            continue
        if isinstance(block, ListItem):
            block = Paragraph(children=block.children, align=block.align)
        blocks.append(block)
        _repair_element(block)
    fixed.blocks = blocks or [Paragraph()]
    normalize(fixed)
    return fixed


def _repair_element(element: Element) -> None:
    children: List[Node] = []
    for child in element.children:
        if is_list(element):
            if isinstance(child, Leaf):
                child = ListItem(children=[child])
            elif not isinstance(child, ListItem):
                child = ListItem(children=[leaf for leaf, _ in leaves(child)] or [empty_leaf()])
        elif isinstance(element, ListItem):
            if isinstance(child, Element) and not is_list(child):
                children.extend(leaf for leaf, _ in leaves(child))
                continue
        elif isinstance(child, Element) and not isinstance(element, UnknownElement):
            children.extend(leaf for leaf, _ in leaves(child))
            continue
        if isinstance(child, Element):
            _repair_element(child)
        children.append(child)
    if not children:
        logger.warning("Element %s had no children; inserting a placeholder", element.type_name)
        children.append(ListItem() if is_list(element) else empty_leaf())
    element.children[:] = children
