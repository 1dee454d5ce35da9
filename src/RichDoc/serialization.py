from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from .errors import InvalidInput
from .model import (
    ALIGNMENTS,
    BOOLEAN_MARKS,
    MARKS,
    BulletedList,
    Document,
    Element,
    HeadingOne,
    HeadingThree,
    HeadingTwo,
    Image,
    ImageSize,
    Leaf,
    ListItem,
    MathBlock,
    Node,
    NumberedList,
    Paragraph,
    BlockQuote,
    UnknownElement,
    canonical_type,
    element_class,
    mark_attr,
)
from .tree import find_problems, repair

logger = logging.getLogger(__name__)

_COMMON_KEYS = {"type", "children", "align"}


def default_document() -> Document:
    return Document(blocks=[Paragraph()])


# --- to JSON ----------------------------------------------------------------


def leaf_to_data(leaf: Leaf) -> Dict[str, Any]:
    data: Dict[str, Any] = {"text": leaf.text}
    data.update(leaf.marks())
    return data


def element_to_data(element: Element) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": element.type_name}
    if isinstance(element, UnknownElement):
        data.update(element.attributes)
    if element.align is not None:
        data["align"] = element.align
    if isinstance(element, MathBlock):
        data["formula"] = element.formula
    elif isinstance(element, Image):
        data["url"] = element.url
        data["alt"] = element.alt
        if element.caption is not None:
            data["caption"] = element.caption
        data["imageAlign"] = element.image_align
        if element.size is not None:
            data["size"] = {"width": element.size.width, "height": element.size.height}
    data["children"] = [node_to_data(child) for child in element.children]
    return data


def node_to_data(node: Node) -> Dict[str, Any]:
    if isinstance(node, Leaf):
        return leaf_to_data(node)
    return element_to_data(node)


def document_to_data(doc: Document) -> List[Dict[str, Any]]:
    return [element_to_data(block) for block in doc.blocks]


def dump_document(doc: Document, indent: int | None = None) -> str:
    return json.dumps(document_to_data(doc), ensure_ascii=False, indent=indent)


# --- from JSON --------------------------------------------------------------


def leaf_from_data(data: Mapping[str, Any]) -> Leaf:
    leaf = Leaf(text=str(data.get("text") or ""))
    for name in MARKS:
        value = data.get(name)
        if value is None or value is False:
            continue
        if name in BOOLEAN_MARKS:
            setattr(leaf, mark_attr(name), bool(value))
        else:
            setattr(leaf, mark_attr(name), str(value) if value != "" else None)
    return leaf


def _align(value: Any) -> str | None:
    return value if value in ALIGNMENTS else None


def element_from_data(data: Mapping[str, Any]) -> Element:
    type_name = str(data.get("type") or "paragraph")
    children = [node_from_data(child) for child in data.get("children") or [] if isinstance(child, Mapping)]
    cls = element_class(type_name)
    align = _align(data.get("align"))
    if cls is None:
        logger.warning("Unknown element type %r kept as-is", type_name)
        extra = {key: value for key, value in data.items() if key not in _COMMON_KEYS}
        return UnknownElement(children=children, align=align, type_tag=type_name, attributes=extra)
    if cls is MathBlock:
        return MathBlock(children=children, align=align, formula=str(data.get("formula") or ""))
    if cls is Image:
        return Image(
            children=children,
            align=align,
            url=str(data.get("url") or ""),
            alt=str(data.get("alt") or ""),
            caption=data.get("caption") or None,
            image_align=str(data.get("imageAlign") or "center"),
            size=_size_from_data(data.get("size")),
        )
    return cls(children=children, align=align)


def _size_from_data(value: Any) -> ImageSize | None:
    if not isinstance(value, Mapping):
        return None
    width, height = value.get("width"), value.get("height")
    if width is None or height is None:
        return None
    return ImageSize(width=str(width), height=str(height))


def node_from_data(data: Mapping[str, Any]) -> Node:
    if "text" in data and "children" not in data:
        return leaf_from_data(data)
    return element_from_data(data)


def document_from_data(data: Any, repair_tree: bool = True) -> Document:
    """Build a document from JSON-shaped data, repairing it unless told not to."""
    if data is None:
        return default_document()
    if isinstance(data, Mapping):
        if data.get("type") == "content" and isinstance(data.get("blocks"), list):
            return _from_legacy_content(data["blocks"])
        raise InvalidInput("Persisted document must be a list of nodes")
    if not isinstance(data, list):
        raise InvalidInput("Persisted document must be a list of nodes")
    blocks = []
    for entry in data:
        if not isinstance(entry, Mapping):
            logger.warning("Skipping non-object entry in persisted document: %r", entry)
            continue
        node = node_from_data(entry)
        blocks.append(node if isinstance(node, Element) else Paragraph(children=[node]))
    if not blocks:
        return default_document()
    doc = Document(blocks=blocks)
    problems = find_problems(doc)
    if problems and repair_tree:
        logger.warning("Repairing %d structural problem(s) in persisted document", len(problems))
        doc = repair(doc)
    return doc


def load_document(value: Any) -> Document:
    """Load a document from JSON text or already-decoded JSON data.

    Empty values and text that is not valid JSON fall back to the default
    document.
    """
    if value is None:
        return default_document()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        if not value.strip():
            return default_document()
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            logger.warning("Failed to parse document JSON (%s); using an empty document", exc)
            return default_document()
    try:
        return document_from_data(value)
    except InvalidInput as exc:
        logger.warning("%s; using an empty document", exc)
        return default_document()


# --- legacy block format ----------------------------------------------------

_LEGACY_TEXT_TYPES = {
    "heading-one": HeadingOne,
    "heading-two": HeadingTwo,
    "heading-three": HeadingThree,
    "quote": BlockQuote,
}


def _from_legacy_content(entries: List[Any]) -> Document:
    blocks: List[Element] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        kind = entry.get("type")
        data = entry.get("data") if isinstance(entry.get("data"), Mapping) else {}
        if kind == "list" and isinstance(data.get("items"), list):
            cls = NumberedList if data.get("style") == "ordered" else BulletedList
            items = [ListItem(children=[Leaf(text=str(item or ""))]) for item in data["items"]]
            blocks.append(cls(children=items or [ListItem()]))
        elif kind == "image":
            blocks.append(
                Image(
                    url=str(data.get("url") or ""),
                    alt=str(data.get("alt") or ""),
                    caption=data.get("caption") or None,
                    image_align=str(data.get("align") or "center"),
                )
            )
        elif kind == "formula":
            blocks.append(MathBlock(formula=str(data.get("formula") or "")))
        else:
            cls = _LEGACY_TEXT_TYPES.get(canonical_type(str(kind)), Paragraph)
            blocks.append(cls(children=[Leaf(text=str(data.get("text") or ""))]))
    return Document(blocks=blocks or [Paragraph()])
