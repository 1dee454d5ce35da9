from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Union

from .errors import InvalidInput

ALIGNMENTS = ("left", "center", "right")

# Wire name -> Leaf attribute.
BOOLEAN_MARKS = {
    "bold": "bold",
    "italic": "italic",
    "underline": "underline",
    "strikethrough": "strikethrough",
    "highlight": "highlight",
    "code": "code",
    "superscript": "superscript",
    "subscript": "subscript",
}
VALUE_MARKS = {
    "inlineMath": "inline_math",
    "link": "link",
    "color": "color",
    "backgroundColor": "background_color",
    "fontSize": "font_size",
}
MARKS = {**BOOLEAN_MARKS, **VALUE_MARKS}


@dataclass
class Leaf:
    """A run of text carrying independent formatting marks."""

    text: str = ""
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    highlight: bool = False
    code: bool = False
    superscript: bool = False
    subscript: bool = False
    inline_math: Optional[str] = None
    link: Optional[str] = None
    color: Optional[str] = None
    background_color: Optional[str] = None
    font_size: Optional[str] = None

    def marks(self) -> Dict[str, Any]:
        """Active marks keyed by wire name; false and empty values are left out."""
        active: Dict[str, Any] = {}
        for name, attr in MARKS.items():
            value = getattr(self, attr)
            if value:
                active[name] = value
        return active

    def same_marks(self, other: "Leaf") -> bool:
        return self.marks() == other.marks()

    def copy_with(self, text: str) -> "Leaf":
        clone = Leaf(text=text)
        apply_marks(clone, self.marks())
        return clone


def mark_attr(name: str) -> str:
    try:
        return MARKS[name]
    except KeyError:
        raise InvalidInput(f"Unknown mark: {name!r}") from None


def set_mark_value(leaf: Leaf, name: str, value: Any) -> None:
    attr = mark_attr(name)
    if name in BOOLEAN_MARKS:
        setattr(leaf, attr, bool(value))
    else:
        setattr(leaf, attr, value or None)


def apply_marks(leaf: Leaf, marks: Dict[str, Any]) -> Leaf:
    for name in MARKS:
        set_mark_value(leaf, name, marks.get(name))
    return leaf


@dataclass
class ImageSize:
    width: str
    height: str


@dataclass
class Element:
    """Base class for branch nodes; `kind` is the wire `type` tag."""

    children: List["Node"] = field(default_factory=lambda: [Leaf()])
    align: Optional[str] = None

    kind: ClassVar[str] = ""

    @property
    def type_name(self) -> str:
        return self.kind


@dataclass
class Paragraph(Element):
    kind: ClassVar[str] = "paragraph"


@dataclass
class HeadingOne(Element):
    kind: ClassVar[str] = "heading-one"


@dataclass
class HeadingTwo(Element):
    kind: ClassVar[str] = "heading-two"


@dataclass
class HeadingThree(Element):
    kind: ClassVar[str] = "heading-three"


@dataclass
class BlockQuote(Element):
    kind: ClassVar[str] = "block-quote"


@dataclass
class BulletedList(Element):
    kind: ClassVar[str] = "bulleted-list"


@dataclass
class NumberedList(Element):
    kind: ClassVar[str] = "numbered-list"


@dataclass
class ListItem(Element):
    kind: ClassVar[str] = "list-item"


@dataclass
class MathBlock(Element):
    formula: str = ""
    kind: ClassVar[str] = "math-block"


@dataclass
class Image(Element):
    url: str = ""
    alt: str = ""
    caption: Optional[str] = None
    image_align: str = "center"
    size: Optional[ImageSize] = None
    kind: ClassVar[str] = "image"


@dataclass
class UnknownElement(Element):
    """An element whose `type` tag is not recognised; kept verbatim."""

    type_tag: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    kind: ClassVar[str] = "unknown"

    @property
    def type_name(self) -> str:
        return self.type_tag


Node = Union[Element, Leaf]

ELEMENT_CLASSES = (
    Paragraph,
    HeadingOne,
    HeadingTwo,
    HeadingThree,
    BlockQuote,
    BulletedList,
    NumberedList,
    ListItem,
    MathBlock,
    Image,
    UnknownElement,
)
ELEMENT_TYPES = {cls.kind: cls for cls in ELEMENT_CLASSES if cls is not UnknownElement}
TYPE_ALIASES = {
    "heading-1": "heading-one",
    "heading-2": "heading-two",
    "heading-3": "heading-three",
    "formula": "math-block",
    "math": "math-block",
    "unorderedList": "bulleted-list",
    "orderedList": "numbered-list",
}

LIST_TYPES = ("bulleted-list", "numbered-list")
LIST_CLASSES = (BulletedList, NumberedList)
VOID_CLASSES = (MathBlock, Image)
# Element types a text block can be switched to by toggle_block.
TEXT_BLOCK_TYPES = ("paragraph", "heading-one", "heading-two", "heading-three", "block-quote", "list-item")


def canonical_type(type_name: str) -> str:
    return TYPE_ALIASES.get(type_name, type_name)


def element_class(type_name: str) -> type[Element] | None:
    return ELEMENT_TYPES.get(canonical_type(type_name))


def is_list(node: Any) -> bool:
    return isinstance(node, LIST_CLASSES)


def is_void(node: Any) -> bool:
    return isinstance(node, VOID_CLASSES)


def retype(element: Element, type_name: str) -> Element:
    """Return a new element of `type_name` holding the same children and alignment."""
    cls = element_class(type_name)
    if cls is None or cls in VOID_CLASSES:
        raise InvalidInput(f"Cannot convert a block to {type_name!r}")
    if type(element) is cls:
        return element
    return cls(children=element.children, align=element.align)


def empty_leaf() -> Leaf:
    return Leaf(text="")


@dataclass
class Document:
    blocks: List[Element] = field(default_factory=lambda: [Paragraph()])

    @property
    def children(self) -> List[Element]:
        return self.blocks


def node_text(node: Node | Document) -> str:
    if isinstance(node, Leaf):
        return node.text
    return "".join(node_text(child) for child in node.children)
