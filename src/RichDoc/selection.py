from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Sequence

from .errors import InvalidSelection


@dataclass(frozen=True, order=True)
class Point:
    """A text position: the path of a leaf plus a character offset inside it."""

    path: tuple[int, ...]
    offset: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", tuple(self.path))

    def to_data(self) -> Dict[str, Any]:
        return {"path": list(self.path), "offset": self.offset}

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "Point":
        try:
            path = tuple(int(index) for index in data["path"])
            offset = int(data["offset"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidSelection(f"Malformed point: {data!r}") from exc
        return cls(path, offset)


@dataclass(frozen=True)
class Span:
    """Direction-free view of a selection: `start` never comes after `end`."""

    start: Point
    end: Point

    @property
    def is_collapsed(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class Selection:
    anchor: Point
    focus: Point
    # Pending marks for the next inserted text; only meaningful on a caret.
    marks: Optional[Mapping[str, Any]] = field(default=None, compare=False)

    @classmethod
    def collapsed(cls, point: Point) -> "Selection":
        return cls(point, point)

    @property
    def is_collapsed(self) -> bool:
        return self.anchor == self.focus

    @property
    def is_backward(self) -> bool:
        return self.focus < self.anchor

    def edges(self) -> Span:
        if self.is_backward:
            return Span(self.focus, self.anchor)
        return Span(self.anchor, self.focus)

    def with_marks(self, marks: Optional[Mapping[str, Any]]) -> "Selection":
        return replace(self, marks=dict(marks) if marks is not None else None)

    def to_data(self) -> Dict[str, Any]:
        return {"anchor": self.anchor.to_data(), "focus": self.focus.to_data()}

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "Selection":
        try:
            return cls(Point.from_data(data["anchor"]), Point.from_data(data["focus"]))
        except (KeyError, TypeError) as exc:
            raise InvalidSelection(f"Malformed selection: {data!r}") from exc


def caret(path: Sequence[int], offset: int = 0) -> Selection:
    return Selection.collapsed(Point(tuple(path), offset))


def select(anchor_path: Sequence[int], anchor_offset: int, focus_path: Sequence[int], focus_offset: int) -> Selection:
    return Selection(Point(tuple(anchor_path), anchor_offset), Point(tuple(focus_path), focus_offset))


def is_collapsed(selection: Selection) -> bool:
    return selection.is_collapsed


def normalize(selection: Selection) -> Selection:
    """Reorder anchor and focus into document order."""
    if not selection.is_backward:
        return selection
    return Selection(selection.focus, selection.anchor, selection.marks)


def span_of(selection: Selection) -> Span:
    return selection.edges()


def is_prefix(prefix: Sequence[int], path: Sequence[int]) -> bool:
    return len(prefix) <= len(path) and tuple(path[: len(prefix)]) == tuple(prefix)


def overlaps(path: Sequence[int], span: Span) -> bool:
    """True when the subtree rooted at `path` intersects the span's path interval."""
    path = tuple(path)
    if is_prefix(path, span.start.path):
        return True
    return span.start.path <= path <= span.end.path


def after_span(path: Sequence[int], span: Span) -> bool:
    """True when the subtree at `path` lies entirely after the span."""
    path = tuple(path)
    return path > span.end.path and not is_prefix(path, span.end.path)
