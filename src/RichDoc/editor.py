from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol
from urllib.parse import urlsplit

from . import commands, queries
from .config import EditorConfig
from .errors import InvalidInput, ReadOnlyError
from .model import Document, canonical_type
from .renderer_html import render_html
from .renderer_text import render_text
from .selection import Point, Selection, caret
from .serialization import document_to_data, dump_document, load_document
from .tree import leaves

logger = logging.getLogger(__name__)

ChangeListener = Callable[[Document], None]


@dataclass
class ImageRequest:
    url: str
    alt: str = ""
    caption: Optional[str] = None
    image_align: Optional[str] = None
    size: Any = None


class InputProvider(Protocol):
    def ask_link(self) -> Optional[str]:
        ...

    def ask_formula(self, display: bool) -> Optional[str]:
        ...

    def ask_image(self) -> Optional[ImageRequest]:
        ...


def start_selection(doc: Document) -> Selection:
    """Caret at the start of the first leaf."""
    for _, path in leaves(doc):
        return caret(path, 0)
    return caret((0, 0), 0)


class Editor:
    def __init__(
        self,
        initial_value: Any = None,
        read_only: bool = False,
        config: Optional[EditorConfig] = None,
        on_change: Optional[ChangeListener] = None,
    ) -> None:
        self.config = config or EditorConfig()
        self.read_only = read_only or self.config.read_only
        self._listeners: List[ChangeListener] = [on_change] if on_change else []
        self._document = load_document(initial_value)
        self._selection = start_selection(self._document)

    @property
    def document(self) -> Document:
        return self._document

    @property
    def selection(self) -> Selection:
        return self._selection

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def select(self, selection: Selection) -> None:
        """Move the selection; pending marks are dropped with the old one."""
        self._guard()
        commands.checked_span(self._document, selection)
        self._selection = Selection(selection.anchor, selection.focus)

    def select_range(self, anchor: Point, focus: Point) -> None:
        self.select(Selection(anchor, focus))

    def load(self, value: Any) -> None:
        self._guard()
        self._document = load_document(value)
        self._selection = start_selection(self._document)
        self._notify()

    # --- toolbar queries ---

    def is_mark_active(self, mark: str) -> bool:
        return queries.is_mark_active(self._document, self._selection, mark)

    def is_block_active(self, block_type: str) -> bool:
        return queries.is_block_active(self._document, self._selection, block_type)

    def is_align_active(self, align: Optional[str]) -> bool:
        return queries.is_align_active(self._document, self._selection, align)

    def active_marks(self) -> Dict[str, Any]:
        return queries.active_marks(self._document, self._selection)

    def reading_stats(self) -> queries.ReadingStats:
        return queries.reading_stats(self._document)

    # --- commands ---

    def toggle_mark(self, mark: str) -> None:
        self._check_mark(mark)
        self._run(commands.toggle_mark, mark)

    def set_mark(self, mark: str, value: Any) -> None:
        self._check_mark(mark)
        self._run(commands.set_mark, mark, value)

    def remove_mark(self, mark: str) -> None:
        self._check_mark(mark)
        self._run(commands.remove_mark, mark)

    def toggle_block(self, block_type: str) -> None:
        self._guard()
        if canonical_type(block_type) not in self.config.allowed_blocks:
            raise InvalidInput(f"Block type {block_type!r} is disabled")
        self._run(commands.toggle_block, block_type)

    def set_align(self, align: Optional[str]) -> None:
        self._run(commands.set_align, align)

    def insert_text(self, text: str) -> None:
        self._run(commands.insert_text, text)

    def insert_break(self) -> None:
        self._run(commands.insert_break)

    def insert_link(self, url: Optional[str], text: Optional[str] = None) -> None:
        self._check_mark("link")
        self._check_url(url)
        self._run(commands.insert_link, url, text)

    def insert_inline_formula(self, source: Optional[str]) -> None:
        self._check_mark("inlineMath")
        self._run(commands.insert_inline_formula, source)

    def insert_block_formula(self, source: Optional[str]) -> None:
        self._run(commands.insert_block_formula, source)

    def insert_image(
        self,
        url: Optional[str],
        alt: str = "",
        image_align: Optional[str] = None,
        caption: Optional[str] = None,
        size: Any = None,
    ) -> None:
        self._check_url(url)
        align = image_align or self.config.default_image_align
        self._run(commands.insert_image, url, alt, align, caption, size)

    def delete_selection(self) -> None:
        self._run(commands.delete_selection)

    # --- dialogs ---

    def request_link(self, provider: InputProvider) -> bool:
        self._guard()
        url = provider.ask_link()
        if url is None:
            logger.debug("Link request cancelled")
            return False
        self.insert_link(url)
        return True

    def request_formula(self, provider: InputProvider, display: bool = False) -> bool:
        self._guard()
        source = provider.ask_formula(display)
        if source is None:
            logger.debug("Formula request cancelled")
            return False
        if display:
            self.insert_block_formula(source)
        else:
            self.insert_inline_formula(source)
        return True

    def request_image(self, provider: InputProvider) -> bool:
        self._guard()
        request = provider.ask_image()
        if request is None:
            logger.debug("Image request cancelled")
            return False
        self.insert_image(request.url, request.alt, request.image_align, request.caption, request.size)
        return True

    # --- output ---

    @property
    def value(self) -> List[Dict[str, Any]]:
        return document_to_data(self._document)

    def to_json(self, indent: Optional[int] = None) -> str:
        return dump_document(self._document, indent=indent)

    def render_html(self) -> str:
        return render_html(self._document)

    def render_text(self) -> str:
        return render_text(self._document)

    # --- plumbing ---

    def _guard(self) -> None:
        if self.read_only:
            raise ReadOnlyError("Editor is read-only")

    def _check_mark(self, mark: str) -> None:
        self._guard()
        if mark not in self.config.allowed_marks:
            raise InvalidInput(f"Mark {mark!r} is disabled")

    def _check_url(self, url: Optional[str]) -> None:
        if not url:
            return
        scheme = urlsplit(url.strip()).scheme.lower()
        if scheme and scheme not in self.config.link_schemes:
            raise InvalidInput(f"URL scheme {scheme!r} is not allowed")

    def _run(self, command: Callable[..., commands.EditResult], *args: Any) -> None:
        self._guard()
        result = command(self._document, self._selection, *args)
        changed = result.document is not self._document
        self._document, self._selection = result
        if changed:
            self._notify()

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self._document)
