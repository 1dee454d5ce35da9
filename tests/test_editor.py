from typing import Optional

import pytest

from RichDoc.config import EditorConfig
from RichDoc.editor import Editor, ImageRequest
from RichDoc.errors import InvalidInput, InvalidSelection, ReadOnlyError
from RichDoc.model import HeadingOne, Image, MathBlock
from RichDoc.selection import caret, select


class ScriptedInput:
    def __init__(self, link=None, formula=None, image=None):
        self.link = link
        self.formula = formula
        self.image = image

    def ask_link(self) -> Optional[str]:
        return self.link

    def ask_formula(self, display: bool) -> Optional[str]:
        return self.formula

    def ask_image(self) -> Optional[ImageRequest]:
        return self.image


def test_new_editor_starts_with_one_empty_paragraph():
    editor = Editor()
    assert editor.value == [{"type": "paragraph", "children": [{"text": ""}]}]
    assert editor.selection == caret((0, 0), 0)


def test_typing_with_pending_mark_notifies_once():
    changes = []
    editor = Editor(on_change=changes.append)
    editor.toggle_mark("bold")
    assert changes == []
    assert editor.is_mark_active("bold")

    editor.insert_text("x")
    assert len(changes) == 1
    assert changes[0] is editor.document
    assert editor.value == [{"type": "paragraph", "children": [{"text": "x", "bold": True}]}]


def test_initial_value_and_toolbar_queries():
    editor = Editor('[{"type": "heading-one", "align": "right", "children": [{"text": "Title"}]}]')
    assert isinstance(editor.document.blocks[0], HeadingOne)
    assert editor.is_block_active("heading-one")
    assert editor.is_align_active("right")
    editor.select(select((0, 0), 0, (0, 0), 5))
    editor.toggle_block("heading-one")
    assert editor.is_block_active("paragraph")
    assert editor.render_text() == "Title"


def test_select_rejects_bad_positions():
    editor = Editor()
    with pytest.raises(InvalidSelection):
        editor.select(caret((2, 0), 0))


def test_read_only_editor_refuses_changes_but_renders():
    editor = Editor('[{"type": "paragraph", "children": [{"text": "fixed"}]}]', read_only=True)
    with pytest.raises(ReadOnlyError):
        editor.insert_text("more")
    with pytest.raises(ReadOnlyError):
        editor.request_link(ScriptedInput(link="https://example.com"))
    with pytest.raises(ReadOnlyError):
        editor.select(select((0, 0), 0, (0, 0), 2))
    assert editor.selection == caret((0, 0), 0)
    assert editor.render_html() == "<p>fixed</p>"
    assert Editor(config=EditorConfig(read_only=True)).read_only


def test_config_limits_marks_blocks_and_link_schemes():
    editor = Editor(config=EditorConfig(allowed_marks=("italic", "link"), allowed_blocks=("paragraph",)))
    with pytest.raises(InvalidInput):
        editor.toggle_mark("bold")
    with pytest.raises(InvalidInput):
        editor.toggle_block("heading-one")
    with pytest.raises(InvalidInput):
        editor.insert_link("javascript:alert(1)")
    with pytest.raises(InvalidInput):
        editor.insert_link("ftp://example.com/file")
    editor.insert_link("/docs/help", "help")
    assert editor.document.blocks[0].children[0].link == "/docs/help"


def test_cancelled_requests_change_nothing():
    changes = []
    editor = Editor(on_change=changes.append)
    before = editor.document
    cancelled = ScriptedInput()
    assert not editor.request_link(cancelled)
    assert not editor.request_formula(cancelled, display=True)
    assert not editor.request_image(cancelled)
    assert editor.document is before
    assert changes == []


def test_answered_requests_insert_content():
    editor = Editor(config=EditorConfig(default_image_align="left"))
    assert editor.request_formula(ScriptedInput(formula="x^2"), display=True)
    assert isinstance(editor.document.blocks[1], MathBlock)
    assert editor.request_image(ScriptedInput(image=ImageRequest(url="cat.png", alt="Cat")))
    images = [block for block in editor.document.blocks if isinstance(block, Image)]
    assert images[0].image_align == "left"
    assert editor.request_link(ScriptedInput(link="https://example.com"))
    assert "https://example.com" in editor.to_json()
