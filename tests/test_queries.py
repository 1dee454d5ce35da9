import pytest

from RichDoc.errors import InvalidInput
from RichDoc.model import BulletedList, Document, HeadingTwo, Leaf, ListItem, NumberedList, Paragraph
from RichDoc.queries import active_marks, is_align_active, is_block_active, is_mark_active, reading_stats
from RichDoc.selection import caret, select


def mixed_paragraph() -> Document:
    return Document(
        blocks=[
            Paragraph(children=[Leaf("bold", bold=True), Leaf(" plain"), Leaf(" both", bold=True, italic=True)]),
        ]
    )


def test_mark_active_over_range_needs_every_leaf():
    doc = mixed_paragraph()
    assert is_mark_active(doc, select((0, 0), 0, (0, 0), 4), "bold")
    assert not is_mark_active(doc, select((0, 0), 0, (0, 2), 5), "bold")
    assert is_mark_active(doc, select((0, 2), 0, (0, 2), 5), "italic")


def test_mark_active_ignores_edge_leaves_without_covered_text():
    doc = mixed_paragraph()
    # ends at offset 0 of the plain leaf: nothing of it is covered
    assert is_mark_active(doc, select((0, 0), 1, (0, 1), 0), "bold")


def test_mark_active_at_caret_uses_leaf_or_pending_marks():
    doc = mixed_paragraph()
    assert is_mark_active(doc, caret((0, 0), 2), "bold")
    assert not is_mark_active(doc, caret((0, 1), 2), "bold")
    pending = caret((0, 1), 2).with_marks({"bold": True})
    assert is_mark_active(doc, pending, "bold")
    assert not is_mark_active(doc, caret((0, 0), 2).with_marks({}), "bold")


def test_unknown_mark_is_rejected():
    with pytest.raises(InvalidInput):
        is_mark_active(mixed_paragraph(), caret((0, 0), 0), "blink")


def test_active_marks_intersects_range():
    doc = mixed_paragraph()
    assert active_marks(doc, select((0, 0), 0, (0, 2), 5)) == {}
    assert active_marks(doc, caret((0, 2), 1)) == {"bold": True, "italic": True}


def test_block_active_uses_nearest_block_and_enclosing_list():
    doc = Document(
        blocks=[
            HeadingTwo(children=[Leaf("Title")], align="center"),
            NumberedList(
                children=[
                    ListItem(
                        children=[
                            Leaf("outer"),
                            BulletedList(children=[ListItem(children=[Leaf("inner")])]),
                        ]
                    )
                ]
            ),
        ]
    )
    assert is_block_active(doc, caret((0, 0), 0), "heading-two")
    assert is_block_active(doc, caret((0, 0), 0), "heading-2")
    assert not is_block_active(doc, caret((0, 0), 0), "paragraph")
    assert is_block_active(doc, caret((1, 0, 0), 0), "numbered-list")
    assert is_block_active(doc, caret((1, 0, 1, 0, 0), 0), "bulleted-list")
    assert not is_block_active(doc, caret((1, 0, 1, 0, 0), 0), "numbered-list")
    assert is_align_active(doc, caret((0, 0), 0), "center")
    assert is_align_active(doc, caret((1, 0, 0), 0), None)


def test_queries_on_missing_selection_are_false():
    doc = mixed_paragraph()
    assert not is_mark_active(doc, None, "bold")
    assert not is_block_active(doc, None, "paragraph")
    assert not is_block_active(doc, caret((9, 0), 0), "paragraph")


def test_reading_stats():
    words = " ".join(["word"] * 450)
    stats = reading_stats(Document(blocks=[Paragraph(children=[Leaf(words)])]))
    assert stats.words == 450
    assert stats.minutes == 3
    assert reading_stats(Document()).minutes == 1
