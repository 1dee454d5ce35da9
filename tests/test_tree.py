import pytest

from RichDoc.errors import PathNotFound, StructuralInvariantViolation
from RichDoc.model import BulletedList, Document, Leaf, ListItem, MathBlock, Paragraph
from RichDoc.selection import Point, Span
from RichDoc.tree import (
    Bookmark,
    common_ancestor,
    get_leaf,
    get_node,
    locate,
    nodes_matching,
    normalize,
    prune_empty,
    remove_node,
    repair,
    siblings,
    split_leaf,
    text_block_path,
    validate,
)


def sample_document() -> Document:
    return Document(
        blocks=[
            Paragraph(children=[Leaf("hello")]),
            BulletedList(
                children=[
                    ListItem(children=[Leaf("a")]),
                    ListItem(children=[Leaf("b")]),
                ]
            ),
        ]
    )


def test_get_node_follows_child_indices():
    doc = sample_document()
    assert get_node(doc, (1, 1, 0)).text == "b"
    assert isinstance(get_node(doc, (1, 0)), ListItem)
    assert get_leaf(doc, [0, 0]).text == "hello"


@pytest.mark.parametrize("path", [(), (5,), (0, 3), (0, 0, 0), (0, "0"), (1, 0.0), (True,), None])
def test_get_node_rejects_bad_paths(path):
    with pytest.raises(PathNotFound):
        get_node(sample_document(), path)


def test_nodes_matching_is_preorder_and_restartable():
    doc = sample_document()
    matches = nodes_matching(doc)
    paths = [path for _, path in matches]
    assert paths == [(0,), (0, 0), (1,), (1, 0), (1, 0, 0), (1, 1), (1, 1, 0)]
    assert [path for _, path in matches] == paths


def test_nodes_matching_limits_to_span_and_predicate():
    doc = sample_document()
    span = Span(Point((1, 0, 0), 0), Point((1, 1, 0), 1))
    found = list(nodes_matching(doc, span, lambda node: isinstance(node, Leaf)))
    assert [leaf.text for leaf, _ in found] == ["a", "b"]


def test_nodes_matching_is_lazy():
    doc = sample_document()
    matches = nodes_matching(doc, predicate=lambda node: isinstance(node, Leaf))
    doc.blocks.append(Paragraph(children=[Leaf("late")]))
    assert [leaf.text for leaf, _ in matches][-1] == "late"


def test_path_helpers():
    doc = sample_document()
    before, after = siblings(doc, (1, 0))
    assert before == [] and len(after) == 1
    assert common_ancestor((1, 0, 0), (1, 1, 0)) == (1,)
    assert text_block_path(doc, (1, 1, 0)) == (1, 1)


def test_split_leaf_keeps_marks():
    doc = Document(blocks=[Paragraph(children=[Leaf("hello", bold=True)])])
    assert split_leaf(doc, Point((0, 0), 2)) == (0, 1)
    texts = [(leaf.text, leaf.bold) for leaf in doc.blocks[0].children]
    assert texts == [("he", True), ("llo", True)]


def test_split_leaf_at_edges_does_nothing():
    doc = Document(blocks=[Paragraph(children=[Leaf("hello")])])
    assert split_leaf(doc, Point((0, 0), 0)) == (0, 0)
    assert split_leaf(doc, Point((0, 0), 5)) == (0, 1)
    assert len(doc.blocks[0].children) == 1


def test_normalize_merges_and_drops_leaves():
    doc = Document(
        blocks=[
            Paragraph(
                children=[
                    Leaf("a"),
                    Leaf("b"),
                    Leaf("c", bold=True),
                    Leaf(""),
                    Leaf("x", inline_math="x"),
                    Leaf("y", inline_math="y"),
                ]
            )
        ]
    )
    normalize(doc)
    children = doc.blocks[0].children
    assert [leaf.text for leaf in children] == ["ab", "c", "x", "y"]
    assert children[1].bold


def test_normalize_within_touches_only_given_elements():
    doc = Document(blocks=[Paragraph(children=[Leaf("a"), Leaf("b")]), Paragraph(children=[Leaf("c"), Leaf("d")])])
    normalize(doc, within=[doc.blocks[1]])
    assert [leaf.text for leaf in doc.blocks[0].children] == ["a", "b"]
    assert [leaf.text for leaf in doc.blocks[1].children] == ["cd"]


def test_normalize_moves_bookmarks_with_the_text():
    second = Leaf("b")
    doc = Document(blocks=[Paragraph(children=[Leaf("a"), second])])
    mark = Bookmark(second, 1)
    normalize(doc, [mark])
    assert locate(doc, mark) == Point((0, 0), 2)


def test_remove_node_leaves_placeholders():
    doc = Document(blocks=[BulletedList(children=[ListItem(children=[Leaf("only")])])])
    remove_node(doc, (0, 0))
    assert isinstance(doc.blocks[0].children[0], ListItem)
    remove_node(doc, (0,))
    assert isinstance(doc.blocks[0], Paragraph)


def test_prune_empty_drops_empty_lists():
    doc = Document(blocks=[BulletedList(children=[ListItem(children=[])])])
    prune_empty(doc, (0, 0))
    assert len(doc.blocks) == 1
    assert isinstance(doc.blocks[0], Paragraph)


def test_validate_reports_paths():
    doc = Document(blocks=[BulletedList(children=[Paragraph()]), Paragraph(children=[])])
    with pytest.raises(StructuralInvariantViolation) as excinfo:
        validate(doc)
    assert (0, 0) in excinfo.value.paths
    assert (1,) in excinfo.value.paths


def test_repair_produces_valid_copy():
    doc = Document(
        blocks=[
            BulletedList(children=[Paragraph(children=[Leaf("stray")])]),
            Paragraph(children=[]),
            MathBlock(children=[], formula="x"),
        ]
    )
    fixed = repair(doc)
    assert validate(fixed) is fixed
    assert isinstance(fixed.blocks[0].children[0], ListItem)
    assert fixed.blocks[0].children[0].children[0].text == "stray"
    # the input is untouched
    assert doc.blocks[1].children == []
