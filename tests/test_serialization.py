import json

from RichDoc.model import (
    BlockQuote,
    BulletedList,
    Document,
    HeadingOne,
    HeadingTwo,
    Image,
    ImageSize,
    Leaf,
    ListItem,
    MathBlock,
    NumberedList,
    Paragraph,
    UnknownElement,
)
from RichDoc.serialization import dump_document, leaf_to_data, load_document
from RichDoc.tree import validate


def rich_document() -> Document:
    return Document(
        blocks=[
            HeadingOne(children=[Leaf("Essay")], align="center"),
            Paragraph(
                children=[
                    Leaf("plain "),
                    Leaf("bold link", bold=True, link="https://example.com"),
                    Leaf("x^2", inline_math="x^2"),
                    Leaf(" tinted", color="#333333", background_color="#eeeeee", font_size="18px"),
                ]
            ),
            BlockQuote(children=[Leaf("quoted", italic=True)]),
            BulletedList(
                children=[
                    ListItem(children=[Leaf("one"), NumberedList(children=[ListItem(children=[Leaf("nested")])])]),
                ]
            ),
            MathBlock(formula="\\frac{a}{b}"),
            Image(url="cat.png", alt="Cat", caption="A cat", image_align="right", size=ImageSize("200px", "100px")),
            UnknownElement(children=[Leaf("cell")], type_tag="table", attributes={"rows": 2}),
        ]
    )


def test_round_trip_through_json():
    doc = rich_document()
    assert load_document(dump_document(doc)) == doc


def test_wire_format_uses_camel_case_marks():
    assert leaf_to_data(Leaf("x", bold=True, inline_math="y", background_color="#fff")) == {
        "text": "x",
        "bold": True,
        "inlineMath": "y",
        "backgroundColor": "#fff",
    }
    data = json.loads(dump_document(rich_document()))
    image = data[5]
    assert image["imageAlign"] == "right"
    assert image["size"] == {"width": "200px", "height": "100px"}
    assert data[6]["type"] == "table" and data[6]["rows"] == 2


def test_empty_or_broken_input_gives_default_document():
    for value in (None, "", "   ", "not json", "{}", "42"):
        assert load_document(value) == Document(blocks=[Paragraph(children=[Leaf()])])


def test_type_aliases_are_accepted():
    doc = load_document('[{"type": "heading-2", "children": [{"text": "T"}]}, {"type": "formula", "formula": "x", "children": [{"text": ""}]}]')
    assert isinstance(doc.blocks[0], HeadingTwo)
    assert isinstance(doc.blocks[1], MathBlock)


def test_legacy_block_format():
    doc = load_document(
        {
            "type": "content",
            "blocks": [
                {"type": "heading-one", "data": {"text": "Title"}},
                {"type": "list", "data": {"style": "ordered", "items": ["a", "b"]}},
                {"type": "formula", "data": {"formula": "E=mc^2"}},
                {"type": "image", "data": {"url": "x.png", "caption": "X", "align": "left"}},
            ],
        }
    )
    assert [type(block) for block in doc.blocks] == [HeadingOne, NumberedList, MathBlock, Image]
    assert len(doc.blocks[1].children) == 2
    assert doc.blocks[3].image_align == "left"


def test_broken_structure_is_repaired_on_load():
    doc = load_document(
        [
            {"type": "bulleted-list", "children": [{"text": "loose"}]},
            {"type": "paragraph", "children": []},
        ]
    )
    validate(doc)
    assert isinstance(doc.blocks[0], BulletedList)
    assert doc.blocks[0].children[0] == ListItem(children=[Leaf("loose")])
    assert doc.blocks[1] == Paragraph(children=[Leaf()])
