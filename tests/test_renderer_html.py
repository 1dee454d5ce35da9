from RichDoc.model import (
    ELEMENT_CLASSES,
    BulletedList,
    Document,
    HeadingOne,
    Image,
    ImageSize,
    Leaf,
    ListItem,
    MathBlock,
    NumberedList,
    Paragraph,
    UnknownElement,
)
from RichDoc.renderer_html import BLOCK_RULES, render_html, render_leaf, render_node


def test_every_element_class_has_a_rule():
    assert set(ELEMENT_CLASSES) <= set(BLOCK_RULES)


def test_blocks_render_to_fixed_tags():
    doc = Document(
        blocks=[
            HeadingOne(children=[Leaf("Title")], align="center"),
            BulletedList(children=[ListItem(children=[Leaf("a")])]),
            NumberedList(children=[ListItem(children=[Leaf("b")])]),
        ]
    )
    assert render_html(doc) == (
        '<h1 style="text-align: center">Title</h1>' "<ul><li>a</li></ul>" "<ol><li>b</li></ol>"
    )


def test_link_wraps_other_marks():
    leaf = Leaf("x", bold=True, italic=True, link="https://example.com")
    assert render_leaf(leaf) == (
        '<a href="https://example.com" target="_blank" rel="noopener noreferrer">'
        "<em><strong>x</strong></em></a>"
    )


def test_script_links_are_neutralised():
    html = render_leaf(Leaf("click", link="javascript:alert(1)"))
    assert 'href="#"' in html
    assert "javascript" not in html


def test_text_is_escaped_and_styles_applied():
    html = render_leaf(Leaf("<b>", color="#ff0000", font_size="18px"))
    assert html == '<span style="color: #ff0000; font-size: 18px">&lt;b&gt;</span>'


def test_formulas_render_or_show_their_source():
    assert render_leaf(Leaf("x^2", inline_math="x^2")) == '<span class="math-inline" data-latex="x^2">x²</span>'
    broken = render_node(MathBlock(formula="\\frac{a}"))
    assert "math-error" in broken
    assert "\\frac{a}" in broken


def test_image_alignment_and_caption():
    left = render_node(Image(url="cat.png", alt="Cat", image_align="left", caption="A cat"))
    assert 'class="image image-left"' in left
    assert "<figcaption>A cat</figcaption>" in left
    odd = render_node(Image(url="cat.png", image_align="diagonal", size=ImageSize("10px", "20px")))
    assert 'class="image image-center"' in odd
    assert 'style="width: 10px; height: 20px"' in odd


def test_unknown_elements_render_as_paragraphs():
    node = UnknownElement(children=[Leaf("kept")], type_tag="table")
    assert render_node(node) == "<p>kept</p>"
    assert render_html(Document(blocks=[Paragraph(children=[Leaf("")])])) == "<p></p>"
