import textwrap

from RichDoc import markdown_parser
from RichDoc.model import (
    BlockQuote,
    BulletedList,
    HeadingOne,
    HeadingThree,
    Image,
    ListItem,
    MathBlock,
    NumberedList,
    Paragraph,
)
from RichDoc.tree import validate


def test_parse_blocks_and_inline():
    md_text = """
# 1 Введение

Текст с *курсивом*, **жирным** и встроенной формулой $E=mc^2$.

- Первый пункт
- Второй пункт

![Схема](diagram.png "Схема процесса")

$$
S = \\pi r^2
$$
"""
    document = markdown_parser.parse_markdown(md_text)
    assert isinstance(document.blocks[0], HeadingOne)
    assert isinstance(document.blocks[1], Paragraph)
    leaves = document.blocks[1].children
    assert any(leaf.inline_math == "E=mc^2" for leaf in leaves)
    assert any(leaf.italic for leaf in leaves)
    assert any(leaf.bold for leaf in leaves)
    assert isinstance(document.blocks[2], BulletedList)
    assert len(document.blocks[2].children) == 2
    assert isinstance(document.blocks[3], Image)
    assert document.blocks[3].url == "diagram.png"
    assert document.blocks[3].caption == "Схема процесса"
    assert isinstance(document.blocks[4], MathBlock)
    assert document.blocks[4].formula == "S = \\pi r^2"
    validate(document)


def test_parse_nested_lists_quotes_and_code():
    md_text = textwrap.dedent(
        """
        1. first
            - inner

        > quoted [link](https://example.com) ~~gone~~

        #### Deep heading

        ```
        print("hi")
        ```
        """
    )
    document = markdown_parser.parse_markdown(md_text)
    numbered = document.blocks[0]
    assert isinstance(numbered, NumberedList)
    item = numbered.children[0]
    assert isinstance(item, ListItem)
    assert item.children[0].text == "first"
    assert isinstance(item.children[1], BulletedList)

    quote = document.blocks[1]
    assert isinstance(quote, BlockQuote)
    assert any(leaf.link == "https://example.com" for leaf in quote.children)
    assert any(leaf.strikethrough for leaf in quote.children)

    assert isinstance(document.blocks[2], HeadingThree)
    code = document.blocks[3]
    assert isinstance(code, Paragraph)
    assert code.children[0].code
    assert code.children[0].text == 'print("hi")'
    validate(document)


def test_empty_markdown_gives_one_paragraph():
    document = markdown_parser.parse_markdown("")
    assert len(document.blocks) == 1
    assert isinstance(document.blocks[0], Paragraph)
