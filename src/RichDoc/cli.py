from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from . import markdown_parser, renderer_docx
from .config import EditorConfig, load_config
from .errors import InvalidInput
from .renderer_html import render_html
from .renderer_text import render_text
from .serialization import document_from_data, dump_document, load_document
from .tree import find_problems
from .utils import configure_logging, read_text, resolve_output_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="richdoc",
        description="Render, import and check rich-text editor documents.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=str, help="Path to a YAML editor config")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render a JSON document")
    render.add_argument("input", type=str, help="Path to JSON document")
    render.add_argument("-o", "--output", type=str, help="Output path")
    render.add_argument("--format", choices=("html", "docx", "text"), default="html")

    md = sub.add_parser("import", help="Convert Markdown into a JSON document")
    md.add_argument("input", type=str, help="Path to Markdown file")
    md.add_argument("-o", "--output", type=str, help="Output JSON path")

    check = sub.add_parser("check", help="Validate a JSON document")
    check.add_argument("input", type=str, help="Path to JSON document")
    return parser


def _input_path(value: str) -> Path:
    input_path = Path(value).expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")
    return input_path


def _render(args, config: EditorConfig) -> int:
    input_path = _input_path(args.input)
    output_path = resolve_output_path(input_path, args.output, args.format)
    logging.info("Reading %s", input_path)
    document = load_document(read_text(input_path))

    logging.info("Rendering %s to %s", args.format, output_path)
    if args.format == "docx":
        state = renderer_docx.render_document(
            document,
            output_path=output_path,
            asset_root=input_path.parent,
            font_name=config.docx.font_name,
            font_size_pt=config.docx.font_size_pt,
        )
        if state.formula_errors:
            logging.warning("%d formula(s) could not be typeset", state.formula_errors)
    else:
        text = render_html(document) if args.format == "html" else render_text(document)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")
    logging.info("Done. Saved to %s", output_path)
    return 0


def _import(args) -> int:
    input_path = _input_path(args.input)
    output_path = resolve_output_path(input_path, args.output, "json")
    logging.info("Reading %s", input_path)
    markdown_text = read_text(input_path)
    logging.debug("Markdown length: %d chars", len(markdown_text))

    logging.info("Parsing markdown...")
    document = markdown_parser.parse_markdown(markdown_text)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dump_document(document, indent=2), encoding="utf-8")
    logging.info("Done. Saved to %s", output_path)
    return 0


def _check(args) -> int:
    input_path = _input_path(args.input)
    try:
        document = document_from_data(json.loads(read_text(input_path)), repair_tree=False)
    except (json.JSONDecodeError, InvalidInput) as exc:
        print(f"{input_path}: {exc}")
        return 1
    problems = find_problems(document)
    for path, message in problems:
        print(f"{input_path}: {list(path)}: {message}")
    if problems:
        return 1
    logging.info("%s is valid", input_path)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    config = load_config(args.config) if args.config else EditorConfig()
    if args.command == "render":
        return _render(args, config)
    if args.command == "import":
        return _import(args)
    return _check(args)


if __name__ == "__main__":
    sys.exit(main())
