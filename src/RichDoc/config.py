from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Tuple

import yaml

from . import docx_style
from .errors import ConfigError
from .model import ALIGNMENTS, LIST_TYPES, MARKS, TEXT_BLOCK_TYPES, canonical_type

DEFAULT_LINK_SCHEMES = ("http", "https", "mailto")
TOGGLE_BLOCKS = tuple(t for t in TEXT_BLOCK_TYPES if t != "list-item") + LIST_TYPES


@dataclass(frozen=True)
class DocxOptions:
    font_name: str = docx_style.FONT_NAME
    font_size_pt: float = docx_style.FONT_SIZE_PT


@dataclass(frozen=True)
class EditorConfig:
    read_only: bool = False
    allowed_marks: Tuple[str, ...] = tuple(MARKS)
    allowed_blocks: Tuple[str, ...] = TOGGLE_BLOCKS
    link_schemes: Tuple[str, ...] = DEFAULT_LINK_SCHEMES
    default_image_align: str = "center"
    docx: DocxOptions = field(default_factory=DocxOptions)


def parse_config(text: str) -> EditorConfig:
    """Parse editor settings from YAML text; an empty document gives the defaults."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping with defined fields.")
    return config_from_mapping(data)


def load_config(path: str | Path) -> EditorConfig:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    try:
        return parse_config(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc


def config_from_mapping(data: dict) -> EditorConfig:
    unknown = set(data) - {"read_only", "marks", "blocks", "link_schemes", "default_image_align", "docx"}
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    kwargs: dict[str, Any] = {}
    if "read_only" in data:
        if not isinstance(data["read_only"], bool):
            raise ConfigError("read_only must be true or false")
        kwargs["read_only"] = data["read_only"]
    if "marks" in data:
        marks = _normalize_list(data["marks"], "marks")
        bad = [m for m in marks if m not in MARKS]
        if bad:
            raise ConfigError(f"Unknown marks: {', '.join(bad)}")
        kwargs["allowed_marks"] = tuple(marks)
    if "blocks" in data:
        blocks = [canonical_type(b) for b in _normalize_list(data["blocks"], "blocks")]
        bad = [b for b in blocks if b not in TOGGLE_BLOCKS]
        if bad:
            raise ConfigError(f"Unknown block types: {', '.join(bad)}")
        kwargs["allowed_blocks"] = tuple(blocks)
    if "link_schemes" in data:
        kwargs["link_schemes"] = tuple(s.lower().rstrip(":") for s in _normalize_list(data["link_schemes"], "link_schemes"))
    if "default_image_align" in data:
        if data["default_image_align"] not in ALIGNMENTS:
            raise ConfigError(f"default_image_align must be one of {', '.join(ALIGNMENTS)}")
        kwargs["default_image_align"] = data["default_image_align"]
    if "docx" in data:
        kwargs["docx"] = _build_docx(data["docx"])
    return EditorConfig(**kwargs)


def _build_docx(value) -> DocxOptions:
    if value is None:
        return DocxOptions()
    if not isinstance(value, dict):
        raise ConfigError("docx must be a mapping")
    font_name = value.get("font_name", docx_style.FONT_NAME)
    font_size = value.get("font_size_pt", docx_style.FONT_SIZE_PT)
    if not isinstance(font_name, str) or not font_name.strip():
        raise ConfigError("docx.font_name must be a non-empty string")
    if isinstance(font_size, bool) or not isinstance(font_size, (int, float)) or font_size <= 0:
        raise ConfigError("docx.font_size_pt must be a positive number")
    return DocxOptions(font_name=font_name, font_size_pt=float(font_size))


def _normalize_list(value, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    if isinstance(value, str):
        return [value]
    raise ConfigError(f"{key} must be a list of strings")
