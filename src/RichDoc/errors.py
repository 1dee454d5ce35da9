from __future__ import annotations

from typing import Sequence


class EditorError(Exception):
    """Base class for every error raised by the editor core."""


class PathNotFound(EditorError, LookupError):
    def __init__(self, path: Sequence[int], message: str | None = None) -> None:
        self.path = tuple(path)
        super().__init__(message or f"No node at path {list(self.path)}")


class InvalidSelection(EditorError, ValueError):
    """Selection points do not resolve to real text positions."""


class InvalidInput(EditorError, ValueError):
    """Empty or unsupported argument passed to a command."""


class MalformedFormula(EditorError, ValueError):
    def __init__(self, source: str, message: str, position: int | None = None) -> None:
        self.source = source
        self.position = position
        self.reason = message
        where = f" at {position}" if position is not None else ""
        super().__init__(f"{message}{where}: {source!r}")


class StructuralInvariantViolation(EditorError):
    def __init__(self, problems: Sequence[tuple[tuple[int, ...], str]]) -> None:
        self.problems = list(problems)
        self.paths = [path for path, _ in self.problems]
        listing = "; ".join(f"{list(path)}: {reason}" for path, reason in self.problems)
        super().__init__(f"Document structure is invalid ({listing})")


class ReadOnlyError(EditorError):
    """A mutation was attempted on a read-only editor."""


class ConfigError(EditorError, ValueError):
    """Editor configuration could not be parsed."""
