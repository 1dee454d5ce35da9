from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .errors import MalformedFormula

LATEX_TO_UNICODE = {
    r"\pi": "π",
    r"\alpha": "α",
    r"\beta": "β",
    r"\gamma": "γ",
    r"\delta": "δ",
    r"\epsilon": "ε",
    r"\varepsilon": "ε",
    r"\zeta": "ζ",
    r"\eta": "η",
    r"\theta": "θ",
    r"\kappa": "κ",
    r"\lambda": "λ",
    r"\mu": "μ",
    r"\nu": "ν",
    r"\xi": "ξ",
    r"\rho": "ρ",
    r"\sigma": "σ",
    r"\tau": "τ",
    r"\phi": "φ",
    r"\varphi": "φ",
    r"\chi": "χ",
    r"\psi": "ψ",
    r"\omega": "ω",
    r"\Gamma": "Γ",
    r"\Delta": "Δ",
    r"\Theta": "Θ",
    r"\Lambda": "Λ",
    r"\Pi": "Π",
    r"\Sigma": "Σ",
    r"\Phi": "Φ",
    r"\Omega": "Ω",
    r"\times": "×",
    r"\cdot": "·",
    r"\div": "÷",
    r"\pm": "±",
    r"\mp": "∓",
    r"\le": "≤",
    r"\leq": "≤",
    r"\ge": "≥",
    r"\geq": "≥",
    r"\ne": "≠",
    r"\neq": "≠",
    r"\approx": "≈",
    r"\equiv": "≡",
    r"\sim": "∼",
    r"\infty": "∞",
    r"\sum": "∑",
    r"\prod": "∏",
    r"\int": "∫",
    r"\partial": "∂",
    r"\nabla": "∇",
    r"\to": "→",
    r"\rightarrow": "→",
    r"\leftarrow": "←",
    r"\Rightarrow": "⇒",
    r"\Leftrightarrow": "⇔",
    r"\in": "∈",
    r"\notin": "∉",
    r"\subset": "⊂",
    r"\subseteq": "⊆",
    r"\cup": "∪",
    r"\cap": "∩",
    r"\emptyset": "∅",
    r"\forall": "∀",
    r"\exists": "∃",
    r"\angle": "∠",
    r"\degree": "°",
    r"\circ": "∘",
    r"\ldots": "…",
    r"\cdots": "⋯",
    r"\%": "%",
    r"\$": "$",
    r"\&": "&",
    r"\#": "#",
    r"\_": "_",
    r"\{": "{",
    r"\}": "}",
    r"\,": " ",
    r"\;": " ",
    r"\:": " ",
    r"\!": "",
    r"\quad": " ",
    r"\qquad": "  ",
    r"\\": "; ",
}

# Commands that take mandatory arguments, and how the arguments are joined.
ARITY = {
    "frac": 2,
    "dfrac": 2,
    "tfrac": 2,
    "binom": 2,
    "sqrt": 1,
    "text": 1,
    "mathrm": 1,
    "mathbf": 1,
    "mathit": 1,
    "mathbb": 1,
    "operatorname": 1,
    "boldsymbol": 1,
    "overline": 1,
    "underline": 1,
    "hat": 1,
    "bar": 1,
    "vec": 1,
    "tilde": 1,
    "dot": 1,
}

DELIMITERS = {"(", ")", "[", "]", "|", ".", r"\{", r"\}", r"\|", r"\langle", r"\rangle"}

SUPERSCRIPTS = str.maketrans("0123456789+-=()ni", "⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻⁼⁽⁾ⁿⁱ")
SUBSCRIPTS = str.maketrans("0123456789+-=()", "₀₁₂₃₄₅₆₇₈₉₊₋₌₍₎")
_SUPERSCRIPT_CHARS = set("0123456789+-=()ni")
_SUBSCRIPT_CHARS = set("0123456789+-=()")

_TOKEN_RE = re.compile(r"\\(?:[A-Za-z]+|.)|\s+|.", re.S)


@dataclass
class _Token:
    value: str
    position: int


def typeset(source: Optional[str]) -> str:
    """Return a Unicode rendering of `source`, raising MalformedFormula on bad syntax."""
    if source is None or not source.strip():
        raise MalformedFormula(source or "", "Empty formula")
    return _Parser(source).parse()


def is_well_formed(source: Optional[str]) -> bool:
    try:
        typeset(source)
    except MalformedFormula:
        return False
    return True


class _Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = [_Token(m.group(0), m.start()) for m in _TOKEN_RE.finditer(source)]
        self.index = 0

    def error(self, message: str, token: Optional[_Token] = None) -> MalformedFormula:
        position = token.position if token is not None else len(self.source)
        return MalformedFormula(self.source, message, position)

    def peek(self) -> Optional[_Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def skip_space(self) -> None:
        while (token := self.peek()) is not None and token.value.isspace():
            self.index += 1

    def parse(self) -> str:
        text = self.sequence(closing=None)
        return re.sub(r"\s+", " ", text).strip()

    def sequence(self, closing: Optional[str], opener: Optional[_Token] = None) -> str:
        parts: List[str] = []
        while True:
            token = self.peek()
            if token is None:
                if closing is None:
                    return "".join(parts)
                raise self.error(f"Missing {closing}", opener)
            value = token.value
            if value == "}":
                if closing == "}":
                    self.advance()
                    return "".join(parts)
                raise self.error("Unmatched }", token)
            if value in (r"\right", r"\end") and closing != value:
                raise self.error(f"Unexpected {value}", token)
            if closing in (r"\right", r"\end") and value == closing:
                self.advance()
                return "".join(parts)
            parts.append(self.atom())

    def atom(self) -> str:
        token = self.advance()
        value = token.value
        if value == "{":
            return self.sequence("}", token)
        if value in ("^", "_"):
            argument = self.argument(token)
            return _script(argument, superscript=value == "^")
        if value == "\\":
            raise self.error("Dangling backslash", token)
        if value.startswith("\\"):
            return self.command(token)
        if value.isspace():
            return " "
        return value

    def argument(self, owner: _Token) -> str:
        self.skip_space()
        token = self.peek()
        if token is None or token.value in ("}", "^", "_", r"\right", r"\end"):
            raise self.error(f"Missing argument for {owner.value}", owner)
        return self.atom()

    def optional_argument(self) -> Optional[str]:
        self.skip_space()
        token = self.peek()
        if token is None or token.value != "[":
            return None
        opener = self.advance()
        parts: List[str] = []
        while True:
            token = self.peek()
            if token is None:
                raise self.error("Missing ]", opener)
            if token.value == "]":
                self.advance()
                return "".join(parts)
            parts.append(self.atom())

    def command(self, token: _Token) -> str:
        value = token.value
        name = value[1:]
        if value in LATEX_TO_UNICODE:
            return LATEX_TO_UNICODE[value]
        if name == "left":
            self.delimiter(token)
            inner = self.sequence(r"\right", token)
            self.delimiter(token)
            return f"({inner})"
        if name == "begin":
            environment = self.environment_name(token)
            inner = self.sequence(r"\end", token)
            closing = self.environment_name(token)
            if closing != environment:
                raise self.error(f"\\begin{{{environment}}} closed by \\end{{{closing}}}", token)
            return inner.replace("&", " ")
        if name in ARITY:
            index = self.optional_argument() if name == "sqrt" else None
            args = [self.argument(token) for _ in range(ARITY[name])]
            return _compose(name, args, index)
        return name

    def delimiter(self, owner: _Token) -> str:
        self.skip_space()
        token = self.peek()
        if token is None or token.value not in DELIMITERS:
            raise self.error(f"Missing delimiter after {owner.value}", owner)
        return self.advance().value

    def environment_name(self, owner: _Token) -> str:
        self.skip_space()
        token = self.peek()
        if token is None or token.value != "{":
            raise self.error(f"Missing environment name after {owner.value}", owner)
        opener = self.advance()
        name = self.sequence("}", opener).strip()
        if not name:
            raise self.error("Empty environment name", owner)
        return name


def _script(argument: str, superscript: bool) -> str:
    allowed = _SUPERSCRIPT_CHARS if superscript else _SUBSCRIPT_CHARS
    if argument and set(argument) <= allowed:
        return argument.translate(SUPERSCRIPTS if superscript else SUBSCRIPTS)
    marker = "^" if superscript else "_"
    return f"{marker}({argument})" if len(argument) > 1 else f"{marker}{argument}"


def _wrap(text: str) -> str:
    return text if len(text) <= 1 else f"({text})"


def _compose(name: str, args: List[str], index: Optional[str]) -> str:
    if name in ("frac", "dfrac", "tfrac"):
        return f"{_wrap(args[0])}/{_wrap(args[1])}"
    if name == "binom":
        return f"C({args[0]}, {args[1]})"
    if name == "sqrt":
        root = "√" if not index else f"{index.translate(SUPERSCRIPTS)}√"
        return f"{root}{_wrap(args[0])}"
    if name == "overline":
        return "".join(ch + "\u0305" for ch in args[0])
    if name in ("hat", "bar", "vec", "tilde", "dot"):
        accent = {"hat": "\u0302", "bar": "\u0304", "vec": "\u20d7", "tilde": "\u0303", "dot": "\u0307"}[name]
        return args[0] + accent
    return args[0]
