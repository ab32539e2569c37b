"""Loose-syntax evaluation of extracted object literals.

The published container mixes strict JSON with JavaScript object-literal
syntax (single quotes, bare keys, trailing commas, ``!0``). Candidates are
evaluated in three tiers: strict JSON, JSON after string-aware normalization,
and finally a permissive object-literal parser. No tier ever executes code;
the input is only ever the vendor's own served artifact, but it is still
treated as data.
"""

import json
import logging
import re
from typing import Any, Dict, List


logger = logging.getLogger(__name__)


class LiteralEvaluationError(ValueError):
    """Raised when a candidate cannot be evaluated by any tier."""

    def __init__(self, message: str, tier_errors: Dict[str, str]):
        super().__init__(message)
        self.tier_errors = tier_errors


def evaluate_object_literal(candidate: str) -> Any:
    """Evaluate a JSON or JavaScript object literal into Python data.

    Args:
        candidate: Extracted literal text

    Returns:
        Decoded value (usually a dict)

    Raises:
        LiteralEvaluationError: If strict JSON, normalized JSON and the
            permissive parser all reject the candidate
    """
    errors: Dict[str, str] = {}

    try:
        return json.loads(candidate)
    except (ValueError, RecursionError) as e:
        errors["json"] = str(e)

    try:
        return json.loads(normalize_to_json(candidate))
    except (ValueError, RecursionError) as e:
        errors["normalized_json"] = str(e)

    try:
        value = LooseLiteralParser(candidate).parse()
        logger.debug("Candidate required the permissive literal parser")
        return value
    except (LiteralSyntaxError, RecursionError) as e:
        errors["literal"] = str(e)

    summary = "; ".join(f"{tier}: {message}" for tier, message in errors.items())
    raise LiteralEvaluationError(f"Could not evaluate object literal ({summary})", errors)


def normalize_to_json(text: str) -> str:
    """Rewrite common JavaScript literal syntax into JSON.

    Converts single-quoted strings to double-quoted ones, removes ``//`` and
    block comments, and drops trailing commas before ``]`` or ``}``. The scan
    is string aware, so string contents are never altered except for quote
    escaping.
    """
    out: List[str] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if char == '"':
            end = _string_end(text, i, '"')
            out.append(text[i:end])
            i = end
            continue

        if char == "'":
            end = _string_end(text, i, "'")
            out.append(_requote(text[i + 1:end - 1]))
            i = end
            continue

        if text.startswith("//", i):
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
            continue

        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = length if close == -1 else close + 2
            continue

        if char == ",":
            j = i + 1
            while j < length and text[j] in " \t\r\n":
                j += 1
            if j < length and text[j] in "]}":
                i += 1
                continue

        out.append(char)
        i += 1

    return "".join(out)


def _string_end(text: str, start: int, quote: str) -> int:
    """Offset just past the string literal opening at ``start``."""
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def _requote(body: str) -> str:
    """Turn a single-quoted string body into a double-quoted JSON string."""
    body = body.replace("\\'", "'")
    body = re.sub(r'(?<!\\)((?:\\\\)*)"', r'\1\\"', body)
    return f'"{body}"'


class LiteralSyntaxError(ValueError):
    """Raised by the permissive parser on malformed input."""

    def __init__(self, message: str, position: int):
        super().__init__(f"{message} at offset {position}")
        self.position = position


QUOTES = ("'", '"')

_IDENTIFIER_START = re.compile(r"[A-Za-z_$]")
_IDENTIFIER = re.compile(r"[A-Za-z0-9_$]+")
_NUMBER = re.compile(
    r"[+-]?(?:0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v",
    "0": "\0", "/": "/", "\\": "\\", "'": "'", '"': '"', "\n": ""
}

_KEYWORDS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "NaN": None,
    "Infinity": None
}


class LooseLiteralParser:
    """Recursive-descent parser for JavaScript object/array literals.

    Accepts bare and single-quoted keys, trailing commas, comments, hex and
    signed numbers, ``undefined`` and the minifier idioms ``!0``/``!1``.
    Anything that is not a literal (calls, operators, functions) is rejected.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def parse(self) -> Any:
        """Parse the whole text as a single literal value."""
        value = self._value()
        self._skip_space()
        if self.pos != len(self.text):
            raise LiteralSyntaxError("Unexpected trailing content", self.pos)
        return value

    def _skip_space(self) -> None:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char in " \t\r\n\u00a0\ufeff":
                self.pos += 1
            elif text.startswith("//", self.pos):
                newline = text.find("\n", self.pos)
                self.pos = len(text) if newline == -1 else newline + 1
            elif text.startswith("/*", self.pos):
                close = text.find("*/", self.pos + 2)
                if close == -1:
                    raise LiteralSyntaxError("Unterminated comment", self.pos)
                self.pos = close + 2
            else:
                break

    def _peek(self) -> str:
        self._skip_space()
        if self.pos >= len(self.text):
            raise LiteralSyntaxError("Unexpected end of input", self.pos)
        return self.text[self.pos]

    def _value(self) -> Any:
        char = self._peek()

        if char == "{":
            return self._object()
        if char == "[":
            return self._array()
        if char in QUOTES:
            return self._string()
        if char == "!":
            return self._negation()
        if char.isdigit() or char in "+-.":
            return self._number()
        if _IDENTIFIER_START.match(char):
            word = self._identifier()
            if word in _KEYWORDS:
                return _KEYWORDS[word]
            raise LiteralSyntaxError(f"Unsupported identifier '{word}'", self.pos - len(word))

        raise LiteralSyntaxError(f"Unexpected character {char!r}", self.pos)

    def _object(self) -> Dict[str, Any]:
        self.pos += 1
        result: Dict[str, Any] = {}

        while True:
            char = self._peek()
            if char == "}":
                self.pos += 1
                return result

            key = self._key()
            if self._peek() != ":":
                raise LiteralSyntaxError("Expected ':' after key", self.pos)
            self.pos += 1
            result[key] = self._value()

            char = self._peek()
            if char == ",":
                self.pos += 1
            elif char != "}":
                raise LiteralSyntaxError("Expected ',' or '}' in object", self.pos)

    def _key(self) -> str:
        char = self._peek()
        if char in QUOTES:
            return self._string()
        if char.isdigit():
            match = _NUMBER.match(self.text, self.pos)
            self.pos = match.end()
            return match.group(0)
        if _IDENTIFIER_START.match(char):
            return self._identifier()
        raise LiteralSyntaxError(f"Invalid object key start {char!r}", self.pos)

    def _array(self) -> List[Any]:
        self.pos += 1
        result: List[Any] = []

        while True:
            char = self._peek()
            if char == "]":
                self.pos += 1
                return result
            if char == ",":
                # elision, e.g. [1,,2]
                result.append(None)
                self.pos += 1
                continue

            result.append(self._value())

            char = self._peek()
            if char == ",":
                self.pos += 1
            elif char != "]":
                raise LiteralSyntaxError("Expected ',' or ']' in array", self.pos)

    def _string(self) -> str:
        text = self.text
        quote = text[self.pos]
        start = self.pos
        self.pos += 1
        chunks: List[str] = []

        while self.pos < len(text):
            char = text[self.pos]
            if char == quote:
                self.pos += 1
                return "".join(chunks)
            if char == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    break
                chunks.append(self._escape())
                continue
            if char == "\n":
                raise LiteralSyntaxError("Newline in string literal", self.pos)
            chunks.append(char)
            self.pos += 1

        raise LiteralSyntaxError("Unterminated string literal", start)

    def _escape(self) -> str:
        text = self.text
        char = text[self.pos]

        if char == "u":
            digits = text[self.pos + 1:self.pos + 5]
            if len(digits) == 4 and all(c in "0123456789abcdefABCDEF" for c in digits):
                self.pos += 5
                return chr(int(digits, 16))
            raise LiteralSyntaxError("Invalid unicode escape", self.pos)

        if char == "x":
            digits = text[self.pos + 1:self.pos + 3]
            if len(digits) == 2 and all(c in "0123456789abcdefABCDEF" for c in digits):
                self.pos += 3
                return chr(int(digits, 16))
            raise LiteralSyntaxError("Invalid hex escape", self.pos)

        self.pos += 1
        return _SIMPLE_ESCAPES.get(char, char)

    def _negation(self) -> bool:
        self.pos += 1
        operand = self._value()
        return not operand

    def _number(self) -> Any:
        match = _NUMBER.match(self.text, self.pos)
        if not match:
            raise LiteralSyntaxError("Invalid number", self.pos)
        self.pos = match.end()
        literal = match.group(0)

        sign = -1 if literal.startswith("-") else 1
        body = literal.lstrip("+-")
        if body[:2] in ("0x", "0X"):
            return sign * int(body, 16)
        if any(c in body for c in ".eE"):
            return sign * float(body)
        return sign * int(body)

    def _identifier(self) -> str:
        match = _IDENTIFIER.match(self.text, self.pos)
        self.pos = match.end()
        return match.group(0)

