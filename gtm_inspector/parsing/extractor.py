"""Balanced object-literal extraction from JavaScript source text."""

from typing import Iterator, List, Optional


DEFAULT_MAX_SCAN = 5_000_000

QUOTE_CHARS = ('"', "'")


def extract_balanced_object(text: str, start_index: int,
                            max_scan: int = DEFAULT_MAX_SCAN) -> Optional[str]:
    """Return the object literal that opens at ``start_index``.

    Scans left to right keeping a brace depth and the quote character of the
    string currently being read, if any. Braces inside strings are ignored and
    a backslash always consumes the next character.

    Args:
        text: Source text
        start_index: Offset of the opening ``{``
        max_scan: Maximum number of characters to scan

    Returns:
        The substring from the opening brace through its matching closing brace,
        or None when the object never closes within the scan window.
    """
    if start_index < 0 or start_index >= len(text) or text[start_index] != "{":
        return None

    depth = 0
    quote: Optional[str] = None
    escaped = False
    end = min(len(text), start_index + max_scan)

    for i in range(start_index, end):
        char = text[i]

        if escaped:
            escaped = False
            continue

        if char == "\\":
            escaped = True
            continue

        if quote is not None:
            if char == quote:
                quote = None
            continue

        if char in QUOTE_CHARS:
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start_index:i + 1]

    return None


def iter_brace_positions(text: str, limit: Optional[int] = None,
                         tail_margin: int = 0) -> Iterator[int]:
    """Yield offsets of every ``{`` in text.

    When ``limit`` is given only the last ``limit`` positions are yielded,
    in source order.
    """
    stop = max(0, len(text) - tail_margin)

    if limit is None:
        index = text.find("{", 0, stop)
        while index != -1:
            yield index
            index = text.find("{", index + 1, stop)
        return

    positions: List[int] = []
    index = text.rfind("{", 0, stop)
    while index != -1 and len(positions) < limit:
        positions.append(index)
        index = text.rfind("{", 0, index)

    yield from reversed(positions)
