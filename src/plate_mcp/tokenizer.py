"""
Bracket- and quote-aware splitting for DSL fragments.
"""

from __future__ import annotations

_OPENERS = "([{"
_CLOSERS = ")]}"
_QUOTES = "\"'"


def split_top_level(raw: str, delimiter: str) -> list[str]:
    """Split *raw* on *delimiter* where it is not nested or quoted.

    Brackets of any of the three kinds raise the nesting depth (closers
    never drop it below zero). Inside a quote every character is literal
    until an unescaped matching quote. Unterminated quotes or brackets
    simply run to the end of the input.

    >>> split_top_level('a, "b,c", d', ",")
    ['a', '"b,c"', 'd']
    """
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    prev = ""

    for ch in raw:
        if quote:
            current.append(ch)
            if ch == quote and prev != "\\":
                quote = None
            prev = ch
            continue

        if ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(0, depth - 1)
        elif ch == delimiter and depth == 0:
            parts.append("".join(current).strip())
            current = []
            prev = ch
            continue

        current.append(ch)
        prev = ch

    parts.append("".join(current).strip())
    return [p for p in parts if p]
