"""Argument-string helpers shared by the dispatcher and the invocation wrappers."""

from __future__ import annotations

import math
import re

_SINGLE_SMART_QUOTE = re.compile("[‘’]")
_DOUBLE_SMART_QUOTE = re.compile("[“”]")

_ARG_ANY_QUOTE = re.compile(r"""\s*(?:(["'])([\s\S]*?)\1|(\S+))\s*""")
_ARG_DOUBLE_QUOTE = re.compile(r"""\s*(?:(")([\s\S]*?)"|(\S+))\s*""")
_WRAPPED_ANY_QUOTE = re.compile(r"""^(["'])([\s\S]*)\1$""")
_WRAPPED_DOUBLE_QUOTE = re.compile(r"""^(")([\s\S]*)"$""")


def escape_regex(text: str) -> str:
    return re.escape(text)


def remove_smart_quotes(text: str, allow_single_quote: bool = True) -> str:
    if allow_single_quote:
        text = _SINGLE_SMART_QUOTE.sub("'", text)
    return _DOUBLE_SMART_QUOTE.sub('"', text)


def strip_wrapping_quotes(text: str, allow_single_quote: bool = True) -> str:
    pattern = _WRAPPED_ANY_QUOTE if allow_single_quote else _WRAPPED_DOUBLE_QUOTE
    return pattern.sub(r"\2", text)


def parse_arg_string(
    arg_string: str,
    count: float = 0,
    allow_single_quote: bool = True,
) -> list[str]:
    """Split *arg_string* into at most *count* arguments.

    Quoted runs form a single argument. When *count* is reached, whatever
    text is left becomes the final argument as-is (minus wrapping quotes).
    A *count* of ``0`` splits as far as possible; ``math.inf`` is accepted.
    """
    text = remove_smart_quotes(arg_string, allow_single_quote)
    pattern = _ARG_ANY_QUOTE if allow_single_quote else _ARG_DOUBLE_QUOTE

    limit = count or len(text) or math.inf
    result: list[str] = []
    pos = 0
    exhausted = False
    while True:
        limit -= 1
        if limit == 0:
            break
        match = pattern.search(text, pos)
        if not match or match.end() == pos:
            exhausted = True
            break
        result.append(match.group(2) or match.group(3) or "")
        pos = match.end()

    if not exhausted and pos < len(text):
        result.append(strip_wrapping_quotes(text[pos:], allow_single_quote))
    return result


def split_message(text: str, max_length: int = 2000, char: str = "\n") -> list[str]:
    """Split *text* on *char* into chunks no longer than *max_length*."""
    if len(text) <= max_length:
        return [text]
    chunks: list[str] = []
    current = ""
    for piece in text.split(char):
        if len(piece) > max_length:
            raise ValueError("A single line exceeds the maximum message length.")
        candidate = f"{current}{char}{piece}" if current else piece
        if len(candidate) > max_length:
            chunks.append(current)
            current = piece
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks
