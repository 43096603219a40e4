"""Recovery of a valid JSON document from a truncated prefix.

Streaming model output arrives as a growing prefix of a JSON document.
``repair`` closes that prefix into the longest valid document it can prove,
so partial results can be decoded before generation finishes.

Only string values are extended. A trailing number is always dropped because
its final digits are unknown::

    >>> repair('{"name": "Jo')
    '{"name": "Jo"}'
    >>> repair("[1, 2")
    '[1]'

A bare top-level scalar survives only once it is complete::

    >>> repair("tru")
    ''
"""

import re
from dataclasses import dataclass

_CLOSERS = {"{": "}", "[": "]"}
_LITERALS = ("true", "false", "null")
_NUMBER = re.compile(r"-?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")


@dataclass
class _Container:
    """An open object or array seen while scanning."""

    opener: str
    opening_index: int
    last_comma_index: int | None = None
    last_colon_index: int | None = None

    def is_expecting_value(self) -> bool:
        if self.opener == "[":
            return True
        if self.last_colon_index is None:
            # next token is a key
            return False
        border = (
            self.last_comma_index
            if self.last_comma_index is not None
            else self.opening_index
        )
        return border < self.last_colon_index


def repair(text: str) -> str:
    """Return the longest valid JSON document derivable from ``text``.

    ``text`` is assumed to be a prefix of a valid JSON document. Complete
    documents are returned unchanged apart from surrounding whitespace.

    Args:
        text: Possibly truncated JSON text

    Returns:
        Valid JSON text, or ``""`` when the input holds no container and no
        complete value (for example, whitespace only or a bare
        ``"-"``)
    """
    if not text:
        return ""

    chars = list(text)
    in_string = False
    escape_next = False
    escape_start = -1
    stack: list[_Container] = []

    for i, c in enumerate(chars):
        if in_string:
            if escape_next:
                escape_next = False
            elif c == "\\":
                escape_next = True
                escape_start = i
            elif c == '"':
                in_string = False
            continue

        if c == '"':
            in_string = True
        elif c in _CLOSERS:
            stack.append(_Container(opener=c, opening_index=i))
        elif c in "}]":
            if stack:
                stack.pop()
        elif c == ",":
            if stack:
                stack[-1].last_comma_index = i
        elif c == ":":
            if stack:
                stack[-1].last_colon_index = i

    if in_string:
        if escape_next:
            # unterminated escape sequence
            chars.pop()
        elif _is_partial_unicode_escape(chars, escape_start):
            del chars[escape_start:]
        chars.append('"')

    if not stack:
        scalar = "".join(chars).strip()
        return scalar if _is_complete_scalar(scalar) else ""

    outermost = stack[0]

    if not _ends_in_complete_value(stack[-1], chars):
        while stack:
            top = stack[-1]
            if top.last_comma_index is not None:
                del chars[top.last_comma_index :]
                break
            del chars[top.opening_index :]
            stack.pop()

    while stack:
        chars.append(_CLOSERS[stack.pop().opener])

    result = "".join(chars).strip()
    if not result:
        return "{}" if outermost.opener == "{" else "[]"
    return result


def _ends_in_complete_value(container: _Container, chars: list[str]) -> bool:
    if not container.is_expecting_value():
        return False

    trimmed = "".join(chars).rstrip()
    if not trimmed:
        return False
    if trimmed.endswith('"'):
        return True
    return trimmed.endswith(_LITERALS)


def _is_partial_unicode_escape(chars: list[str], escape_start: int) -> bool:
    # \uXXXX spans six characters
    if escape_start < 0 or chars[escape_start + 1] != "u":
        return False
    return len(chars) - escape_start < 6


def _is_complete_scalar(text: str) -> bool:
    if text.endswith('"') and len(text) > 1:
        return True
    return text in _LITERALS or _NUMBER.fullmatch(text) is not None
