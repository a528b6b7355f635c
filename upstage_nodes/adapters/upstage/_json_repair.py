"""
Best-effort repair of malformed JSON text.

Used on user-supplied response_format JSON that fails to parse. The repair is
an ordered list of string-to-string attempts. Each attempt works on the
previous attempt's output, and the first candidate that parses wins. If none
parses, the original text is returned untouched so the caller's own parse
error surfaces.

The regex patches only cover one observed malformation (an over-closed
"properties" object and runs of closing braces). They are not a general fixer.
"""

import json
import logging
import re
from typing import Callable, List, Tuple


log = logging.getLogger("upstage_nodes.json_repair")

_INVISIBLE_CHARS = re.compile("[\u200b-\u200d\ufeff]")
_WHITESPACE_RUN = re.compile(r"\s+")
_SPACE_BEFORE_STRUCTURAL = re.compile(r'\s*([{}\[\]":,])')
_SPACE_AFTER_STRUCTURAL = re.compile(r'([{}\[\]":,])\s*')
_PROPERTIES_OVERCLOSED = re.compile(r'("properties":\{[^}]*)\}\}\}\}')
_CLOSING_BRACE_RUN = re.compile(r"\}\}\}+")

_CLOSERS = {"{": "}", "[": "]"}


def strip_invisible_characters(text: str) -> str:
    """Trim and drop zero-width / BOM characters."""
    return _INVISIBLE_CHARS.sub("", text).strip()


def _parses(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def _normalize(text: str) -> str:
    return strip_invisible_characters(text).replace("\r\n", "\n").replace("\r", "\n")


def _collapse_whitespace(text: str) -> str:
    text = text.replace("\n", "")
    text = _WHITESPACE_RUN.sub(" ", text)
    text = _SPACE_BEFORE_STRUCTURAL.sub(r"\1", text)
    text = _SPACE_AFTER_STRUCTURAL.sub(r"\1", text)
    return text.strip()


def _trim_trailing(text: str, char: str, count: int) -> str:
    match = re.search(re.escape(char) + "+$", text)
    if not match:
        return text
    keep = max(len(match.group()) - count, 0)
    return text[:match.start()] + char * keep


def _missing_closers(text: str) -> str:
    """Closers for every unclosed { or [ outside string literals, innermost first."""
    stack = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(char)
        elif char in ("}", "]") and stack and _CLOSERS[stack[-1]] == char:
            stack.pop()
    return "".join(_CLOSERS[opener] for opener in reversed(stack))


def _balance_closers(text: str) -> str:
    open_braces, close_braces = text.count("{"), text.count("}")
    open_brackets, close_brackets = text.count("["), text.count("]")
    log.debug(
        "Brace balance: {%d} {%d}, [%d] [%d]",
        open_braces, close_braces, open_brackets, close_brackets,
    )

    fixed = text
    if close_braces > open_braces:
        fixed = _trim_trailing(fixed, "}", close_braces - open_braces)
    if close_brackets > open_brackets:
        fixed = _trim_trailing(fixed, "]", close_brackets - open_brackets)
    fixed += _missing_closers(fixed)
    return fixed


def _patch_overclosed_properties(text: str) -> str:
    text = _PROPERTIES_OVERCLOSED.sub(r"\1}}}", text)
    return _CLOSING_BRACE_RUN.sub("}}", text)


REPAIR_STEPS: List[Tuple[str, Callable[[str], str]]] = [
    ("normalize", _normalize),
    ("collapse_whitespace", _collapse_whitespace),
    ("balance_closers", _balance_closers),
    ("patch_overclosed_properties", _patch_overclosed_properties),
]


def repair_json(text: str) -> str:
    """
    Return a parseable variant of `text`, or `text` itself if none is found.

    Valid JSON is returned unchanged.
    """
    if _parses(text):
        return text

    candidate = text
    for name, step in REPAIR_STEPS:
        candidate = step(candidate)
        if _parses(candidate):
            log.debug("JSON repaired by step %s (length %d -> %d)", name, len(text), len(candidate))
            return candidate
        log.debug("JSON still invalid after step %s", name)

    log.debug("Could not repair JSON; returning original text")
    return text
