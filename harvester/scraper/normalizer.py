"""Plain-text normalisation of extracted page bodies."""

from __future__ import annotations

import re

_BARE_URL = re.compile(r"http\S+")
_REPEATED_SYMBOL = re.compile(r"([^\w\s]|_)\1+")
_WHITESPACE = re.compile(r"\s+")


def _normalize_once(text: str) -> str:
    text = _BARE_URL.sub("", text)
    text = _REPEATED_SYMBOL.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def normalize(text: str) -> str:
    """Collapse *text* into clean single-spaced plain text.

    Removes bare ``http...`` tokens, deletes runs of two or more identical
    symbol characters (``"--"``, ``"!!!"``, ``"__"``) entirely, collapses
    whitespace runs to one space and trims the ends.

    A deletion can bring two symbols or two spaces together, so the pass is
    repeated until nothing changes.  This makes the function idempotent.
    """
    while True:
        cleaned = _normalize_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned
