"""
Sentence segmentation and text cleanup for streaming speech.

Tokens from the analysis stream arrive a few characters at a time. The
controller keeps them in a pending buffer and repeatedly asks this module for
the next complete sentence:

    buffer = "The suspect left. He was"
    sentence, buffer = extract_sentence(buffer)
    # sentence == "The suspect left.", buffer == "He was"

Before a sentence is handed to the synthesis engine it is passed through
`clean_for_speech()`, which strips the markdown and symbol noise an engine
would otherwise pronounce ("asterisk asterisk Warning ...").
"""

import re
from typing import Optional, Tuple

# Everything up to and including the first terminator, plus trailing spaces
_SENTENCE_PATTERN = re.compile(r"^(.*?[.!?])\s*", re.DOTALL)
_TERMINAL_PATTERN = re.compile(r"[.!?]\s*$")

_SYMBOLS_PATTERN = re.compile(r"[*#@$%^&()_+=\[\]{}|\\<>/~`\"]")
_DASH_RUN_PATTERN = re.compile(r"[-_]{2,}|[–—]+")
_BULLET_PATTERN = re.compile(r"^\s*[-•·]\s*", re.MULTILINE)
_WHITESPACE_PATTERN = re.compile(r"\s+")


def extract_sentence(buffer: str) -> Tuple[Optional[str], str]:
    """
    Split the first complete sentence off the front of ``buffer``.

    Returns:
        ``(sentence, remainder)`` where ``sentence`` is trimmed and includes
        its terminator, or ``(None, buffer)`` when no terminator is present.
    """
    match = _SENTENCE_PATTERN.match(buffer)
    if not match:
        return None, buffer
    return match.group(1).strip(), buffer[match.end():]


def ends_with_terminal(text: str) -> bool:
    """Whether ``text`` ends in ``.``, ``!`` or ``?`` (trailing spaces allowed)."""
    return _TERMINAL_PATTERN.search(text) is not None


def clean_for_speech(text: str) -> str:
    """
    Remove characters and markup a speech engine would read aloud.

    An empty result means the unit has nothing worth speaking.
    """
    text = _SYMBOLS_PATTERN.sub("", text)
    text = _DASH_RUN_PATTERN.sub(" ", text)
    text = _BULLET_PATTERN.sub("", text)
    # Emphasis markers are normally gone with the symbols above
    text = text.replace("**", "").replace("*", "")
    text = text.replace("__", "").replace("_", " ")
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


__all__ = ["clean_for_speech", "ends_with_terminal", "extract_sentence"]
