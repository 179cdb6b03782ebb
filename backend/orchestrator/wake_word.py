"""
Wake-word matching helpers.

Pure string functions used by the reducer. Matching is a case-insensitive
substring test against a finalized transcript; no tokenization, no fuzzy
matching.
"""

from __future__ import annotations

import re

# Separators a recognizer typically leaves around a stripped wake phrase
# ("Hey Jarvis, what's the weather?" -> ", what's the weather?").
_LEADING_SEPARATORS = " \t\r\n,.;:!?-"


def contains_wake_word(transcript: str, wake_word: str) -> bool:
    """True if wake_word occurs in transcript, ignoring case."""
    return wake_word.lower() in transcript.lower()


def strip_wake_word(transcript: str, wake_word: str) -> str:
    """
    Remove every case-insensitive occurrence of wake_word.

    Returns the trimmed remainder with leading separator punctuation
    removed. An utterance that was only the wake word returns "".
    """
    pattern = re.compile(re.escape(wake_word), re.IGNORECASE)
    remainder = pattern.sub(" ", transcript)
    remainder = re.sub(r"\s+", " ", remainder)
    return remainder.lstrip(_LEADING_SEPARATORS).strip()
