"""Regex and heuristic extraction of a location name from a chat message.

Nothing here calls out to a service. :func:`extract_pattern` is total: when no
template matches it returns :data:`DEFAULT_LOCATION`.
"""

from __future__ import annotations

import re
from typing import Optional

DEFAULT_LOCATION = "New York"

ABBREVIATIONS = {
    "nyc": "New York",
    "ny": "New York",
    "la": "Los Angeles",
    "sf": "San Francisco",
    "dc": "Washington DC",
    "washington dc": "Washington DC",
    "atl": "Atlanta",
    "chi": "Chicago",
    "philly": "Philadelphia",
    "vegas": "Las Vegas",
}

# Words that never form part of a place name in a chat message.
NON_PLACE_WORDS = frozenset(
    {
        "weather", "temperature", "temp", "forecast", "climate", "today", "tomorrow",
        "tonight", "now", "currently", "current", "right", "like", "is", "it", "it's",
        "very", "show", "me", "what", "what's", "whats", "how", "how's", "hows", "there",
        "here", "good", "bad", "nice", "please", "tell", "give", "get", "check", "i",
        "i'm", "you", "my", "our", "your", "going", "trip", "outside", "hot", "cold",
        "sunny", "rainy", "cloudy", "hello", "hi", "hey", "thanks", "thank", "can",
        "could", "will", "would", "do", "does", "be", "a", "an", "in", "at", "for",
        "to", "this", "that", "week", "next", "any", "some", "about", "know",
    }
)

_TERMINATOR = (
    r"(?=\s*(?:[?!.,;:]|$|\b(?:today|tonight|tomorrow|now|please|this|next|right|"
    r"currently|like|and|or|for|on|at|during|over)\b))"
)
_LOC = r"(?P<loc>[a-z][a-z '-]*?)"

PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(?:what's|whats|what is|how's|hows|how is)\s+(?:the\s+)?weather\s+(?:like\s+)?"
        rf"(?:in|at|for|of)\s+{_LOC}{_TERMINATOR}",
        re.IGNORECASE,
    ),
    re.compile(
        rf"\bshow\s+(?:me\s+)?(?:the\s+)?weather\s+(?:in|for|at|of)\s+{_LOC}{_TERMINATOR}",
        re.IGNORECASE,
    ),
    re.compile(rf"\bweather\s+(?:like\s+)?(?:in|for|at|of)\s+{_LOC}{_TERMINATOR}", re.IGNORECASE),
    re.compile(
        rf"\b(?:temperature|temp|forecast|climate)\s+(?:in|at|for|of)\s+{_LOC}{_TERMINATOR}",
        re.IGNORECASE,
    ),
    re.compile(rf"\b(?:in|for|at)\s+{_LOC}\s+(?:weather|forecast|temperature)\b", re.IGNORECASE),
    re.compile(rf"^\s*{_LOC}\s+(?:weather|temperature|temp|forecast)\b", re.IGNORECASE),
    re.compile(
        rf"\b(?:going|traveling|travelling|visiting|trip|flying|heading)\s+(?:to\s+)?{_LOC}{_TERMINATOR}",
        re.IGNORECASE,
    ),
    # "Austin, TX" / "Lyon, France"
    re.compile(r"\b(?P<loc>[A-Z][a-zA-Z'-]+(?:\s+[A-Z][a-zA-Z'-]+)*),\s*(?:[A-Z]{2}|[A-Z][a-z]+)\b"),
)

_CAPITALIZED = re.compile(r"\b[A-Z][a-zA-Z'-]*(?:\s+[A-Z][a-zA-Z'-]*)*")


def format_location_name(text: str) -> str:
    """Normalise a raw location string to proper case, expanding abbreviations."""
    name = re.sub(r"[?!.;:\"()]", "", text or "")
    name = name.split(",", 1)[0]
    name = " ".join(name.split())
    expanded = ABBREVIATIONS.get(name.lower())
    if expanded:
        return expanded
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split(" "))


def is_valid_location_name(name: Optional[str]) -> bool:
    if not isinstance(name, str) or not 2 <= len(name) < 50:
        return False
    if name != name.strip() or "  " in name:
        return False
    if not all(ch.isalpha() or ch in " '-" for ch in name):
        return False
    return all(word[:1].isupper() for word in name.split(" "))


def clean_candidate(raw: Optional[str]) -> Optional[str]:
    """Return the formatted candidate, or ``None`` when it is not place-shaped."""
    if not raw:
        return None
    words = raw.strip().split()
    if words and words[0].lower() == "the":
        words = words[1:]
    if not words or any(w.lower() in NON_PLACE_WORDS for w in words):
        return None
    name = format_location_name(" ".join(words))
    return name if is_valid_location_name(name) else None


def _capitalized_candidate(message: str) -> Optional[str]:
    for token in _CAPITALIZED.findall(message):
        words = token.split()
        while words and (words[0].lower() in NON_PLACE_WORDS or words[0].lower() == "the"):
            words.pop(0)
        while words and words[-1].lower() in NON_PLACE_WORDS:
            words.pop()
        candidate = " ".join(words)
        if 2 < len(candidate) < 30:
            name = clean_candidate(candidate)
            if name:
                return name
    return None


def match_location(message: str) -> Optional[str]:
    """Return the first place-shaped match in ``message``, or ``None``."""
    if not message:
        return None
    for pattern in PATTERNS:
        m = pattern.search(message)
        if not m:
            continue
        name = clean_candidate(m.group("loc"))
        if name:
            return name
    return _capitalized_candidate(message)


def extract_pattern(message: str) -> str:
    return match_location(message) or DEFAULT_LOCATION
