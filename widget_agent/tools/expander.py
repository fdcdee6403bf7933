"""Expand a primary location into a small set of related locations."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from .capabilities import Capabilities
from .catalog import LocalityCatalog, load_catalog
from .locations import clean_candidate

logger = logging.getLogger("widget_agent.expander")

MAX_RELATED = 4
MIN_DISCOVERED = 3

_NAME = r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2}"
_NAME_LIST = r"[A-Z][A-Za-z\s,]{5,60}"

_NEARBY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?i:near|nearby|close to|around)\s+({_NAME})"),
    re.compile(rf"\b({_NAME})\s+(?i:is|are)\s+(?i:near|nearby|close)"),
    re.compile(rf"(?i:cities?\s+(?:like|including|such as))\s+({_NAME_LIST})"),
    re.compile(rf"(?i:metropolitan\s+area).*?(?i:includes|contains)\s+({_NAME_LIST})"),
)


def _split_names(text: str) -> list[str]:
    return [part.strip() for part in re.split(r",|\band\b", text) if part.strip()]


def _append_unique(
    target: list[str], names: Iterable[str], *, exclude: str, limit: int
) -> None:
    seen = {exclude.lower(), *(n.lower() for n in target)}
    for name in names:
        if len(target) >= limit:
            return
        if name.lower() in seen:
            continue
        seen.add(name.lower())
        target.append(name)


def discover_nearby(primary: str, capabilities: Capabilities, *, limit: int = MAX_RELATED) -> list[str]:
    """Pull nearby city names out of a web search. Returns ``[]`` on failure."""
    search = capabilities.search
    if search is None:
        return []
    try:
        text = search(f'cities near "{primary}" metropolitan area nearby major cities') or ""
    except Exception as e:
        logger.warning(f"Nearby discovery search failed for {primary!r}: {e}")
        return []

    found: list[str] = []
    for pattern in _NEARBY_PATTERNS:
        for m in pattern.finditer(text):
            names = [clean_candidate(n) for n in _split_names(m.group(1)) if re.fullmatch(_NAME, n)]
            _append_unique(
                found,
                (n for n in names if n and 2 < len(n) < 30),
                exclude=primary,
                limit=limit,
            )
    return found


def expand_locations(
    primary: str,
    capabilities: Capabilities,
    *,
    catalog: Optional[LocalityCatalog] = None,
    max_related: int = MAX_RELATED,
) -> tuple[str, ...]:
    """Return ``(primary, *related)`` with at most ``max_related`` related cities.

    Catalog hits are deterministic. Unknown cities go through search-based
    discovery, topped up from the regional defaults when it finds fewer than
    three names.
    """
    catalog = catalog or load_catalog()
    related: list[str] = []

    known = catalog.nearby_for(primary)
    if known:
        _append_unique(related, known, exclude=primary, limit=max_related)
        return (primary, *related)

    discovered = discover_nearby(primary, capabilities, limit=max_related)
    _append_unique(related, discovered, exclude=primary, limit=max_related)
    if len(related) < MIN_DISCOVERED:
        region = catalog.region_of(primary)
        logger.info(f"Backfilling related cities for {primary!r} from {region} defaults")
        _append_unique(related, catalog.defaults_for(region), exclude=primary, limit=max_related)

    return (primary, *related)
