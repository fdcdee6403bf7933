"""Resolve the primary location of a chat message.

Resolution is a cascade of strategies sharing one contract: each receives the
:class:`ResolutionContext` and returns a :class:`Candidate` or ``None``. The
cascade stops at the first *validated* candidate. Cheap strategies come first;
the heuristic strategy at the end always produces a name, so
:func:`resolve_location` never fails.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from .capabilities import Capabilities
from .catalog import LocalityCatalog, load_catalog
from .langfuse_tracing import end_span, start_span
from .locations import (
    DEFAULT_LOCATION,
    clean_candidate,
    format_location_name,
    is_valid_location_name,
    match_location,
)
from .schemas import CityExtraction

logger = logging.getLogger("widget_agent.resolver")

UNKNOWN_SENTINEL = "unknown"

EXTRACTION_PROMPT = (
    "You are a location extraction expert. Extract the city name from the user's message "
    "about weather or location.\n\n"
    "Rules:\n"
    '1. Return ONLY the city name, properly formatted (e.g. "New York", "Los Angeles")\n'
    '2. If no city is mentioned, return "unknown"\n'
    "3. Expand abbreviations: NYC=New York, LA=Los Angeles, SF=San Francisco, "
    "DC=Washington DC, ATL=Atlanta\n"
    "4. For city + state/country, return just the city name\n\n"
    'User message: "{message}"'
)

_CITY_WORDS = r"(?:city|weather|temperature|located|population|capital)"

_DISCOVERY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?i:weather\s+(?:in|for|at))\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2})"),
    re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2})\s+(?i:weather)"),
    re.compile(r"(?i:city|location)\b.*?\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"),
)


@dataclass(frozen=True)
class Candidate:
    name: str
    validated: bool
    strategy: str


@dataclass
class ResolutionContext:
    message: str
    capabilities: Capabilities
    catalog: LocalityCatalog
    now: datetime = field(default_factory=datetime.now)
    # Low-confidence match from the text patterns.
    seed: Optional[str] = None
    # Unvalidated proposal from the completion capability.
    proposal: Optional[str] = None


class ResolutionStrategy:
    name = "strategy"

    def __call__(self, ctx: ResolutionContext) -> Optional[Candidate]:
        raise NotImplementedError

    def accept(self, name: str) -> Candidate:
        return Candidate(name=name, validated=True, strategy=self.name)


class PatternStrategy(ResolutionStrategy):
    """Regex extraction. Only catalog cities count as validated here."""

    name = "pattern"

    def __call__(self, ctx: ResolutionContext) -> Optional[Candidate]:
        ctx.seed = match_location(ctx.message)
        if ctx.seed:
            ctx.seed = ctx.catalog.city_for_hint(ctx.seed) or ctx.seed
        if ctx.seed and ctx.catalog.is_known(ctx.seed):
            return self.accept(ctx.seed)
        return None


class CompletionStrategy(ResolutionStrategy):
    name = "completion"

    def __call__(self, ctx: ResolutionContext) -> Optional[Candidate]:
        complete = ctx.capabilities.complete
        if complete is None:
            return None
        extraction = complete(EXTRACTION_PROMPT.format(message=ctx.message), CityExtraction)
        raw = (extraction.city or "").strip()
        if not raw or raw.lower() == UNKNOWN_SENTINEL:
            return None
        name = format_location_name(raw)
        if is_valid_location_name(name):
            ctx.proposal = name
        return None


class SearchValidationStrategy(ResolutionStrategy):
    """Confirm the completion proposal by co-occurrence in search results."""

    name = "search_validation"

    def __call__(self, ctx: ResolutionContext) -> Optional[Candidate]:
        proposal, ctx.proposal = ctx.proposal, None
        search = ctx.capabilities.search
        if proposal is None or search is None:
            return None

        text = search(f'"{proposal}" city weather location')
        city = re.escape(proposal)
        confirmations = (
            re.compile(rf"{city}.*?{_CITY_WORDS}", re.IGNORECASE | re.DOTALL),
            re.compile(rf"weather.*?{city}", re.IGNORECASE | re.DOTALL),
        )
        if any(p.search(text or "") for p in confirmations):
            return self.accept(proposal)
        logger.info(f"Search did not confirm {proposal!r}; discarding")
        return None


class SearchDiscoveryStrategy(ResolutionStrategy):
    name = "search_discovery"

    def __call__(self, ctx: ResolutionContext) -> Optional[Candidate]:
        search = ctx.capabilities.search
        if search is None:
            return None
        text = search(f"{ctx.message} weather location city") or ""
        for pattern in _DISCOVERY_PATTERNS:
            for m in pattern.finditer(text):
                name = clean_candidate(m.group(1))
                if name and 2 < len(name) < 30:
                    return self.accept(name)
        return None


class HeuristicStrategy(ResolutionStrategy):
    """Pattern seed, then regional hints, then an hour-keyed rotation."""

    name = "heuristic"

    def __call__(self, ctx: ResolutionContext) -> Optional[Candidate]:
        if ctx.seed and ctx.seed != DEFAULT_LOCATION:
            return self.accept(ctx.seed)

        text = ctx.message.lower()
        for city, hints in ctx.catalog.regional_hints.items():
            if any(re.search(rf"\b{re.escape(h)}\b", text) for h in hints):
                return self.accept(city)

        hour = ctx.now.hour
        if 6 <= hour < 12:
            cities = ctx.catalog.rotation["business"]
        elif 18 <= hour < 24:
            cities = ctx.catalog.rotation["entertainment"]
        else:
            cities = ctx.catalog.rotation["global"]
        return self.accept(cities[hour % len(cities)])


DEFAULT_STRATEGIES: tuple[ResolutionStrategy, ...] = (
    PatternStrategy(),
    CompletionStrategy(),
    SearchValidationStrategy(),
    SearchDiscoveryStrategy(),
    HeuristicStrategy(),
)


def resolve_location(
    message: str,
    capabilities: Capabilities,
    *,
    catalog: Optional[LocalityCatalog] = None,
    now: Optional[datetime] = None,
    strategies: Sequence[ResolutionStrategy] = DEFAULT_STRATEGIES,
) -> str:
    """Return the best-effort primary location for ``message``.

    Strategy errors are logged and treated as "no candidate".
    """
    ctx = ResolutionContext(
        message=message or "",
        capabilities=capabilities,
        catalog=catalog or load_catalog(),
        now=now or datetime.now(),
    )
    span = start_span(name="pipeline:resolve_location", input={"message": message})

    for strategy in strategies:
        try:
            candidate = strategy(ctx)
        except Exception as e:
            logger.warning(f"Location strategy {strategy.name} failed: {e}")
            continue
        if candidate is not None and candidate.validated and is_valid_location_name(candidate.name):
            logger.info(f"Resolved location {candidate.name!r} via {candidate.strategy}")
            end_span(span, output={"location": candidate.name, "strategy": candidate.strategy})
            return candidate.name

    end_span(span, output={"location": DEFAULT_LOCATION, "strategy": "default"})
    return DEFAULT_LOCATION
