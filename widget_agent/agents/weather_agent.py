from __future__ import annotations

import logging
from typing import Optional

from ..tools.agent_config import get_pipeline_settings
from ..tools.capabilities import Capabilities, default_capabilities
from ..tools.catalog import LocalityCatalog, load_catalog
from ..tools.expander import expand_locations
from ..tools.langfuse_tracing import end_span, start_span
from ..tools.locations import DEFAULT_LOCATION, format_location_name, is_valid_location_name
from ..tools.resolver import resolve_location
from ..tools.schemas import AggregationResult, Intent
from ..tools.weather import aggregate, synthetic_record

from .types import AgentState
from .ui import a2ui_weather_carousel

logger = logging.getLogger("widget_agent.weather_agent")


def primary_location(
    state: AgentState, capabilities: Capabilities, catalog: LocalityCatalog
) -> str:
    """The classifier's city when it supplied one, otherwise the resolver's answer."""
    city = state.get("extracted_city")
    if city:
        name = format_location_name(city)
        if is_valid_location_name(name):
            return name
    return resolve_location(state.get("input", ""), capabilities, catalog=catalog)


def build_summary(result: AggregationResult) -> str:
    fallback = result.fallback_cities
    if not fallback:
        return (
            f"Here's the current weather for {result.primary} and nearby cities! "
            "The data was fetched in real-time. Use the carousel to browse through different locations."
        )
    if len(fallback) == len(result.records):
        return (
            f"Here's the weather information for {result.primary} and nearby cities. "
            "Note: Using cached data due to network issues."
        )
    return (
        f"Here's the current weather for {result.primary} and nearby cities! "
        f"Live data was unavailable for {', '.join(fallback)}, so those readings are estimated."
    )


def weather_agent(
    state: AgentState,
    *,
    capabilities: Optional[Capabilities] = None,
    catalog: Optional[LocalityCatalog] = None,
) -> AgentState:
    """Resolve, expand and aggregate weather for the user's location (A2UI carousel)."""
    _span = start_span(name="agent:weather_agent", input={"state": state}, metadata={"kind": "agent"})
    capabilities = capabilities or default_capabilities("weather_agent")
    catalog = catalog or load_catalog()
    settings = get_pipeline_settings()

    primary: Optional[str] = None
    try:
        primary = primary_location(state, capabilities, catalog)
        locations = expand_locations(
            primary, capabilities, catalog=catalog, max_related=settings.max_related
        )
        records = aggregate(locations, capabilities, catalog=catalog, max_workers=settings.max_workers)
    except Exception:
        logger.exception("Weather pipeline failed; serving synthetic readings")
        locations = (primary or DEFAULT_LOCATION,)
        records = [synthetic_record(locations[0], 1, catalog)]

    result = AggregationResult(
        locations=tuple(locations),
        records=tuple(records),
        intent=Intent.WEATHER,
    )
    logger.info(f"Weather for {result.primary}: {[r.city for r in result.records]}")
    out: AgentState = {
        "output": build_summary(result),
        "locations": list(result.locations),
        "result": result.to_dict(),
        "a2ui": a2ui_weather_carousel(result),
    }
    end_span(_span, output={"output": out["output"], "locations": out["locations"]})
    return out
