from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from ..tools.capabilities import Capabilities, default_capabilities
from ..tools.langfuse_tracing import end_span, start_span
from ..tools.locations import format_location_name, is_valid_location_name
from ..tools.schemas import Intent, IntentClassification

from .types import AgentState

logger = logging.getLogger("widget_agent.routing")

WEATHER_KEYWORDS = (
    "weather",
    "temperature",
    "forecast",
    "climate",
    "sunny",
    "rainy",
    "cloudy",
    "cold",
    "hot",
    "degrees",
)

CLASSIFICATION_PROMPT = (
    "Classify the user's message and extract entities.\n\n"
    "- intent: one of weather, general, news, sports, finance. Questions about temperature, "
    "forecast, weather conditions or climate are 'weather'. Greetings and anything else "
    "that fits no category are 'general'.\n"
    "- confidence: a number between 0 and 1\n"
    "- extracted_entities.city: the city mentioned, properly formatted "
    "(NYC -> New York, LA -> Los Angeles, SF -> San Francisco, DC -> Washington DC), "
    "or null. For 'City, State' return just the city.\n"
    "- extracted_entities.topic: the topic of the message, or null.\n\n"
    'User message: "{message}"'
)


@dataclass(frozen=True)
class Classification:
    intent: Intent
    city: Optional[str] = None
    topic: Optional[str] = None
    mode: str = "keyword"


def keyword_intent(message: str) -> Intent:
    text = (message or "").lower()
    if any(k in text for k in WEATHER_KEYWORDS):
        return Intent.WEATHER
    return Intent.GENERAL


def _normalise_city(city: Optional[str]) -> Optional[str]:
    if not city or city.strip().lower() in ("unknown", "null", "none"):
        return None
    name = format_location_name(city)
    return name if is_valid_location_name(name) else None


def classify(message: str, capabilities: Capabilities) -> Classification:
    """Classify ``message`` with one structured completion, else by keywords."""
    complete = capabilities.complete
    if complete is not None:
        try:
            result = complete(CLASSIFICATION_PROMPT.format(message=message), IntentClassification)
            entities = result.extracted_entities
            return Classification(
                intent=Intent(result.intent),
                city=_normalise_city(entities.city),
                topic=(entities.topic or "").strip() or None,
                mode="llm",
            )
        except Exception as e:
            logger.warning(f"LLM classification failed, using keyword fallback: {e}")

    return Classification(intent=keyword_intent(message))


def classify_node(state: AgentState, *, capabilities: Optional[Capabilities] = None) -> AgentState:
    """Classify the user message and record intent and entities in state."""
    user_text = state.get("input", "")
    span = start_span(name="agent:classify", input={"input": user_text}, metadata={"kind": "routing"})

    classification = classify(user_text, capabilities or default_capabilities("classifier"))
    logger.info(
        f"Classified {user_text!r} as {classification.intent.value} "
        f"(mode={classification.mode}, city={classification.city})"
    )
    out: AgentState = {
        "intent": classification.intent.value,
        "extracted_city": classification.city,
        "topic": classification.topic,
    }
    end_span(span, output={**out, "mode": classification.mode})
    return out


def route(state: AgentState) -> Literal["weather_agent", "general_agent"]:
    """Only weather has a dedicated branch; every other intent is handled as general."""
    if state.get("intent") == Intent.WEATHER.value:
        return "weather_agent"
    return "general_agent"
