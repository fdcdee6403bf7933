"""Weather aggregation over web search results.

Every requested location gets its own slot. Slots are filled, in order of
preference, by a batched structured completion over all search texts, by the
regex parser over that location's own text, and finally by a synthetic
record. The returned list therefore always has one record per location, in
the order the locations were given.
"""

from __future__ import annotations

import contextvars
import logging
import math
import random
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from .capabilities import Capabilities
from .catalog import LocalityCatalog, load_catalog
from .langfuse_tracing import end_span, start_span
from .schemas import IconClass, WeatherReading, WeatherRecord, WeatherReport

logger = logging.getLogger("widget_agent.weather")

SYNTHETIC_CONDITIONS: tuple[tuple[str, IconClass], ...] = (
    ("Sunny", "sunny"),
    ("Partly Cloudy", "cloudy"),
    ("Cloudy", "cloudy"),
    ("Rainy", "rainy"),
)

# Keyword precedence for condition and icon, highest first.
CONDITION_RULES: tuple[tuple[tuple[str, ...], str, IconClass], ...] = (
    (("storm", "thunder"), "Stormy", "rainy"),
    (("rain", "shower", "drizzle", "wet"), "Rainy", "rainy"),
    (("cloud", "overcast", "fog", "mist"), "Cloudy", "cloudy"),
    (("sunny", "clear", "bright"), "Sunny", "sunny"),
)
DEFAULT_CONDITION: tuple[str, IconClass] = ("Partly Cloudy", "cloudy")

DEFAULT_HUMIDITY = 60
DEFAULT_WIND_MPH = 10
CELSIUS_THRESHOLD = 50

# A sign counts only when it does not follow a word, so "28-32°C" reads as a range.
_NUMBER = r"((?<![\w.])-?\d+(?:\.\d+)?)"
TEMPERATURE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"{_NUMBER}\s*°\s*[cf]\b", re.IGNORECASE),
    re.compile(rf"{_NUMBER}\s*degrees?\b", re.IGNORECASE),
    re.compile(rf"{_NUMBER}\s*fahrenheit\b", re.IGNORECASE),
    re.compile(rf"{_NUMBER}\s*celsius\b", re.IGNORECASE),
)
HUMIDITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"humidity\s*(?:is|of)?\s*:?\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*%\s*humidity", re.IGNORECASE),
)
WIND_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"wind(?:\s*speed)?\s*:?\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*mph\b", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*km/h\b", re.IGNORECASE),
)

WEATHER_PROMPT = (
    "You are a weather data extraction assistant. Parse the following search results "
    "and extract weather information for each city.\n\n"
    "For each city, extract:\n"
    "- Temperature in Fahrenheit (convert from Celsius if needed)\n"
    "- Weather condition (Sunny, Cloudy, Rainy, Partly Cloudy, etc.)\n"
    "- Humidity percentage\n"
    "- Wind speed in mph\n"
    "- Icon: 'sunny' for clear/sunny, 'cloudy' for cloudy/overcast, 'rainy' for rain/storm\n\n"
    "Return exactly one entry per city, using the city names exactly as listed.\n\n"
    "Cities: {cities}\n\n"
    "Search results:\n{results}"
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def celsius_to_fahrenheit(celsius: float) -> int:
    return round_half_up(celsius * 9.0 / 5.0 + 32.0)


def classify_condition(text: str) -> tuple[str, IconClass]:
    """Map free text to a ``(condition, icon)`` pair by keyword precedence."""
    lowered = (text or "").lower()
    for keywords, condition, icon in CONDITION_RULES:
        if any(k in lowered for k in keywords):
            return condition, icon
    return DEFAULT_CONDITION


def icon_for_condition(condition: str) -> IconClass:
    return classify_condition(condition)[1]


def _first_number(patterns: Sequence[re.Pattern[str]], text: str) -> Optional[float]:
    for pattern in patterns:
        m = pattern.search(text)
        if m:
            return float(m.group(1))
    return None


@dataclass(frozen=True)
class ParsedWeather:
    temperature: int
    condition: str
    humidity: int
    wind_speed: int
    icon: IconClass


def parse_weather_text(text: str) -> Optional[ParsedWeather]:
    """Extract a reading from raw search text, or ``None`` without a temperature.

    Values under 50 are read as Celsius. Wind is carried through unconverted.
    """
    if not text:
        return None
    temperature = _first_number(TEMPERATURE_PATTERNS, text)
    if temperature is None:
        return None
    if temperature < CELSIUS_THRESHOLD:
        temp_f = celsius_to_fahrenheit(temperature)
    else:
        temp_f = round_half_up(temperature)

    humidity = _first_number(HUMIDITY_PATTERNS, text)
    wind = _first_number(WIND_PATTERNS, text)
    condition, icon = classify_condition(text)
    return ParsedWeather(
        temperature=temp_f,
        condition=condition,
        humidity=DEFAULT_HUMIDITY if humidity is None else max(0, min(100, round_half_up(humidity))),
        wind_speed=DEFAULT_WIND_MPH if wind is None else max(0, round_half_up(wind)),
        icon=icon,
    )


def synthetic_record(
    city: str, record_id: int, catalog: LocalityCatalog, rng: Optional[random.Random] = None
) -> WeatherRecord:
    rng = rng or random.Random()
    condition, icon = rng.choice(SYNTHETIC_CONDITIONS)
    return WeatherRecord(
        id=record_id,
        city=city,
        country=catalog.country_of(city),
        temperature=rng.randint(60, 90),
        condition=condition,
        humidity=rng.randint(40, 80),
        wind_speed=rng.randint(5, 20),
        icon=icon,
        source="synthetic",
    )


def _record_from_reading(
    city: str, record_id: int, reading: WeatherReading, catalog: LocalityCatalog
) -> WeatherRecord:
    condition = (reading.condition or "").strip() or DEFAULT_CONDITION[0]
    country = catalog.country_of(city)
    if country == "Unknown" and reading.country.strip() and reading.country.strip().lower() != "unknown":
        country = reading.country.strip()
    return WeatherRecord(
        id=record_id,
        city=city,
        country=country,
        temperature=round_half_up(reading.temp),
        condition=condition,
        humidity=max(0, min(100, round_half_up(reading.humidity))),
        wind_speed=max(0, round_half_up(reading.wind_speed)),
        icon=icon_for_condition(condition),
        source="completion",
    )


def _record_from_parse(
    city: str, record_id: int, parsed: ParsedWeather, catalog: LocalityCatalog
) -> WeatherRecord:
    return WeatherRecord(
        id=record_id,
        city=city,
        country=catalog.country_of(city),
        temperature=parsed.temperature,
        condition=parsed.condition,
        humidity=parsed.humidity,
        wind_speed=parsed.wind_speed,
        icon=parsed.icon,
        source="parser",
    )


def weather_query(city: str) -> str:
    return f"{city} current weather temperature humidity wind speed today"


def fetch_raw_texts(
    locations: Sequence[str], capabilities: Capabilities, *, max_workers: int = 5
) -> list[Optional[str]]:
    """Search for every location concurrently; failed slots stay ``None``."""
    search = capabilities.search
    slots: list[Optional[str]] = [None] * len(locations)
    if search is None or not locations:
        return slots

    def fetch(city: str) -> Optional[str]:
        try:
            return search(weather_query(city)) or None
        except Exception as e:
            logger.warning(f"Weather search failed for {city!r}: {e}")
            return None

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(locations)))) as pool:
        futures = {
            pool.submit(contextvars.copy_context().run, fetch, city): index
            for index, city in enumerate(locations)
        }
        for future, index in futures.items():
            slots[index] = future.result()
    return slots


def _batched_readings(
    locations: Sequence[str], raw_texts: Sequence[Optional[str]], capabilities: Capabilities
) -> dict[str, WeatherReading]:
    """One structured completion for all cities, keyed by lower-case city name."""
    complete = capabilities.complete
    if complete is None or not any(raw_texts):
        return {}

    sections = [
        f"=== {city} ===\n{text}" for city, text in zip(locations, raw_texts) if text
    ]
    prompt = WEATHER_PROMPT.format(cities=", ".join(locations), results="\n\n".join(sections))
    try:
        report = complete(prompt, WeatherReport)
        return {r.city.strip().lower(): r for r in report.weather_data if r.city}
    except Exception as e:
        logger.warning(f"Batched weather normalisation failed: {e}")
        return {}


def aggregate(
    locations: Sequence[str],
    capabilities: Capabilities,
    *,
    catalog: Optional[LocalityCatalog] = None,
    rng: Optional[random.Random] = None,
    max_workers: int = 5,
) -> list[WeatherRecord]:
    """Return exactly one :class:`WeatherRecord` per location, ids starting at 1.

    Never raises; a location whose data cannot be obtained gets a synthetic
    record.
    """
    catalog = catalog or load_catalog()
    rng = rng or random.Random()
    span = start_span(name="pipeline:aggregate", input={"locations": list(locations)})

    raw_texts = fetch_raw_texts(locations, capabilities, max_workers=max_workers)
    readings = _batched_readings(locations, raw_texts, capabilities)

    slots: list[Optional[WeatherRecord]] = [None] * len(locations)
    for index, city in enumerate(locations):
        record_id = index + 1
        reading = readings.get(city.lower())
        if reading is not None:
            try:
                slots[index] = _record_from_reading(city, record_id, reading, catalog)
                continue
            except Exception as e:
                logger.warning(f"Discarding completion reading for {city!r}: {e}")
        try:
            parsed = parse_weather_text(raw_texts[index] or "")
        except Exception as e:
            logger.warning(f"Weather text parse failed for {city!r}: {e}")
            parsed = None
        if parsed is not None:
            slots[index] = _record_from_parse(city, record_id, parsed, catalog)

    records = [
        slot if slot is not None else synthetic_record(city, index + 1, catalog, rng)
        for index, (city, slot) in enumerate(zip(locations, slots))
    ]
    end_span(span, output={"sources": [r.source for r in records]})
    return records
