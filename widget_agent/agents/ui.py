from __future__ import annotations

from typing import Any, Dict

from ..tools.schemas import AggregationResult, WeatherRecord


def a2ui_text(title: str, text: str) -> Dict[str, Any]:
    return {
        "schema": "a2ui",
        "version": "0.1",
        "render": {
            "type": "container",
            "children": [
                {"type": "heading", "level": 2, "text": title},
                {"type": "text", "text": text},
            ],
        },
    }


def fmt_num(x: Any, suffix: str = "") -> str:
    if x is None:
        return ""
    try:
        v = float(x)
    except (TypeError, ValueError):
        return f"{x}{suffix}"
    if v.is_integer():
        return f"{int(v)}{suffix}"
    return f"{round(v, 1)}{suffix}"


def weather_card(record: WeatherRecord) -> Dict[str, Any]:
    subtitle = record.city if record.country == "Unknown" else f"{record.city}, {record.country}"
    return {
        "type": "card",
        "id": record.id,
        "title": record.city,
        "subtitle": subtitle,
        "icon": record.icon,
        "children": [
            {"type": "text", "text": record.condition},
            {
                "type": "kv",
                "items": [
                    {"label": "Temperature", "value": fmt_num(record.temperature, "°F")},
                    {"label": "Humidity", "value": fmt_num(record.humidity, "%")},
                    {"label": "Wind", "value": fmt_num(record.wind_speed, " mph")},
                ],
            },
        ],
    }


def a2ui_weather_carousel(result: AggregationResult) -> Dict[str, Any]:
    """Carousel of weather cards, the searched city first."""
    return {
        "schema": "a2ui",
        "version": "0.1",
        "render": {
            "type": "carousel",
            "title": "Weather",
            "search_city": result.primary,
            "children": [weather_card(r) for r in result.records],
        },
    }
