"""Domain types shared by the pipeline and the completion schemas it asks for.

Completion schemas are pydantic models so they can be handed straight to
``with_structured_output``. The records the pipeline hands to the renderer are
frozen dataclasses and serialise through :meth:`AggregationResult.to_dict`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

IconClass = Literal["sunny", "cloudy", "rainy"]
RecordSource = Literal["completion", "parser", "synthetic"]


class Intent(str, Enum):
    WEATHER = "weather"
    GENERAL = "general"
    NEWS = "news"
    SPORTS = "sports"
    FINANCE = "finance"


class ExtractedEntities(BaseModel):
    city: Optional[str] = Field(None, description="City name if present, null if not found")
    topic: Optional[str] = Field(None, description="Topic if present, null if not found")


class IntentClassification(BaseModel):
    """Structured output for intent classification."""

    intent: Intent = Field(..., description="The classified intent of the user message")
    confidence: float = Field(..., ge=0, le=1, description="Confidence score of the classification")
    extracted_entities: ExtractedEntities = Field(
        default_factory=ExtractedEntities,
        description="Entities extracted from the user message",
    )


class CityExtraction(BaseModel):
    city: str = Field(
        ...,
        description='A single properly formatted city name, or "unknown" when no city is mentioned',
    )


class WeatherReading(BaseModel):
    city: str = Field(..., description="The name of the city")
    country: str = Field("", description="The country where the city is located")
    temp: float = Field(..., description="Temperature in Fahrenheit")
    condition: str = Field(..., description="Current weather condition (e.g. Sunny, Cloudy, Rainy)")
    humidity: float = Field(..., description="Humidity percentage (0-100)")
    wind_speed: float = Field(..., description="Wind speed in mph")
    icon: Optional[str] = Field(None, description="Icon type based on condition (sunny, cloudy or rainy)")


class WeatherReport(BaseModel):
    weather_data: list[WeatherReading] = Field(
        default_factory=list,
        description="One entry per requested city",
    )


@dataclass(frozen=True)
class WeatherRecord:
    id: int
    city: str
    country: str
    temperature: int
    condition: str
    humidity: int
    wind_speed: int
    icon: IconClass
    source: RecordSource = "synthetic"


@dataclass(frozen=True)
class AggregationResult:
    locations: tuple[str, ...]
    records: tuple[WeatherRecord, ...]
    intent: Intent = Intent.WEATHER

    @property
    def primary(self) -> str:
        return self.locations[0]

    @property
    def fallback_cities(self) -> list[str]:
        return [r.city for r in self.records if r.source == "synthetic"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "intent": self.intent.value,
            "search_city": self.primary,
            "locations": list(self.locations),
            "records": [asdict(r) for r in self.records],
        }
