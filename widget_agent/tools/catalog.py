"""Locality catalog: static tables of related cities, regions and countries.

The tables ship as YAML next to the package and are loaded once into an
immutable :class:`LocalityCatalog`. Resolver, expander and aggregator receive
the catalog by reference. A defect in the tables (no global defaults, an empty
rotation set) raises :class:`CatalogError` at load time so it surfaces at
process start rather than in the middle of a request.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml

from .agent_config import get_pipeline_settings

logger = logging.getLogger("widget_agent.catalog")

GLOBAL_REGION = "global"
ROTATION_SETS = ("business", "entertainment", "global")


class CatalogError(ValueError):
    """Raised when the locality tables are missing or malformed."""


@dataclass(frozen=True)
class LocalityCatalog:
    nearby: Mapping[str, tuple[str, ...]]
    regions: Mapping[str, tuple[str, ...]]
    regional_defaults: Mapping[str, tuple[str, ...]]
    regional_hints: Mapping[str, tuple[str, ...]]
    rotation: Mapping[str, tuple[str, ...]]
    countries: Mapping[str, str]

    def is_known(self, city: str) -> bool:
        return city.strip().lower() in self.nearby

    def nearby_for(self, city: str) -> tuple[str, ...]:
        return self.nearby.get(city.strip().lower(), ())

    def region_of(self, city: str) -> str:
        key = city.strip().lower()
        for region, members in self.regions.items():
            if key in members:
                return region
        return GLOBAL_REGION

    def defaults_for(self, region: str) -> tuple[str, ...]:
        return self.regional_defaults.get(region) or self.regional_defaults[GLOBAL_REGION]

    def country_of(self, city: str) -> str:
        return self.countries.get(city.strip().lower(), "Unknown")

    def city_for_hint(self, phrase: str) -> Optional[str]:
        """The city a whole regional hint phrase stands for ("east coast" -> New York)."""
        key = phrase.strip().lower()
        for city, hints in self.regional_hints.items():
            if key in hints:
                return city
        return None


def _default_catalog_path() -> str:
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "data", "localities.yaml"))


def _string_table(
    data: dict[str, Any], key: str, *, lower: bool = False, lower_keys: bool = True
) -> Mapping[str, tuple[str, ...]]:
    block = data.get(key) or {}
    if not isinstance(block, dict):
        raise CatalogError(f"'{key}' must be a mapping")
    table: dict[str, tuple[str, ...]] = {}
    for name, values in block.items():
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise CatalogError(f"'{key}.{name}' must be a list of strings")
        cleaned = tuple(v.strip().lower() if lower else v.strip() for v in values if v.strip())
        label = str(name).strip()
        table[label.lower() if lower_keys else label] = cleaned
    return MappingProxyType(table)


def build_catalog(data: dict[str, Any]) -> LocalityCatalog:
    """Validate raw table data and freeze it into a :class:`LocalityCatalog`."""
    if not isinstance(data, dict):
        raise CatalogError("catalog root must be a mapping")

    regional_defaults = _string_table(data, "regional_defaults")
    if not regional_defaults.get(GLOBAL_REGION):
        raise CatalogError("regional_defaults.global must list at least one city")
    empty = [region for region, cities in regional_defaults.items() if not cities]
    if empty:
        raise CatalogError(f"regional_defaults has empty regions: {', '.join(empty)}")

    rotation = _string_table(data, "rotation")
    for name in ROTATION_SETS:
        if not rotation.get(name):
            raise CatalogError(f"rotation.{name} must list at least one city")

    countries: dict[str, str] = {}
    for country, cities in _string_table(data, "countries", lower=True, lower_keys=False).items():
        for city in cities:
            countries[city] = country

    return LocalityCatalog(
        nearby=_string_table(data, "nearby"),
        regions=_string_table(data, "regions", lower=True),
        regional_defaults=regional_defaults,
        regional_hints=_string_table(data, "regional_hints", lower=True, lower_keys=False),
        rotation=rotation,
        countries=MappingProxyType(countries),
    )


@lru_cache(maxsize=4)
def load_catalog(path: Optional[str] = None) -> LocalityCatalog:
    """Load the locality catalog once per path.

    The path resolves from the argument, then ``LOCALITY_CATALOG_PATH``, then
    ``pipeline.catalog_path`` in the agent config, then
    the packaged ``data/localities.yaml``.
    """
    catalog_path = (
        path
        or os.getenv("LOCALITY_CATALOG_PATH")
        or get_pipeline_settings().catalog_path
        or _default_catalog_path()
    )
    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(f"Could not load locality catalog from {catalog_path}: {e}") from e

    catalog = build_catalog(data)
    logger.info(
        f"Loaded locality catalog from {catalog_path} "
        f"({len(catalog.nearby)} cities, {len(catalog.regions)} regions)"
    )
    return catalog
