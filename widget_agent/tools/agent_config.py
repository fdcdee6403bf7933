"""Agent and pipeline configuration loader.

Per-agent model settings, system prompts and pipeline limits live in
`widget_agent/agent_config.yaml`.

The loader is tolerant:
- If the YAML file is missing or invalid, it falls back to empty defaults.
- Callers can still override model names explicitly at call sites.

The YAML schema:

- default_model: <string | null>
- classifier/weather_agent:
    system_prompt: <string | null>
    model_name: <string | null>
- pipeline:
    max_related: <int>          # related locations per turn (default 4)
    search_max_results: <int>   # search hits joined per query (default 3)
    max_workers: <int>          # fan-out threads for per-location searches
    catalog_path: <string | null>
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import yaml

logger = logging.getLogger("widget_agent.config")


@dataclass(frozen=True)
class AgentSettings:
    model_name: Optional[str]
    system_prompt: Optional[str]


@dataclass(frozen=True)
class PipelineSettings:
    max_related: int = 4
    search_max_results: int = 3
    max_workers: int = 5
    catalog_path: Optional[str] = None


def _package_root() -> str:
    # widget_agent/tools/agent_config.py -> widget_agent/tools -> widget_agent
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _default_config_path() -> str:
    return os.path.join(_package_root(), "agent_config.yaml")


@lru_cache(maxsize=1)
def load_agent_config(path: Optional[str] = None) -> dict[str, Any]:
    config_path = path or os.getenv("AGENT_CONFIG_PATH") or _default_config_path()
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError):
        logger.warning(f"Could not read agent config at {config_path}; using defaults")
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def get_agent_settings(agent_name: str) -> AgentSettings:
    config = load_agent_config()
    default_model = config.get("default_model")

    agent_block = config.get(agent_name, {})
    if not isinstance(agent_block, dict):
        agent_block = {}

    model_name = agent_block.get("model_name")
    if model_name is None:
        model_name = default_model

    system_prompt = agent_block.get("system_prompt")

    return AgentSettings(
        model_name=model_name if isinstance(model_name, str) else None,
        system_prompt=system_prompt if isinstance(system_prompt, str) else None,
    )


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return default


def get_pipeline_settings() -> PipelineSettings:
    block = load_agent_config().get("pipeline", {})
    if not isinstance(block, dict):
        block = {}
    defaults = PipelineSettings()
    catalog_path = block.get("catalog_path")
    return PipelineSettings(
        max_related=_positive_int(block.get("max_related"), defaults.max_related),
        search_max_results=_positive_int(block.get("search_max_results"), defaults.search_max_results),
        max_workers=_positive_int(block.get("max_workers"), defaults.max_workers),
        catalog_path=catalog_path if isinstance(catalog_path, str) else None,
    )
