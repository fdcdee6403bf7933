"""The two external capabilities the pipeline depends on.

``TextSearch`` maps a query to opaque text; ``StructuredCompletion`` maps a
prompt and a pydantic schema to an instance of that schema. Either may raise,
and either may be absent (``None``) in a :class:`Capabilities` bundle, in which
case the stages that need it are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional, Protocol, TypeVar

from pydantic import BaseModel

from .agent_config import get_agent_settings
from .llm import complete_structured, get_llm
from .web import search_text

logger = logging.getLogger("widget_agent.capabilities")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class TextSearch(Protocol):
    def __call__(self, query: str) -> str:
        ...


class StructuredCompletion(Protocol):
    def __call__(self, prompt: str, schema: type[SchemaT]) -> SchemaT:
        ...


@dataclass(frozen=True)
class Capabilities:
    search: Optional[TextSearch] = None
    complete: Optional[StructuredCompletion] = None


def completion_for(agent_name: str) -> Optional[StructuredCompletion]:
    """Structured completion bound to an agent's model settings, if an LLM is configured."""
    settings = get_agent_settings(agent_name)
    try:
        llm = get_llm(settings.model_name)
    except Exception:
        logger.exception(f"Could not initialise the model for {agent_name}; completion disabled")
        return None
    if llm is None:
        return None
    return partial(
        complete_structured,
        model_name=settings.model_name,
        system_prompt=settings.system_prompt,
    )


def default_capabilities(agent_name: str = "weather_agent") -> Capabilities:
    return Capabilities(search=search_text, complete=completion_for(agent_name))
