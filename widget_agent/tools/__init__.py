# Building blocks of the message-understanding pipeline.
#
# Capability wrappers (web search, structured LLM completion) sit next to the
# pipeline stages that use them: location matching, resolution, expansion and
# weather aggregation. Every stage takes its capabilities and the locality
# catalog as arguments, so each can be exercised on its own.

from .capabilities import Capabilities, default_capabilities
from .catalog import LocalityCatalog, load_catalog
from .expander import expand_locations
from .locations import extract_pattern
from .resolver import resolve_location
from .weather import aggregate

__all__ = [
    "Capabilities",
    "default_capabilities",
    "LocalityCatalog",
    "load_catalog",
    "expand_locations",
    "extract_pattern",
    "resolve_location",
    "aggregate",
]
