"""Build and expose the LangGraph pipeline of the widget agent.

The graph classifies each message and routes it to one of two nodes:
- ``weather_agent`` resolves a location, expands it to nearby cities and
  aggregates weather readings into a carousel widget
- ``general_agent`` acknowledges everything else

Public API:
- ``AgentState``
- ``get_agent_graph``
- ``run_turn``
- ``_compiled_agent_graph``
"""

from .types import AgentState
from .graph import get_agent_graph, run_turn, _compiled_agent_graph

__all__ = [
    "AgentState",
    "get_agent_graph",
    "run_turn",
    "_compiled_agent_graph",
]
