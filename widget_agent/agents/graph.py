from __future__ import annotations

from typing import Optional

from langgraph.graph import END, START, StateGraph

from ..tools.capabilities import Capabilities
from ..tools.catalog import LocalityCatalog, load_catalog

from .general_agent import general_agent
from .routing import classify_node, route
from .types import AgentState
from .weather_agent import weather_agent


def get_agent_graph(
    capabilities: Optional[Capabilities] = None,
    catalog: Optional[LocalityCatalog] = None,
) -> "StateGraph[AgentState]":
    """Construct and return the compiled classify -> weather/general graph.

    ``capabilities`` and ``catalog`` are bound into the nodes; when omitted,
    nodes build the default capabilities per call and use the packaged catalog.
    """

    def classify(state: AgentState) -> AgentState:
        return classify_node(state, capabilities=capabilities)

    def weather(state: AgentState) -> AgentState:
        return weather_agent(state, capabilities=capabilities, catalog=catalog)

    graph_builder: StateGraph[AgentState] = StateGraph(AgentState)

    graph_builder.add_node("classify", classify)
    graph_builder.add_node("weather_agent", weather)
    graph_builder.add_node("general_agent", general_agent)

    graph_builder.add_edge(START, "classify")
    graph_builder.add_conditional_edges(
        "classify",
        route,
        {
            "weather_agent": "weather_agent",
            "general_agent": "general_agent",
        },
    )

    graph_builder.add_edge("weather_agent", END)
    graph_builder.add_edge("general_agent", END)

    return graph_builder.compile()


def run_turn(
    message: str,
    *,
    capabilities: Optional[Capabilities] = None,
    catalog: Optional[LocalityCatalog] = None,
) -> AgentState:
    """Run one independent turn through the graph and return the final state."""
    if capabilities is None and catalog is None:
        graph = _compiled_agent_graph
    else:
        graph = get_agent_graph(capabilities, catalog)
    return graph.invoke({"input": message, "output": ""})


# Fail at import time on a broken locality catalog rather than mid-request.
load_catalog()

_compiled_agent_graph = get_agent_graph()
