from __future__ import annotations

from ..tools.langfuse_tracing import end_span, start_span

from .types import AgentState
from .ui import a2ui_text


def general_agent(state: AgentState) -> AgentState:
    """Acknowledge anything that is not a weather request."""
    _span = start_span(name="agent:general_agent", input={"state": state}, metadata={"kind": "agent"})
    text = (
        f'I understand you said: "{state.get("input", "")}". '
        "I'm currently set up to provide weather information. "
        "Try asking me about the weather in any city!"
    )
    out: AgentState = {"output": text, "a2ui": a2ui_text("Assistant", text)}
    end_span(_span, output=out)
    return out
