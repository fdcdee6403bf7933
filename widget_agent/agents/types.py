from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict


class AgentState(TypedDict, total=False):
    """Schema for the graph’s state."""

    input: str
    output: str
    # Set by the classify node
    intent: str
    extracted_city: Optional[str]
    topic: Optional[str]
    # Set by the weather branch
    locations: List[str]
    result: Dict[str, Any]
    # Structured UI payload ("a2ui"-style schema)
    a2ui: Dict[str, Any]
