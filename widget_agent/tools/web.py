"""
Web search tool.

Wraps the ``web_search`` helper into the two shapes the pipeline uses: a list
of result dicts, and the flattened text form consumed by the regex stages and
the weather parser.
"""

from typing import Dict, List, Optional

from ..web_search import search as _search

from .agent_config import get_pipeline_settings
from .langfuse_tracing import traced_tool


@traced_tool("web.search")
def search_web(query: str, max_results: int = 3) -> List[Dict[str, str]]:
    """Search the web for a query.

    Args:
        query: The search phrase.
        max_results: Maximum number of results to return.

    Returns:
        A list of dictionaries with keys ``title``, ``body`` and ``href``.
    """
    return _search(query, max_results=max_results)


def results_to_text(results: List[Dict[str, str]]) -> str:
    lines = []
    for res in results:
        parts = [res.get("title") or "", res.get("body") or "", res.get("href") or ""]
        lines.append(" - ".join(p for p in parts if p))
    return "\n".join(lines)


def search_text(query: str, max_results: Optional[int] = None) -> str:
    """Run a search and return the hits as one block of text."""
    if max_results is None:
        max_results = get_pipeline_settings().search_max_results
    return results_to_text(search_web(query, max_results=max_results))
