"""
Web search utilities for the widget agent.

This module performs a real web search using the ``duckduckgo_search``
package. Failures (no network, rate limiting, an empty result page) are raised
as :class:`SearchError` so the pipeline can fall through to its next strategy
instead of parsing a placeholder. The search results returned are a list of
dictionaries containing a title, a brief snippet and a URL (href).
"""

from __future__ import annotations

import logging
from typing import Dict, List

from duckduckgo_search import DDGS

logger = logging.getLogger("widget_agent.web_search")


class SearchError(RuntimeError):
    """Raised when the search backend fails or returns nothing."""


def search(query: str, max_results: int = 5) -> List[Dict[str, str]]:
    """Search the web using DuckDuckGo.

    Args:
        query: Query string to search for.
        max_results: Maximum number of results to return.

    Returns:
        List of dictionaries with keys ``title``, ``body`` and ``href``.

    Raises:
        SearchError: if the backend errors or yields no results.
    """
    results: List[Dict[str, str]] = []
    try:
        # The context manager closes the underlying HTTP session.
        with DDGS() as ddgs:
            for result in ddgs.text(query, safesearch="moderate", max_results=max_results) or []:
                results.append(
                    {
                        "title": result.get("title", ""),
                        "body": result.get("body", ""),
                        "href": result.get("href", ""),
                    }
                )
    except Exception as e:
        logger.warning(f"DuckDuckGo search failed for {query!r}: {e}")
        raise SearchError(str(e)) from e

    if not results:
        raise SearchError(f"No results for {query!r}")
    return results


__all__ = ["SearchError", "search"]
