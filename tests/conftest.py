"""Pytest configuration and fixtures."""

import threading
from typing import Any, Callable, Dict, List, Optional

import pytest

from widget_agent.tools.capabilities import Capabilities
from widget_agent.tools.catalog import load_catalog
from widget_agent.web_search import SearchError


# Keep every test offline: no LLM credentials, no Langfuse.
_ENV_VARS = (
    "OPENAI_API_KEY",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_API_BASE",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_DEPLOYMENT_NAME",
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
    "LANGFUSE_HOST",
    "AGENT_CONFIG_PATH",
    "LOCALITY_CATALOG_PATH",
)


@pytest.fixture(autouse=True)
def offline_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeSearch:
    """Text search answering from a table of ``query substring -> text``.

    Queries matching no key raise :class:`SearchError`, like an empty result page.
    """

    def __init__(self, texts: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.texts = texts or {}
        self.error = error
        self.queries: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, query: str) -> str:
        with self._lock:
            self.queries.append(query)
        if self.error is not None:
            raise self.error
        lowered = query.lower()
        for key, text in self.texts.items():
            if key.lower() in lowered:
                return text
        raise SearchError(f"No results for {query!r}")


class FakeCompletion:
    """Structured completion answering per schema.

    A response may be a schema instance, an exception to raise, or a callable
    taking the prompt. Schemas without a response raise ``RuntimeError``.
    """

    def __init__(self, responses: Optional[Dict[type, Any]] = None):
        self.responses = responses or {}
        self.calls: List[tuple] = []

    def __call__(self, prompt: str, schema: type) -> Any:
        self.calls.append((schema, prompt))
        if schema not in self.responses:
            raise RuntimeError(f"no fake response for {schema.__name__}")
        response = self.responses[schema]
        if isinstance(response, Exception):
            raise response
        if callable(response) and not isinstance(response, schema):
            return response(prompt)
        return response


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def no_capabilities() -> Capabilities:
    return Capabilities()


@pytest.fixture
def failing_capabilities() -> Capabilities:
    """Both capabilities present, both always failing."""
    return Capabilities(
        search=FakeSearch(error=SearchError("network unreachable")),
        complete=FakeCompletion(),
    )


@pytest.fixture
def make_capabilities() -> Callable[..., Capabilities]:
    def make(
        texts: Optional[Dict[str, str]] = None,
        responses: Optional[Dict[type, Any]] = None,
    ) -> Capabilities:
        return Capabilities(
            search=FakeSearch(texts) if texts is not None else None,
            complete=FakeCompletion(responses) if responses is not None else None,
        )

    return make
