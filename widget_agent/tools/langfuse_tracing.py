"""Langfuse tracing helpers.

Tracing is optional: every helper is a no-op unless the LANGFUSE_* env vars
are set. Three levels are instrumented:
1) one trace per ``/stream`` request (``widget_agent.main``)
2) a span per graph node and pipeline stage (classify, resolve, aggregate)
3) capability calls via :func:`traced_tool` (web search, structured completion)

The active trace and span live in context variables, so nested calls attach
to the right parent. Worker threads that run in a copied context (see
``tools.weather.fetch_raw_texts``) see the same trace.
"""

from __future__ import annotations

import functools
import logging
import os
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, cast

from langfuse import Langfuse

_T = TypeVar("_T")

_langfuse_client: Optional[Any] = None

logger = logging.getLogger("widget_agent.langfuse")

_current_trace: ContextVar[Optional[Any]] = ContextVar("langfuse_current_trace", default=None)
_current_span: ContextVar[Optional[Any]] = ContextVar("langfuse_current_span", default=None)


@dataclass
class SpanHandle:
    span: Any
    token: Token


def _enabled() -> bool:
    return bool(os.getenv("LANGFUSE_PUBLIC_KEY") and os.getenv("LANGFUSE_SECRET_KEY") and os.getenv("LANGFUSE_HOST"))


def get_langfuse() -> Optional[Any]:
    """Return a singleton Langfuse client if configured, else None."""
    global _langfuse_client
    if _langfuse_client is not None or not _enabled():
        return _langfuse_client

    _langfuse_client = Langfuse(
        public_key=os.getenv("LANGFUSE_PUBLIC_KEY"),
        secret_key=os.getenv("LANGFUSE_SECRET_KEY"),
        host=os.getenv("LANGFUSE_HOST"),
    )
    return _langfuse_client


def start_trace(
    *,
    name: str,
    input: Optional[Any] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Optional[Any]:
    """Start a Langfuse trace and make it current."""
    client = get_langfuse()
    if client is None:
        return None

    trace = client.trace(name=name, input=input, metadata=metadata)
    _current_trace.set(trace)
    _current_span.set(None)
    return trace


def start_span(
    *,
    name: str,
    input: Optional[Any] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Optional[SpanHandle]:
    """Open a span under the current span (or trace) and make it current."""
    trace = _current_trace.get()
    if trace is None:
        return None

    parent = _current_span.get() or trace
    span = parent.span(name=name, input=input, metadata=metadata)
    return SpanHandle(span=span, token=_current_span.set(span))


def end_span(handle: Optional[SpanHandle], *, output: Optional[Any] = None, error: Optional[str] = None) -> None:
    if handle is None:
        return
    if error:
        handle.span.update(level="ERROR", status_message=error)
    if output is not None:
        handle.span.update(output=output)
    handle.span.end()
    try:
        _current_span.reset(handle.token)
    except ValueError:
        # Ended from a different context than it was started in.
        _current_span.set(None)


def end_trace(trace: Optional[Any], *, output: Optional[Any] = None, error: Optional[str] = None) -> None:
    if trace is None:
        return
    if error:
        trace.update(level="ERROR", status_message=error)
    if output is not None:
        trace.update(output=output)

    try:
        client = get_langfuse()
        if client is not None:
            client.flush()
    except Exception:
        logger.exception("Failed to flush Langfuse client")
    _current_trace.set(None)
    _current_span.set(None)


def traced_tool(
    name: Optional[str] = None,
    *,
    capture_input: bool = True,
    capture_output: bool = True,
) -> Callable[[Callable[..., _T]], Callable[..., _T]]:
    """Decorator recording each call of a tool as a span.

    Usage:
        @traced_tool("web.search")
        def search_web(...):
            ...
    """

    def deco(fn: Callable[..., _T]) -> Callable[..., _T]:
        tool_name = name or fn.__name__

        @functools.wraps(fn)
        def wrapped(*args: Any, **kwargs: Any) -> _T:
            handle = start_span(
                name=f"tool:{tool_name}",
                input={"args": args, "kwargs": kwargs} if capture_input else None,
                metadata={"kind": "tool", "tool_name": tool_name},
            )
            try:
                out = fn(*args, **kwargs)
            except Exception as e:
                end_span(handle, error=str(e))
                raise
            end_span(handle, output=out if capture_output else None)
            return out

        return cast(Callable[..., _T], wrapped)

    return deco
