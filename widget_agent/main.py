"""
FastAPI server streaming the widget agent's LangGraph updates.

``GET /stream?message=...`` runs the graph once for the message and emits each
state update as a Server-Sent Event. Weather turns carry the aggregated
records under ``result`` and a carousel description under ``a2ui`` for the
frontend to render; other turns carry a plain acknowledgement.
``GET /turn?message=...`` runs the same graph and returns only the final
state, for clients that do not consume event streams.

A static frontend is served under ``/ui`` when a sibling ``frontend``
directory exists. Start the server with
``uvicorn widget_agent.main:app --reload`` from the project root.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterator

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from .agents import AgentState, run_turn
from .agents import _compiled_agent_graph as agent_graph
from .tools.langfuse_tracing import end_trace, start_trace

app = FastAPI(title="Widget Agent Backend")

# The log level can be set via the LOG_LEVEL environment variable (default: INFO).
_log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=_log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger("widget_agent.main")


def sse_event(update: Dict[str, Any]) -> str:
    return f"data: {json.dumps(update)}\n\n"


@app.middleware("http")
async def no_cache_ui_assets(request: Request, call_next):
    response = await call_next(request)
    # Avoid stale frontend assets during development.
    if request.url.path == "/ui" or request.url.path.startswith("/ui/"):
        response.headers["Cache-Control"] = "no-store"
    return response


@app.get("/stream")
async def stream(message: str) -> StreamingResponse:
    """Stream graph updates as Server-Sent Events for a given user message.

    Each event is one JSON object keyed by the node that produced the update,
    prefixed with ``data:`` as Server-Sent Events require. A weather turn
    emits a ``classify`` update followed by a ``weather_agent`` update; any
    other turn ends with ``general_agent``.

    Args:
        message: The user's chat message.

    Returns:
        A streaming HTTP response with ``text/event-stream`` media type.
    """
    trace = start_trace(
        name="/stream",
        input={"message": message},
        metadata={"endpoint": "/stream"},
    )
    initial_state: AgentState = {"input": message, "output": ""}
    logger.info(f"Received stream request: {message}")

    def generate_events() -> Iterator[str]:
        nodes = []
        try:
            for update in agent_graph.stream(initial_state, stream_mode="updates"):
                nodes.extend(update)
                yield sse_event(update)
            logger.info(f"Stream finished after nodes {nodes}")
            end_trace(trace, output={"nodes": nodes})
        except Exception as e:
            logger.exception(f"Stream failed after nodes {nodes}")
            end_trace(trace, error=str(e))
            raise

    return StreamingResponse(generate_events(), media_type="text/event-stream")


@app.get("/turn")
async def turn(message: str) -> JSONResponse:
    """Run one turn and return the final graph state as JSON."""
    trace = start_trace(name="/turn", input={"message": message}, metadata={"endpoint": "/turn"})
    try:
        state = await run_in_threadpool(run_turn, message)
    except Exception as e:
        end_trace(trace, error=str(e))
        raise
    end_trace(trace, output={"output": state.get("output"), "locations": state.get("locations")})
    return JSONResponse(state)


@app.get("/")
async def root() -> JSONResponse:
    """Return a brief description of the API."""
    return JSONResponse(
        {
            "message": "Widget agent backend is running. Use /stream?message=... for streaming "
            "updates or /turn?message=... for the final state. The frontend, if present, is under /ui.",
        }
    )


frontend_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "frontend")
if os.path.isdir(frontend_dir):
    app.mount("/ui", StaticFiles(directory=frontend_dir, html=True), name="ui")
