import pytest

from widget_agent.tools import langfuse_tracing as tracing


class _Observation:
    def __init__(self, name, parent=None):
        self.name = name
        self.parent = parent
        self.children = []
        self.updates = []
        self.ended = False

    def span(self, name, input=None, metadata=None):
        child = _Observation(name, parent=self)
        self.children.append(child)
        return child

    def update(self, **kwargs):
        self.updates.append(kwargs)

    def end(self):
        self.ended = True


class _Client:
    def __init__(self):
        self.traces = []
        self.flushed = 0

    def trace(self, name, input=None, metadata=None):
        trace = _Observation(name)
        self.traces.append(trace)
        return trace

    def flush(self):
        self.flushed += 1


@pytest.fixture
def client(monkeypatch):
    fake = _Client()
    monkeypatch.setattr(tracing, "_langfuse_client", fake)
    yield fake
    tracing._current_trace.set(None)
    tracing._current_span.set(None)


def test_everything_is_a_no_op_without_langfuse():
    assert tracing.start_trace(name="/stream") is None
    assert tracing.start_span(name="agent:classify") is None
    tracing.end_span(None, output={"ignored": True})


def test_nested_spans_restore_their_parent(client):
    trace = tracing.start_trace(name="/stream", input={"message": "hi"})

    outer = tracing.start_span(name="agent:weather_agent")
    inner = tracing.start_span(name="pipeline:aggregate")
    tracing.end_span(inner, output={"sources": ["synthetic"]})
    sibling = tracing.start_span(name="pipeline:resolve_location")
    tracing.end_span(sibling)
    tracing.end_span(outer)
    tracing.end_trace(trace, output={"nodes": ["classify"]})

    assert [c.name for c in trace.children] == ["agent:weather_agent"]
    assert [c.name for c in outer.span.children] == ["pipeline:aggregate", "pipeline:resolve_location"]
    assert inner.span.updates == [{"output": {"sources": ["synthetic"]}}]
    assert outer.span.ended and inner.span.ended
    assert client.flushed == 1


def test_traced_tool_records_errors(client):
    @tracing.traced_tool("web.search")
    def flaky(query):
        raise RuntimeError("rate limited")

    trace = tracing.start_trace(name="/stream")
    with pytest.raises(RuntimeError):
        flaky("chennai weather")

    span = trace.children[0]
    assert span.name == "tool:web.search"
    assert span.updates == [{"level": "ERROR", "status_message": "rate limited"}]
    assert span.ended
    assert flaky.__name__ == "flaky"
