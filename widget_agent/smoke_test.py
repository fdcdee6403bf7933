"""Tiny local smoke test for the FastAPI app.

Runs without starting Uvicorn: it imports the app and calls endpoints via
FastAPI's TestClient. The weather request goes out to the real search backend
(and the LLM, when configured), so it needs network access.

Usage:
  /path/to/.venv/bin/python widget_agent/smoke_test.py
"""

import json
import os
import sys

from fastapi.testclient import TestClient


# Allow running as `python widget_agent/smoke_test.py` from the repo root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from widget_agent.main import app  # noqa: E402


def _events(body: str) -> list:
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


def main() -> None:
    client = TestClient(app)

    r = client.get("/")
    assert r.status_code == 200, r.text

    r = client.get("/stream", params={"message": "hello"})
    assert r.status_code == 200, r.text
    events = _events(r.text)
    assert any("general_agent" in e for e in events), r.text

    # Weather always yields a carousel: live, parsed or synthetic readings.
    r = client.get("/stream", params={"message": "What's the weather in Chennai?"})
    assert r.status_code == 200, r.text
    update = next(e["weather_agent"] for e in _events(r.text) if "weather_agent" in e)
    records = update["result"]["records"]
    assert records and records[0]["city"] == update["result"]["search_city"], update
    print(f"weather for {[rec['city'] for rec in records]} ({[rec['source'] for rec in records]})")

    print("smoke_test.py: PASS")


if __name__ == "__main__":
    main()
