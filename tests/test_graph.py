from conftest import FakeCompletion, FakeSearch
from widget_agent.agents import run_turn
from widget_agent.agents import weather_agent as weather_module
from widget_agent.tools.capabilities import Capabilities
from widget_agent.tools.schemas import ExtractedEntities, IntentClassification


def test_general_message_gets_static_echo(no_capabilities, catalog):
    state = run_turn("Hello there", capabilities=no_capabilities, catalog=catalog)

    assert state["intent"] == "general"
    assert state["output"].startswith('I understand you said: "Hello there".')
    assert state["a2ui"]["render"]["type"] == "container"
    assert "result" not in state
    assert "locations" not in state


def test_weather_turn_offline(failing_capabilities, catalog):
    state = run_turn("What's the weather in Chennai?", capabilities=failing_capabilities, catalog=catalog)

    assert state["intent"] == "weather"
    assert state["locations"] == ["Chennai", "Mumbai", "Bangalore", "Hyderabad", "Kolkata"]
    result = state["result"]
    assert result["search_city"] == "Chennai"
    assert [r["id"] for r in result["records"]] == [1, 2, 3, 4, 5]
    assert {r["source"] for r in result["records"]} == {"synthetic"}
    assert "cached data due to network issues" in state["output"]

    carousel = state["a2ui"]["render"]
    assert carousel["type"] == "carousel"
    assert carousel["search_city"] == "Chennai"
    assert [card["title"] for card in carousel["children"]] == state["locations"]


def test_weather_turn_new_york(no_capabilities, catalog):
    state = run_turn("What's the weather in New York?", capabilities=no_capabilities, catalog=catalog)

    assert state["intent"] == "weather"
    assert state["locations"][0] == "New York"


def test_partial_live_data_names_estimated_cities(catalog):
    caps = Capabilities(search=FakeSearch({"chennai": "Chennai: 33°C and sunny"}))

    state = run_turn("What's the weather in Chennai?", capabilities=caps, catalog=catalog)

    assert state["result"]["records"][0]["source"] == "parser"
    assert "Live data was unavailable for Mumbai, Bangalore, Hyderabad, Kolkata" in state["output"]


def test_all_live_data(catalog):
    caps = Capabilities(search=FakeSearch({"current weather": "22°C, overcast"}))

    state = run_turn("What's the weather in Chennai?", capabilities=caps, catalog=catalog)

    assert "fetched in real-time" in state["output"]


def test_classifier_city_takes_precedence(catalog):
    complete = FakeCompletion(
        {
            IntentClassification: IntentClassification(
                intent="weather",
                confidence=0.8,
                extracted_entities=ExtractedEntities(city="Paris"),
            )
        }
    )
    caps = Capabilities(search=FakeSearch(), complete=complete)

    state = run_turn("What's the weather in Chennai?", capabilities=caps, catalog=catalog)

    assert state["extracted_city"] == "Paris"
    assert state["result"]["search_city"] == "Paris"
    assert state["locations"] == ["Paris", "Lyon", "Marseille", "Toulouse", "Nice"]


def test_pipeline_failure_serves_one_synthetic_record(monkeypatch, no_capabilities, catalog):
    def explode(*args, **kwargs):
        raise RuntimeError("expander exploded")

    monkeypatch.setattr(weather_module, "expand_locations", explode)

    state = run_turn("What's the weather in Chennai?", capabilities=no_capabilities, catalog=catalog)

    records = state["result"]["records"]
    assert len(records) == 1
    assert (records[0]["city"], records[0]["source"]) == ("Chennai", "synthetic")
