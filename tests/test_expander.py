import pytest

from conftest import FakeSearch
from widget_agent.tools.capabilities import Capabilities
from widget_agent.tools.expander import discover_nearby, expand_locations
from widget_agent.web_search import SearchError


def test_catalog_city_is_deterministic(catalog):
    search = FakeSearch()
    caps = Capabilities(search=search)

    first = expand_locations("Chennai", caps, catalog=catalog)
    second = expand_locations("Chennai", caps, catalog=catalog)

    assert first == second == ("Chennai", "Mumbai", "Bangalore", "Hyderabad", "Kolkata")
    assert search.queries == []


def test_discovery_from_search(catalog):
    search = FakeSearch({"fremont": "Nearby cities such as Oakland, Hayward and San Jose."})

    locations = expand_locations("Fremont", Capabilities(search=search), catalog=catalog)

    assert locations == ("Fremont", "Oakland", "Hayward", "San Jose")


def test_sparse_discovery_is_backfilled(catalog):
    search = FakeSearch({"fremont": "Fremont is close to Oakland."})

    locations = expand_locations("Fremont", Capabilities(search=search), catalog=catalog)

    assert locations[:2] == ("Fremont", "Oakland")
    assert locations[2:] == catalog.regional_defaults["global"][:3]


def test_failed_search_uses_regional_defaults(failing_capabilities, catalog):
    locations = expand_locations("Vienna", failing_capabilities, catalog=catalog)
    assert locations == ("Vienna", "London", "Paris", "Berlin", "Madrid")


def test_primary_is_never_repeated(no_capabilities, catalog):
    locations = expand_locations("Auckland", no_capabilities, catalog=catalog)
    assert locations == ("Auckland", "Sydney", "Melbourne", "Brisbane")


@pytest.mark.parametrize("primary", ["Chennai", "Vienna", "Atlantis", "New York"])
@pytest.mark.parametrize("max_related", [1, 2, 4])
def test_bounds_and_uniqueness(no_capabilities, catalog, primary, max_related):
    locations = expand_locations(primary, no_capabilities, catalog=catalog, max_related=max_related)

    assert locations[0] == primary
    assert 1 <= len(locations) <= 1 + max_related
    assert len({loc.lower() for loc in locations}) == len(locations)


def test_discover_nearby_swallows_search_errors():
    caps = Capabilities(search=FakeSearch(error=SearchError("rate limited")))
    assert discover_nearby("Fremont", caps) == []


def test_discover_nearby_ignores_sentence_fragments():
    text = "Cities like Oakland and Fremont Are Popular with commuters near Hayward"
    caps = Capabilities(search=FakeSearch({"fremont": text}))

    assert discover_nearby("Fremont", caps) == ["Hayward", "Oakland"]
