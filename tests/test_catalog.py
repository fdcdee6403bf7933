import pytest

from widget_agent.tools.catalog import CatalogError, build_catalog, load_catalog


def _tables(**overrides):
    data = {
        "nearby": {"Springfield": ["Shelbyville", "Capital City"]},
        "regions": {"midwest": ["Springfield"]},
        "regional_defaults": {"midwest": ["Chicago"], "global": ["New York", "London"]},
        "regional_hints": {"Springfield": ["simpsons"]},
        "rotation": {"business": ["New York"], "entertainment": ["Las Vegas"], "global": ["London"]},
        "countries": {"USA": ["Springfield", "Chicago"]},
    }
    data.update(overrides)
    return data


def test_packaged_catalog_lookups(catalog):
    assert catalog.is_known("Chennai")
    assert catalog.nearby_for(" chennai ") == ("Mumbai", "Bangalore", "Hyderabad", "Kolkata")
    assert catalog.region_of("Paris") == "europe"
    assert catalog.region_of("Atlantis") == "global"
    assert catalog.country_of("Chennai") == "India"
    assert catalog.country_of("Atlantis") == "Unknown"


def test_defaults_fall_back_to_global(catalog):
    assert catalog.defaults_for("nowhere") == catalog.regional_defaults["global"]


def test_build_catalog_normalises_keys():
    catalog = build_catalog(_tables())
    assert catalog.is_known("springfield")
    assert catalog.regions["midwest"] == ("springfield",)
    assert catalog.regional_hints["Springfield"] == ("simpsons",)
    assert catalog.country_of("Chicago") == "USA"


def test_catalog_tables_are_read_only(catalog):
    with pytest.raises(TypeError):
        catalog.nearby["atlantis"] = ("Nowhere",)


@pytest.mark.parametrize(
    "overrides",
    [
        {"regional_defaults": {"midwest": ["Chicago"]}},
        {"regional_defaults": {"midwest": [], "global": ["London"]}},
        {"rotation": {"business": ["New York"], "entertainment": [], "global": ["London"]}},
        {"nearby": {"Springfield": "Shelbyville"}},
        {"regions": ["midwest"]},
    ],
)
def test_build_catalog_rejects_broken_tables(overrides):
    with pytest.raises(CatalogError):
        build_catalog(_tables(**overrides))


def test_build_catalog_rejects_non_mapping_root():
    with pytest.raises(CatalogError):
        build_catalog(["not", "a", "mapping"])


def test_load_catalog_from_path(tmp_path):
    path = tmp_path / "localities.yaml"
    path.write_text(
        "regional_defaults:\n  global: [Oslo]\n"
        "rotation:\n  business: [Oslo]\n  entertainment: [Oslo]\n  global: [Oslo]\n",
        encoding="utf-8",
    )
    catalog = load_catalog(str(path))
    assert catalog.defaults_for("global") == ("Oslo",)
    assert not catalog.is_known("Oslo")


def test_load_catalog_missing_file(tmp_path):
    with pytest.raises(CatalogError):
        load_catalog(str(tmp_path / "missing.yaml"))


def test_load_catalog_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("nearby: [unclosed\n", encoding="utf-8")
    with pytest.raises(CatalogError):
        load_catalog(str(path))


def test_city_for_hint(catalog):
    assert catalog.city_for_hint(" East Coast ") == "New York"
    assert catalog.city_for_hint("coast") is None
