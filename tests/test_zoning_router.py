import asyncio

from fakes import EMPTY, HIGHLANDS_HOST, Sleeps, collection, feature, make_analyzer
from florida_property_risk.models import SourceStatus, ZoningBasis
from florida_property_risk.registry import ZoningRegistry

PUTNAM = "Planning_ReferenceMap/FeatureServer"
PUTNAM_COUNTY_ZONING = f"{PUTNAM}/2/query"
PUTNAM_CITY_ZONING = f"{PUTNAM}/3/query"
PUTNAM_COUNTY_FLU = f"{PUTNAM}/4/query"
PUTNAM_CITY_FLU = f"{PUTNAM}/5/query"
STATEWIDE_FLU = "statewide-flu.example.org"

LAT, LNG = 29.694825, -81.84846


def _zoning(analyzer, county="Putnam"):
    return asyncio.run(analyzer.get_zoning(county, LAT, LNG))


def _putnam(arcgis, county_zoning=EMPTY, city_zoning=EMPTY, county_flu=EMPTY, city_flu=EMPTY):
    arcgis.add(PUTNAM_COUNTY_ZONING, county_zoning)
    arcgis.add(PUTNAM_CITY_ZONING, city_zoning)
    arcgis.add(PUTNAM_COUNTY_FLU, county_flu)
    arcgis.add(PUTNAM_CITY_FLU, city_flu)


def _registry(counties, future_land_use=None):
    statewide = {}
    if future_land_use is not None:
        statewide["future_land_use"] = future_land_use
    return ZoningRegistry.from_dict({"statewide": statewide, "counties": counties})


STATEWIDE_ENDPOINT = {
    "url": f"https://{STATEWIDE_FLU}/FeatureServer/0",
    "label": "Statewide FLU",
    "field_mapping": {"flu_code": ["FLU_CODE"], "flu_desc": ["FLU_DESC"]},
    "manual_link": "https://floridajobs.org/community-planning",
}


def test_municipal_layer_wins_over_county_layer(arcgis):
    _putnam(
        arcgis,
        county_zoning=collection(feature(ZONECLASS="AG", ZONEDESC="Agriculture")),
        city_zoning=collection(feature(ZONECLASS="C-2", ZONEDESC="General Commercial")),
    )
    result = _zoning(make_analyzer(arcgis))

    assert result.code == "C-2"
    assert result.description == "General Commercial"
    assert result.is_municipal is True
    assert result.jurisdiction == "Municipal (Putnam County)"
    assert result.basis is ZoningBasis.LOCAL


def test_county_zoning_with_future_land_use(arcgis):
    _putnam(
        arcgis,
        county_zoning=collection(
            feature(ZONECLASS="R-2", ZONEDESC="Residential, Single Family")
        ),
        county_flu=collection(
            feature(LANDUSECODE="RR", LANDUSEDESC="Rural Residential")
        ),
    )
    result = _zoning(make_analyzer(arcgis))

    assert result.found is True
    assert result.code == "R-2"
    assert result.future_land_use == "RR"
    assert result.future_land_use_desc == "Rural Residential"
    assert result.jurisdiction == "Unincorporated Putnam County"
    assert result.is_municipal is False
    assert result.partial is False
    assert result.manual_link == "https://www.putnam-fl.com/planning-zoning/"
    assert "Planning Department" in result.note
    assert len(arcgis.calls) == 4


def test_one_failed_layer_gives_partial_result_that_is_not_cached(arcgis):
    _putnam(
        arcgis,
        county_zoning=collection(feature(ZONECLASS="R-2")),
        county_flu=503,
    )
    analyzer = make_analyzer(arcgis)

    first = _zoning(analyzer)
    assert first.found is True
    assert first.code == "R-2"
    assert first.future_land_use is None
    assert first.partial is True
    assert "unavailable" in first.note

    _zoning(analyzer)
    assert len(arcgis.calls) == 8


def test_complete_result_is_cached(arcgis):
    _putnam(arcgis, county_zoning=collection(feature(ZONECLASS="R-2")))
    analyzer = make_analyzer(arcgis)
    _zoning(analyzer)
    _zoning(analyzer, county="putnam county")
    assert len(arcgis.calls) == 4


def test_highlands_description_comes_from_code_table(arcgis):
    arcgis.add(HIGHLANDS_HOST, collection(feature(ZON="R-2", FLUM="LDR")))
    result = _zoning(make_analyzer(arcgis), county="Highlands")

    assert result.code == "R-2"
    assert result.description == "Single Family Residential (Medium Density)"
    assert result.future_land_use == "LDR"
    assert result.jurisdiction == "Highlands County"


def test_highlands_uses_its_own_retry_budget(arcgis):
    arcgis.add(HIGHLANDS_HOST, 500)
    sleeps = Sleeps()
    result = _zoning(make_analyzer(arcgis, sleep=sleeps), county="Highlands")

    assert len(arcgis.calls) == 3
    assert sleeps == [1.0, 2.0]
    assert result.status is SourceStatus.ERROR
    assert "HTTP 500" in result.error
    assert result.manual_link == "https://www.highlandsfl.gov/departments/building-zoning"


def test_flu_only_county(arcgis):
    arcgis.add(
        "flu.example.gov", collection(feature(FLU="AG", FLU_NAME="Agriculture"))
    )
    registry = _registry(
        {
            "Levy": {
                "has_zoning": False,
                "manual_link": "https://levy.example.gov/planning",
                "layers": {
                    "flu": {
                        "url": "https://flu.example.gov/MapServer/1",
                        "field_mapping": {"flu_code": "FLU", "flu_desc": "FLU_NAME"},
                    }
                },
            }
        }
    )
    result = _zoning(make_analyzer(arcgis, registry=registry), county="Levy")

    assert result.basis is ZoningBasis.FLU_ONLY
    assert result.code is None
    assert result.future_land_use == "AG"
    assert result.future_land_use_desc == "Agriculture"
    assert result.partial is True
    assert "future land use only" in result.note


def test_statewide_fallback_for_county_without_zoning(arcgis):
    arcgis.add(STATEWIDE_FLU, collection(feature(FLU_CODE="AG", FLU_DESC="Agriculture")))
    registry = _registry(
        {"Glades": {"has_zoning": False, "use_statewide_flu_fallback": True}},
        future_land_use=STATEWIDE_ENDPOINT,
    )
    result = _zoning(make_analyzer(arcgis, registry=registry), county="Glades")

    assert result.basis is ZoningBasis.STATEWIDE_FLU
    assert result.future_land_use == "AG"
    assert result.code is None
    assert result.jurisdiction == "Glades County"
    assert "not authoritative" in result.note
    assert result.manual_link == "https://floridajobs.org/community-planning"


def test_failed_local_tier_falls_through_to_statewide(arcgis):
    arcgis.add(PUTNAM, 503)
    arcgis.add(STATEWIDE_FLU, collection(feature(FLU_CODE="RR")))
    default = make_analyzer(arcgis).registry
    registry = ZoningRegistry(
        {cfg.slug: cfg for cfg in default.counties()},
        future_land_use=_registry({}, STATEWIDE_ENDPOINT).future_land_use,
    )
    analyzer = make_analyzer(arcgis, registry=registry)

    result = _zoning(analyzer)

    assert result.basis is ZoningBasis.STATEWIDE_FLU
    assert result.future_land_use == "RR"
    assert result.manual_link == "https://www.putnam-fl.com/planning-zoning/"
    # Not cached, because the local tier failed.
    calls = len(arcgis.calls)
    _zoning(analyzer)
    assert len(arcgis.calls) == calls * 2


def test_unconfigured_county_without_fallback_is_a_clean_not_found(arcgis):
    result = _zoning(make_analyzer(arcgis, registry=ZoningRegistry.empty()), county="Marion")

    assert result.found is False
    assert result.status is SourceStatus.NO_DATA
    assert result.basis is ZoningBasis.NONE
    assert result.error is None
    assert "not configured" in result.note
    assert "Marion" in result.source
    assert arcgis.calls == []


def test_missing_registry_file_routes_to_not_found(arcgis, tmp_path, caplog):
    registry = ZoningRegistry.load(tmp_path / "nope.json")
    assert len(registry) == 0
    assert "not found" in caplog.text

    result = _zoning(make_analyzer(arcgis, registry=registry))
    assert result.found is False
    assert result.error is None


def test_all_local_layers_failing_without_fallback_is_an_error(arcgis):
    arcgis.add(PUTNAM, 503)
    result = _zoning(make_analyzer(arcgis))

    assert result.status is SourceStatus.ERROR
    assert result.found is False
    assert result.manual_link == "https://www.putnam-fl.com/planning-zoning/"


def test_shipped_registry_reports_disabled_statewide_fallback(arcgis):
    result = _zoning(make_analyzer(arcgis), county="Glades")

    assert result.status is SourceStatus.NO_DATA
    assert result.basis is ZoningBasis.NONE
    assert "no statewide future land use service is configured" in result.note
    assert arcgis.calls == []
