import asyncio

from fakes import EMPTY, NWI_HOST, collection, feature, make_analyzer
from florida_property_risk.models import ErrorKind, Proximity, SourceStatus

LAT, LNG = 27.3318, -81.3266


def _by_radius(answers):
    """Answer NWI queries by the ``distance`` parameter."""

    def handler(request):
        return answers[int(request.url.params["distance"])]

    return handler


FORESTED = collection(feature(ATTRIBUTE="PFO1Fd", Shape__Area=8093.71))
POND = collection(feature(ATTRIBUTE="PUBHx", Shape__Area=2023.43))


def _search(analyzer):
    return asyncio.run(analyzer.get_wetlands(LAT, LNG))


def test_hit_at_first_radius_is_on_property(arcgis):
    arcgis.add(NWI_HOST, _by_radius({25: FORESTED}))
    report = _search(make_analyzer(arcgis))

    assert report.found is True
    assert report.proximity is Proximity.ON_PROPERTY
    assert report.buffer_meters_used == 25
    assert report.highest_risk.code == "PFO1Fd"
    assert report.count == 1
    assert report.total_acres == 2.0
    assert len(arcgis.calls_to(NWI_HOST)) == 1


def test_hit_at_middle_radius_is_nearby(arcgis):
    arcgis.add(NWI_HOST, _by_radius({25: EMPTY, 100: POND}))
    report = _search(make_analyzer(arcgis))

    assert report.proximity is Proximity.NEARBY
    assert report.buffer_meters_used == 100
    assert report.highest_risk.risk == "low-medium"
    assert any("100 m" in d for d in report.disclaimers)
    assert len(arcgis.calls_to(NWI_HOST)) == 2


def test_hit_at_last_radius_is_in_area(arcgis):
    arcgis.add(NWI_HOST, _by_radius({25: EMPTY, 100: EMPTY, 400: FORESTED}))
    report = _search(make_analyzer(arcgis))

    assert report.proximity is Proximity.IN_AREA
    assert report.buffer_meters_used == 400
    assert len(arcgis.calls_to(NWI_HOST)) == 3


def test_nothing_found_is_none_with_largest_radius(arcgis):
    arcgis.add(NWI_HOST, EMPTY)
    report = _search(make_analyzer(arcgis))

    assert report.found is False
    assert report.status is SourceStatus.NO_DATA
    assert report.proximity is Proximity.NONE
    assert report.buffer_meters_used == 400
    assert report.error is None
    assert len(arcgis.calls_to(NWI_HOST)) == 3


def test_error_at_second_radius_stops_the_search(arcgis):
    arcgis.add(NWI_HOST, _by_radius({25: EMPTY, 100: 502, 400: FORESTED}))
    report = _search(make_analyzer(arcgis))

    assert report.status is SourceStatus.ERROR
    assert report.found is False
    assert report.proximity is Proximity.UNKNOWN
    assert report.buffer_meters_used == 100
    assert report.error_kind is ErrorKind.TRANSPORT
    assert "502" in report.error
    # The 400 m radius is never tried.
    assert sorted(int(r.url.params["distance"]) for r in arcgis.calls_to(NWI_HOST)) == [
        25,
        100,
    ]


def test_embedded_service_error_is_upstream(arcgis):
    arcgis.add(NWI_HOST, {"error": {"code": 500, "message": "Unable to complete operation."}})
    report = _search(make_analyzer(arcgis, retries=2))

    assert report.status is SourceStatus.ERROR
    assert report.error_kind is ErrorKind.UPSTREAM
    assert len(arcgis.calls_to(NWI_HOST)) == 1


def test_errors_are_not_cached_but_hits_are(arcgis):
    answers = {"fail": True}

    def handler(request):
        if answers["fail"]:
            return 503
        return FORESTED

    arcgis.add(NWI_HOST, handler)
    analyzer = make_analyzer(arcgis)

    assert _search(analyzer).status is SourceStatus.ERROR
    answers["fail"] = False
    assert _search(analyzer).proximity is Proximity.ON_PROPERTY
    calls = len(arcgis.calls)
    again = _search(analyzer)
    assert again.proximity is Proximity.ON_PROPERTY
    assert len(arcgis.calls) == calls


def test_custom_radii_change_the_ladder(arcgis):
    arcgis.add(NWI_HOST, EMPTY)
    report = _search(make_analyzer(arcgis, wetland_radii_m=(50, 200)))
    assert report.buffer_meters_used == 200
    assert [int(r.url.params["distance"]) for r in arcgis.calls] == [50, 200]
