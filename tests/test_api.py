import pytest
from fastapi.testclient import TestClient

from fakes import EMPTY, FDOR_HOST, FEMA_HOST, NWI_HOST, collection, feature, make_analyzer
from florida_property_risk.api.app import create_app
from florida_property_risk.cache import DiskTTLCache, ResultCache, TTLCache
from florida_property_risk.usage import UsageCounter

PUTNAM = "Planning_ReferenceMap/FeatureServer"
QUERY = {"lat": "29.694825", "lng": "-81.84846", "county": "Putnam"}


@pytest.fixture
def routed(arcgis):
    arcgis.add(FEMA_HOST, collection(feature(FLD_ZONE="X")))
    arcgis.add(NWI_HOST, EMPTY)
    arcgis.add(FDOR_HOST, collection(feature(PARCEL_ID="240924407504100300", DOR_UC="0")))
    arcgis.add(f"{PUTNAM}/2/query", collection(feature(ZONECLASS="R-2")))
    arcgis.add(PUTNAM, EMPTY)
    return arcgis


def _client(arcgis, **overrides):
    return TestClient(create_app(make_analyzer(arcgis, **overrides)))


def test_health(arcgis):
    resp = _client(arcgis).get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_counties_lists_all_67_with_zoning_flag(arcgis):
    body = _client(arcgis).get("/counties").json()
    counties = {c["name"]: c for c in body["counties"]}
    assert len(counties) == 67
    assert counties["Putnam"]["zoningConfigured"] is True
    assert counties["Miami-Dade"]["zoningConfigured"] is False
    assert counties["St. Johns"]["slug"] == "st_johns"


def test_analyze_returns_camel_case_report(routed):
    resp = _client(routed).get("/api/analyze", params=QUERY)
    assert resp.status_code == 200
    data = resp.json()
    assert data["overallStatus"] == "APPROVED"
    assert data["landUse"]["code"] == "000"
    assert data["zoning"]["code"] == "R-2"


def test_bad_coordinates_are_400(routed):
    resp = _client(routed).get("/api/analyze", params=dict(QUERY, lat="north"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "lat must be a number"
    assert routed.calls == []


def test_missing_county_is_400(routed):
    resp = _client(routed).get("/api/zoning", params={"lat": "29.69", "lng": "-81.84"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "county is required"


def test_single_source_routes(routed):
    client = _client(routed)
    assert client.get("/api/flood", params=QUERY).json()["zone"] == "X"
    assert client.get("/api/wetlands", params=QUERY).json()["proximity"] == "NONE"
    land = client.get("/api/land-use", params=dict(QUERY, parcel_id="1")).json()
    assert land["parcelMismatch"] is True
    assert client.get("/api/zoning", params=QUERY).json()["basis"] == "local"


def test_admin_token_is_enforced_when_configured(routed):
    client = _client(routed, admin_token="s3cret")

    missing = client.get("/api/flood", params=QUERY)
    assert missing.status_code == 403
    assert missing.json()["detail"] == "admin token required"

    wrong = client.get("/api/flood", params=QUERY, headers={"X-Admin-Token": "nope"})
    assert wrong.status_code == 403
    assert wrong.json()["detail"] == "invalid admin token"

    ok = client.get("/api/flood", params=QUERY, headers={"X-Admin-Token": "s3cret"})
    assert ok.status_code == 200

    bearer = client.get(
        "/api/flood", params=QUERY, headers={"Authorization": "Bearer s3cret"}
    )
    assert bearer.status_code == 200

    # Health stays open.
    assert client.get("/health").status_code == 200


def test_usage_reports_calls_and_cache(routed):
    client = _client(routed)
    client.get("/api/flood", params=QUERY)
    client.get("/api/flood", params=QUERY)

    body = client.get("/api/usage").json()
    assert body["usage"]["byLabel"] == {"FEMA NFHL": 1}
    assert body["cache"]["enabled"] is True
    assert body["cache"]["memory"]["hits"] == 1


def test_disk_cache_and_usage_store_work_when_served(routed, tmp_path):
    cache_path = str(tmp_path / "cache.sqlite")
    usage_path = str(tmp_path / "usage.sqlite")
    disk = DiskTTLCache(cache_path)
    usage = UsageCounter(usage_path)
    analyzer = make_analyzer(
        routed, cache=ResultCache(TTLCache(), disk), usage=usage
    )
    client = TestClient(create_app(analyzer))

    assert client.get("/api/flood", params=QUERY).status_code == 200
    body = client.get("/api/usage").json()

    assert disk.count() == 1
    assert body["cache"]["disk"] == {"size": 1}
    assert body["usage"]["byLabel"] == {"FEMA NFHL": 1}
    analyzer.close()

    # Both stores hit sqlite, not an in-memory fallback.
    reopened = DiskTTLCache(cache_path)
    assert reopened.count() == 1
    reopened.close()
    stored = UsageCounter(usage_path)
    assert stored.snapshot()["byLabel"] == {"FEMA NFHL": 1}
    stored.close()
