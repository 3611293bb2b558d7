import asyncio

import httpx
import pytest

from fakes import Sleeps, collection, fake_settings, feature
from florida_property_risk.arcgis import build_point_query
from florida_property_risk.config import Settings
from florida_property_risk.coords import Coordinate
from florida_property_risk.errors import RemoteError, UpstreamDataError
from florida_property_risk.http_client import (
    RemoteQueryClient,
    compute_backoff_delays,
    embedded_error_message,
)
from florida_property_risk.usage import UsageCounter

URL = "https://hazards.fema.gov/arcgis/rest/services/public/NFHL/MapServer/28/query"


def _client(arcgis, sleeps, **overrides):
    return RemoteQueryClient(
        fake_settings(**overrides), transport=arcgis.transport, sleep=sleeps
    )


def test_backoff_delays_are_linear():
    assert compute_backoff_delays(3, 1.0) == [1.0, 2.0, 3.0]
    assert compute_backoff_delays(0, 1.0) == []


def test_retries_non_2xx_with_linear_backoff_then_raises(arcgis, sleeps):
    arcgis.add("hazards.fema.gov", 503)
    client = _client(arcgis, sleeps, retries=2)

    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(client.query(URL, {"f": "json"}, label="FEMA NFHL"))

    assert len(arcgis.calls) == 3
    assert sleeps == [1.0, 2.0]
    assert "FEMA NFHL" in str(excinfo.value)
    assert "503" in str(excinfo.value)
    assert not isinstance(excinfo.value, UpstreamDataError)


def test_transport_error_is_retried_and_recovers(arcgis, sleeps):
    attempts = []

    def flaky(request):
        attempts.append(request)
        if len(attempts) == 1:
            return httpx.ConnectError("connection refused", request=request)
        return collection(feature(FLD_ZONE="X"))

    arcgis.add("hazards.fema.gov", flaky)
    client = _client(arcgis, sleeps, retries=1)

    payload = asyncio.run(client.query(URL, {"f": "json"}))

    assert payload["features"][0]["attributes"]["FLD_ZONE"] == "X"
    assert len(attempts) == 2
    assert sleeps == [1.0]


def test_embedded_error_is_not_retried(arcgis, sleeps):
    arcgis.add(
        "hazards.fema.gov",
        {"error": {"code": 400, "message": "Invalid query", "details": ["bad field"]}},
    )
    client = _client(arcgis, sleeps, retries=3)

    with pytest.raises(UpstreamDataError) as excinfo:
        asyncio.run(client.query(URL, {"f": "json"}, label="FEMA NFHL"))

    assert len(arcgis.calls) == 1
    assert sleeps == []
    assert "Invalid query" in str(excinfo.value)
    assert excinfo.value.kind == "upstream"


def test_null_error_key_is_not_an_error(arcgis, sleeps):
    arcgis.add(
        "hazards.fema.gov",
        {"error": None, "features": [{"attributes": {"FLD_ZONE": "X"}}]},
    )
    client = _client(arcgis, sleeps)

    payload = asyncio.run(client.query(URL, {"f": "json"}))

    assert payload["features"][0]["attributes"]["FLD_ZONE"] == "X"
    assert embedded_error_message({"error": ""}) is None
    assert embedded_error_message({"error": "boom"}) == "boom"


def test_invalid_json_counts_as_failure(arcgis, sleeps):
    arcgis.add(
        "hazards.fema.gov", lambda request: httpx.Response(200, text="<html>oops</html>")
    )
    client = _client(arcgis, sleeps, retries=0)

    with pytest.raises(RemoteError):
        asyncio.run(client.query(URL, {}))


def test_point_geometry_is_sent_as_lng_lat(arcgis, sleeps):
    arcgis.add("hazards.fema.gov", collection())
    client = _client(arcgis, sleeps)
    params = build_point_query(Coordinate(27.3318, -81.3266), ["FLD_ZONE"])

    asyncio.run(client.query(URL, params))

    sent = arcgis.calls[0].url.params
    assert sent["geometry"] == "-81.3266,27.3318"
    assert sent["geometryType"] == "esriGeometryPoint"
    assert sent["outFields"] == "FLD_ZONE"
    assert sent["f"] == "json"


def test_relaxed_tls_is_exact_host_only():
    client = RemoteQueryClient(Settings())
    assert client.verify_tls("https://gis.highlandsfl.gov/server/rest/services/x") is False
    assert client.verify_tls("https://mgrcmaps.org/arcgis/rest") is False
    assert client.verify_tls("https://hazards.fema.gov/arcgis/rest") is True
    assert client.verify_tls("https://gis.highlandsfl.gov.example.com/x") is True
    assert client.verify_tls("https://sub.gis.highlandsfl.gov/x") is True


def test_wildcard_tls_hosts_are_ignored(monkeypatch):
    monkeypatch.setenv("FPR_RELAXED_TLS_HOSTS", "*, mgrcmaps.org, *.example.com")
    settings = Settings.from_env()
    assert settings.relaxed_tls_hosts == frozenset({"mgrcmaps.org"})


def test_every_attempt_is_counted_as_usage(arcgis):
    arcgis.add("hazards.fema.gov", 500)
    usage = UsageCounter()
    client = RemoteQueryClient(
        fake_settings(retries=1), transport=arcgis.transport, sleep=Sleeps(), usage=usage
    )

    with pytest.raises(RemoteError):
        asyncio.run(client.query(URL, {}, label="FEMA NFHL"))

    assert usage.snapshot()["byLabel"] == {"FEMA NFHL": 2}
