"""In-process stand-ins for the remote feature services used by the tests."""

import httpx

from florida_property_risk.analyzer import PropertyAnalyzer
from florida_property_risk.cache import ResultCache, TTLCache
from florida_property_risk.config import DEFAULT_REGISTRY_PATH, Settings
from florida_property_risk.registry import ZoningRegistry
from florida_property_risk.usage import UsageCounter

FEMA_HOST = "hazards.fema.gov"
NWI_HOST = "services.arcgis.com/P3ePLMYs2RVChkJx"
FDOR_HOST = "Florida_Statewide_Cadastral"
PUTNAM_HOST = "Planning_ReferenceMap/FeatureServer"
HIGHLANDS_HOST = "gis.highlandsfl.gov"


def feature(geometry=None, **attrs):
    out = {"attributes": attrs}
    if geometry is not None:
        out["geometry"] = geometry
    return out


def collection(*features):
    return {"features": list(features)}


EMPTY = collection()


class FakeArcGIS:
    """Routes requests by substring of ``host + path`` to canned answers.

    An answer is a payload dict, an int status code, an exception instance,
    or a callable taking the request and returning one of those.
    """

    def __init__(self):
        self.routes = []
        self.calls = []

    def add(self, fragment, answer):
        self.routes.append((fragment, answer))
        return self

    def calls_to(self, fragment):
        return [r for r in self.calls if fragment in f"{r.url.host}{r.url.path}"]

    def _handle(self, request):
        self.calls.append(request)
        target = f"{request.url.host}{request.url.path}"
        for fragment, answer in self.routes:
            if fragment not in target:
                continue
            if callable(answer):
                answer = answer(request)
            if isinstance(answer, BaseException):
                raise answer
            if isinstance(answer, httpx.Response):
                return answer
            if isinstance(answer, int):
                return httpx.Response(answer, json={})
            return httpx.Response(200, json=answer)
        return httpx.Response(404, json={})

    @property
    def transport(self):
        return httpx.MockTransport(self._handle)


class Sleeps(list):
    async def __call__(self, delay):
        self.append(delay)


def fake_settings(**overrides):
    base = Settings(retries=0, backoff_step_s=1.0, cache_enabled=True)
    return base.with_overrides(**overrides)


def make_analyzer(
    arcgis, registry=None, cache=None, usage=None, sleep=None, now=None, **overrides
):
    settings = fake_settings(**overrides)
    if registry is None:
        registry = ZoningRegistry.load(DEFAULT_REGISTRY_PATH)
    if cache is None:
        cache = ResultCache(TTLCache(settings.cache_ttl_s, settings.cache_max_entries))
    return PropertyAnalyzer(
        settings=settings,
        registry=registry,
        cache=cache,
        usage=UsageCounter() if usage is None else usage,
        transport=arcgis.transport,
        sleep=Sleeps() if sleep is None else sleep,
        now=now,
    )
