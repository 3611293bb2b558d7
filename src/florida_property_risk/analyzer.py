import asyncio
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Awaitable, Callable, Optional

from .cache import ResultCache, build_cache
from .config import Settings, get_settings
from .coords import Coordinate, make_coordinate, require_county
from .county_links import appraiser_link, county_display_name
from .http_client import RemoteQueryClient
from .models import (
    OVERALL_LABELS,
    PROXIMITY_LABELS,
    ErrorKind,
    FloodResult,
    LandUseResult,
    OverallStatus,
    PropertyReport,
    Proximity,
    SourceResult,
    SourceStatus,
    WetlandsReport,
    ZoningResult,
)
from .normalize import FDOR_SOURCE, FEMA_SOURCE, NWI_SOURCE
from .registry import ZoningRegistry
from .sources import FloodSource, LandUseSource, WetlandsSource, ZoningRouter
from .usage import UsageCounter

logger = logging.getLogger("fpr.analyze")


def derive_overall_status(fema: FloodResult, wetlands: WetlandsReport) -> OverallStatus:
    """Priority cascade; the first matching rule wins.

    Flood rejection outranks every wetland outcome, and a wetlands source
    error is reported as incomplete rather than as a clean result.
    """
    if fema.found and fema.risk == "high":
        return OverallStatus.REJECT
    if wetlands.status is SourceStatus.ERROR:
        return OverallStatus.INCOMPLETE
    if wetlands.found:
        high = wetlands.highest_risk is not None and wetlands.highest_risk.risk == "high"
        if high and wetlands.proximity is Proximity.ON_PROPERTY:
            return OverallStatus.HIGH_RISK
        if high:
            return OverallStatus.EVALUATE_WEIGHTED
        return OverallStatus.EVALUATE
    return OverallStatus.APPROVED


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PropertyAnalyzer:
    """Builds per-coordinate property reports from the four sources.

    Collaborators are constructed from settings unless given explicitly; tests
    pass a transport, a sleep function and a clock.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ZoningRegistry] = None,
        cache: Optional[ResultCache] = None,
        usage: Optional[UsageCounter] = None,
        client: Optional[RemoteQueryClient] = None,
        transport=None,
        sleep=None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        if registry is None:
            registry = ZoningRegistry.load(self.settings.registry_path)
        self.registry = registry
        self.cache = cache if cache is not None else build_cache(self.settings)
        if usage is None:
            usage = UsageCounter(
                self.settings.usage_path, soft_limit=self.settings.usage_soft_limit
            )
        self.usage = usage
        if client is None:
            client = RemoteQueryClient(
                self.settings, transport=transport, sleep=sleep, usage=self.usage
            )
        self.client = client
        self._now = now or _utc_now
        self.flood = FloodSource(self.client, self.cache, self.settings)
        self.wetlands = WetlandsSource(self.client, self.cache, self.settings)
        self.land_use = LandUseSource(self.client, self.cache, self.settings, self.registry)
        self.zoning = ZoningRouter(self.client, self.cache, self.settings, self.registry)

    async def _shielded(
        self,
        name: str,
        call: Awaitable[SourceResult],
        fallback: Callable[[str], SourceResult],
    ) -> SourceResult:
        try:
            return await call
        except Exception as exc:
            logger.exception("%s source raised unexpectedly", name)
            return fallback(f"{type(exc).__name__}: {exc}")

    async def get_flood_zone(self, lat: Any, lng: Any) -> FloodResult:
        coord = make_coordinate(lat, lng)
        return await self._flood(coord)

    async def get_wetlands(self, lat: Any, lng: Any) -> WetlandsReport:
        coord = make_coordinate(lat, lng)
        return await self._wetlands(coord)

    async def get_land_use(
        self, lat: Any, lng: Any, parcel_id: Optional[str] = None
    ) -> LandUseResult:
        coord = make_coordinate(lat, lng)
        return await self._land_use(coord, parcel_id)

    async def get_zoning(self, county: Any, lat: Any, lng: Any) -> ZoningResult:
        coord = make_coordinate(lat, lng)
        return await self._zoning(require_county(county), coord)

    def _flood(self, coord: Coordinate):
        return self._shielded(
            "flood",
            self.flood.lookup(coord),
            lambda msg: FloodResult.failure(FEMA_SOURCE, msg, ErrorKind.INTERNAL),
        )

    def _wetlands(self, coord: Coordinate):
        return self._shielded(
            "wetlands",
            self.wetlands.search_progressive(coord),
            lambda msg: WetlandsReport.failure(
                NWI_SOURCE,
                msg,
                ErrorKind.INTERNAL,
                proximity=Proximity.UNKNOWN,
                proximity_label=PROXIMITY_LABELS[Proximity.UNKNOWN],
            ),
        )

    def _land_use(self, coord: Coordinate, parcel_id: Optional[str]):
        return self._shielded(
            "land_use",
            self.land_use.lookup(coord, parcel_id),
            lambda msg: LandUseResult.failure(FDOR_SOURCE, msg, ErrorKind.INTERNAL),
        )

    def _zoning(self, county: str, coord: Coordinate):
        return self._shielded(
            "zoning",
            self.zoning.get_zoning(county, coord),
            lambda msg: ZoningResult.failure("Zoning", msg, ErrorKind.INTERNAL),
        )

    async def analyze(
        self,
        lat: Any,
        lng: Any,
        county: Any,
        parcel_id: Optional[str] = None,
    ) -> PropertyReport:
        coord = make_coordinate(lat, lng)
        county_name = require_county(county)
        parcel_id = (parcel_id or "").strip() or None
        logger.info(
            "analyzing %s County at %s parcel=%s", county_name, coord.key(), parcel_id or "-"
        )
        fema, wetlands, land_use, zoning = await asyncio.gather(
            self._flood(coord),
            self._wetlands(coord),
            self._land_use(coord, parcel_id),
            self._zoning(county_name, coord),
        )
        status = derive_overall_status(fema, wetlands)
        logger.info("overall status for %s: %s", coord.key(), status.value)
        return PropertyReport(
            county=county_display_name(county_name) or county_name,
            parcel_id=parcel_id,
            coordinates=coord.to_dict(),
            fema=fema,
            wetlands=wetlands,
            land_use=land_use,
            zoning=zoning,
            overall_status=status,
            overall_label=OVERALL_LABELS[status],
            appraiser_link=appraiser_link(county_name),
            timestamp=self._now().isoformat(),
        )

    def close(self) -> None:
        self.cache.close()
        self.usage.close()


@lru_cache(maxsize=1)
def get_analyzer() -> PropertyAnalyzer:
    return PropertyAnalyzer()


async def analyze_property(
    lat: Any, lng: Any, county: Any, parcel_id: Optional[str] = None
) -> PropertyReport:
    return await get_analyzer().analyze(lat, lng, county, parcel_id)


async def get_flood_zone(lat: Any, lng: Any) -> FloodResult:
    return await get_analyzer().get_flood_zone(lat, lng)


async def get_wetlands(lat: Any, lng: Any) -> WetlandsReport:
    return await get_analyzer().get_wetlands(lat, lng)


async def get_land_use(lat: Any, lng: Any, parcel_id: Optional[str] = None) -> LandUseResult:
    return await get_analyzer().get_land_use(lat, lng, parcel_id)


async def get_zoning(county: Any, lat: Any, lng: Any) -> ZoningResult:
    return await get_analyzer().get_zoning(county, lat, lng)
