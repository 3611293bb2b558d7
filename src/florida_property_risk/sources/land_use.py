import logging
from typing import Optional

from ..arcgis import build_point_query
from ..cache import cache_key
from ..coords import Coordinate
from ..errors import RemoteError
from ..models import LandUseResult
from ..normalize import (
    FDOR_SOURCE,
    LAND_USE_OUT_FIELDS,
    compact_parcel_id,
    normalize_land_use,
)
from ..registry import Endpoint, ZoningRegistry
from .base import CachedSource, error_kind_of

logger = logging.getLogger("fpr.land_use")

FDOR_CADASTRAL_URL = (
    "https://services9.arcgis.com/Gh9awoU677aKree0/arcgis/rest/services/"
    "Florida_Statewide_Cadastral/FeatureServer/0/query"
)


class LandUseSource(CachedSource):
    def __init__(self, client, cache, settings, registry: ZoningRegistry):
        super().__init__(client, cache, settings)
        self.registry = registry
        self.endpoint = registry.land_use or Endpoint(
            url=FDOR_CADASTRAL_URL, label="FDOR LandUse"
        )

    async def lookup(self, coord: Coordinate, parcel_id: Optional[str] = None) -> LandUseResult:
        key = cache_key("land_use", coord, parcel=compact_parcel_id(parcel_id) or None)
        cached = await self._cached(key, LandUseResult)
        if cached is not None:
            return cached
        # Geometry comes back so parcel acreage can be measured.
        params = build_point_query(coord, LAND_USE_OUT_FIELDS, return_geometry=True)
        try:
            payload = await self.client.query(
                self.endpoint.url,
                params,
                timeout_s=self.endpoint.timeout_s or self.settings.request_timeout_s,
                retries=self.endpoint.retries,
                label=self.endpoint.label,
            )
        except RemoteError as exc:
            logger.warning("land use lookup failed at %s: %s", coord.key(), exc)
            return LandUseResult.failure(FDOR_SOURCE, str(exc), error_kind_of(exc))
        result = normalize_land_use(
            payload, parcel_id=parcel_id, dor_overrides=self.registry.dor_use_codes
        )
        if result.parcel_mismatch:
            logger.info(
                "parcel mismatch at %s: requested %s, found %s",
                coord.key(),
                parcel_id,
                result.parcel_id,
            )
        await self._remember(key, result)
        return result
