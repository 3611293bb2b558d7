import logging

from ..arcgis import build_point_query
from ..cache import cache_key
from ..coords import Coordinate
from ..errors import RemoteError
from ..models import FloodResult
from ..normalize import FEMA_SOURCE, normalize_flood
from .base import CachedSource, error_kind_of

logger = logging.getLogger("fpr.flood")

FEMA_NFHL_URL = (
    "https://hazards.fema.gov/arcgis/rest/services/public/NFHL/MapServer/28/query"
)
FLOOD_OUT_FIELDS = ("FLD_ZONE", "ZONE_SUBTY", "STATIC_BFE", "SFHA_TF")


class FloodSource(CachedSource):
    label = "FEMA NFHL"

    async def lookup(self, coord: Coordinate) -> FloodResult:
        key = cache_key("flood", coord)
        cached = await self._cached(key, FloodResult)
        if cached is not None:
            return cached
        params = build_point_query(coord, FLOOD_OUT_FIELDS)
        try:
            payload = await self.client.query(
                FEMA_NFHL_URL,
                params,
                timeout_s=self.settings.request_timeout_s,
                label=self.label,
            )
        except RemoteError as exc:
            logger.warning("flood lookup failed at %s: %s", coord.key(), exc)
            return FloodResult.failure(FEMA_SOURCE, str(exc), error_kind_of(exc))
        result = normalize_flood(payload)
        await self._remember(key, result)
        return result
