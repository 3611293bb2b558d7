import logging
from typing import List, Sequence

from ..arcgis import build_point_query
from ..cache import cache_key
from ..coords import Coordinate
from ..errors import RemoteError
from ..models import PROXIMITY_LABELS, Proximity, WetlandFeature, WetlandsReport
from ..normalize import NWI_SOURCE, WETLAND_OUT_FIELDS, normalize_wetland_features
from .base import CachedSource, error_kind_of

logger = logging.getLogger("fpr.wetlands")

NWI_URL = (
    "https://services.arcgis.com/P3ePLMYs2RVChkJx/ArcGIS/rest/services/"
    "USA_Wetlands/FeatureServer/0/query"
)

DISCLAIMERS = (
    "National Wetlands Inventory maps come from aerial imagery and are not a "
    "jurisdictional wetland delineation.",
    "Confirm with an environmental consultant and the water management district "
    "before purchase.",
)


def proximity_for(index: int, count: int) -> Proximity:
    """First radius is on the property, the last is the surrounding area."""
    if index == 0:
        return Proximity.ON_PROPERTY
    if index == count - 1:
        return Proximity.IN_AREA
    return Proximity.NEARBY


def build_report(
    features: List[WetlandFeature], proximity: Proximity, radius_m: int
) -> WetlandsReport:
    disclaimers = list(DISCLAIMERS)
    if proximity is not Proximity.ON_PROPERTY:
        disclaimers.append(
            f"Closest mapped wetland is within {radius_m} m of the point, not "
            "necessarily on the parcel."
        )
    return WetlandsReport.success(
        NWI_SOURCE,
        proximity=proximity,
        proximity_label=PROXIMITY_LABELS[proximity],
        buffer_meters_used=radius_m,
        features=features,
        count=len(features),
        total_acres=round(sum(f.acres for f in features), 2),
        highest_risk=features[0],
        disclaimers=disclaimers,
    )


class WetlandsSource(CachedSource):
    label = "NWI Wetlands"

    @property
    def radii(self) -> Sequence[int]:
        return self.settings.wetland_radii_m

    async def search_progressive(self, coord: Coordinate) -> WetlandsReport:
        """Query NWI at widening radii and stop at the first hit.

        An error at any radius ends the search with an error report. Treating
        it as "nothing found" would read as a clean bill of health.
        """
        radii = list(self.radii)
        key = cache_key("wetlands", coord, radii=",".join(str(r) for r in radii))
        cached = await self._cached(key, WetlandsReport)
        if cached is not None:
            return cached
        for index, radius in enumerate(radii):
            params = build_point_query(coord, WETLAND_OUT_FIELDS, distance_m=radius)
            try:
                payload = await self.client.query(
                    NWI_URL,
                    params,
                    timeout_s=self.settings.wetlands_timeout_s,
                    label=self.label,
                )
            except RemoteError as exc:
                logger.error(
                    "wetlands search aborted at %d m for %s: %s", radius, coord.key(), exc
                )
                return WetlandsReport.failure(
                    NWI_SOURCE,
                    str(exc),
                    error_kind_of(exc),
                    proximity=Proximity.UNKNOWN,
                    proximity_label=PROXIMITY_LABELS[Proximity.UNKNOWN],
                    buffer_meters_used=radius,
                    note="Wetlands were not verified; do not treat as wetland-free",
                    disclaimers=list(DISCLAIMERS),
                )
            features = normalize_wetland_features(payload)
            if features:
                proximity = proximity_for(index, len(radii))
                logger.info(
                    "wetlands %s at %d m for %s (%d features)",
                    proximity.value,
                    radius,
                    coord.key(),
                    len(features),
                )
                report = build_report(features, proximity, radius)
                await self._remember(key, report)
                return report
        report = WetlandsReport.empty(
            NWI_SOURCE,
            proximity=Proximity.NONE,
            proximity_label=PROXIMITY_LABELS[Proximity.NONE],
            buffer_meters_used=radii[-1] if radii else None,
            note=f"No mapped wetlands within {radii[-1]} m" if radii else None,
            disclaimers=list(DISCLAIMERS),
        )
        await self._remember(key, report)
        return report
