import math
from typing import Any, Dict, List, Optional

from shapely.geometry import LinearRing, Polygon
from shapely.ops import transform

SQ_METERS_PER_ACRE = 4046.8564224
SQ_FEET_PER_ACRE = 43560.0

# Metres per degree at the equator; longitude is scaled by cos(lat).
_M_PER_DEG_LAT = 110_574.0
_M_PER_DEG_LNG = 111_320.0


def _clean_rings(geom: Dict[str, Any]) -> List[List[List[float]]]:
    rings = geom.get("rings") if isinstance(geom, dict) else None
    if not isinstance(rings, list):
        return []
    out: List[List[List[float]]] = []
    for ring in rings:
        if not isinstance(ring, list):
            continue
        pts = [
            [float(pt[0]), float(pt[1])]
            for pt in ring
            if isinstance(pt, (list, tuple))
            and len(pt) >= 2
            and isinstance(pt[0], (int, float))
            and isinstance(pt[1], (int, float))
        ]
        if len(pts) >= 4:
            out.append(pts)
    return out


def _to_local_meters(lat0: float, lng0: float):
    scale_x = _M_PER_DEG_LNG * math.cos(math.radians(lat0))

    def project(x, y, z=None):
        return ((x - lng0) * scale_x, (y - lat0) * _M_PER_DEG_LAT)

    return project


def esri_polygon_acres(geom: Optional[Dict[str, Any]]) -> Optional[float]:
    """Acreage of an Esri JSON polygon given in WGS84 degrees.

    Rings are projected onto a flat plane around their first vertex, which is
    accurate to well under a percent at parcel scale. Esri outer rings run
    clockwise and holes counter-clockwise.
    """
    rings = _clean_rings(geom or {})
    if not rings:
        return None
    lng0, lat0 = rings[0][0]
    project = _to_local_meters(lat0, lng0)
    outer = 0.0
    holes = 0.0
    for ring in rings:
        area = transform(project, Polygon(ring)).area
        if LinearRing(ring).is_ccw:
            holes += area
        else:
            outer += area
    if outer == 0.0:
        # Non-conforming ring order; treat every ring as an outer ring.
        outer, holes = holes, 0.0
    sq_m = max(outer - holes, 0.0)
    return round(sq_m / SQ_METERS_PER_ACRE, 3)


def sqft_to_acres(sqft: Optional[float]) -> Optional[float]:
    if sqft is None or sqft <= 0:
        return None
    return round(sqft / SQ_FEET_PER_ACRE, 3)
