import json
from typing import Any, Dict, Iterable, List, Optional

from .coords import Coordinate

WGS84 = 4326
ESRI_METER = "esriSRUnit_Meter"


def point_geometry(coord: Coordinate, dialect: str = "xy") -> str:
    """Serialize a point for the ``geometry`` query parameter.

    ``xy`` is the bare ``"lng,lat"`` form; ``json`` is an Esri point object
    with an explicit spatial reference. Both are accepted by feature services,
    but some county servers only parse one of them.
    """
    if dialect == "json":
        return json.dumps(
            {"x": coord.lng, "y": coord.lat, "spatialReference": {"wkid": WGS84}}
        )
    if dialect != "xy":
        raise ValueError(f"unknown geometry dialect: {dialect}")
    return f"{coord.lng},{coord.lat}"


def build_point_query(
    coord: Coordinate,
    out_fields: Iterable[str],
    dialect: str = "xy",
    return_geometry: bool = False,
    distance_m: Optional[float] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "where": "1=1",
        "geometry": point_geometry(coord, dialect),
        "geometryType": "esriGeometryPoint",
        "inSR": WGS84,
        "spatialRel": "esriSpatialRelIntersects",
        "outFields": ",".join(out_fields) or "*",
        "returnGeometry": "true" if return_geometry else "false",
        "f": "json",
    }
    if return_geometry:
        params["outSR"] = WGS84
    if distance_m is not None:
        params["distance"] = distance_m
        params["units"] = ESRI_METER
    if limit is not None:
        params["resultRecordCount"] = limit
    return params


def layer_query_url(base_url: str, layer_id: Optional[int] = None) -> str:
    base = base_url.rstrip("/")
    if base.endswith("/query"):
        return base
    if layer_id is not None:
        base = f"{base}/{layer_id}"
    return f"{base}/query"


def features_of(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(features, list):
        return []
    return [f for f in features if isinstance(f, dict)]


def attributes_of(feature: Dict[str, Any]) -> Dict[str, Any]:
    attrs = feature.get("attributes")
    return attrs if isinstance(attrs, dict) else {}


def resolve_field(attrs: Dict[str, Any], candidates: Iterable[str]) -> Any:
    """Return the first non-empty value among candidate field names.

    Matching falls back to a case-insensitive lookup because providers are not
    consistent about field-name casing.
    """
    lowered = None
    for field in candidates:
        value = attrs.get(field)
        if value is None:
            if lowered is None:
                lowered = {str(k).lower(): v for k, v in attrs.items()}
            value = lowered.get(field.lower())
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        return value
    return None
