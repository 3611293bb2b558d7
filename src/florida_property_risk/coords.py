import math
from dataclasses import dataclass
from typing import Any, Dict

from .errors import InvalidInputError

KEY_PRECISION = 6


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def key(self) -> str:
        return f"{self.lat:.{KEY_PRECISION}f},{self.lng:.{KEY_PRECISION}f}"

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def _as_float(value: Any, name: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(f"{name} is required")
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be a number") from None
    if not math.isfinite(number):
        raise InvalidInputError(f"{name} must be finite")
    return number


def make_coordinate(lat: Any, lng: Any) -> Coordinate:
    """Validate raw lat/lng input against WGS84 ranges and build a Coordinate."""
    lat_f = _as_float(lat, "lat")
    lng_f = _as_float(lng, "lng")
    if not -90.0 <= lat_f <= 90.0:
        raise InvalidInputError("lat must be between -90 and 90")
    if not -180.0 <= lng_f <= 180.0:
        raise InvalidInputError("lng must be between -180 and 180")
    return Coordinate(lat=lat_f, lng=lng_f)


def require_county(county: Any) -> str:
    if not isinstance(county, str) or not county.strip():
        raise InvalidInputError("county is required")
    return county.strip()
