"""County zoning registry.

Loaded once from a JSON file at startup and read-only afterwards. A missing or
unreadable file yields an empty registry, which routes every county to the
statewide fallback.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .arcgis import layer_query_url
from .county_links import canonicalize_county_name, county_display_name
from .errors import RegistryError

logger = logging.getLogger("fpr.registry")

MAPPING_KEYS = ("zoning_code", "zoning_desc", "flu_code", "flu_desc")

JURISDICTIONS = ("municipal", "county")


@dataclass(frozen=True)
class LayerConfig:
    name: str
    url: str
    jurisdiction: str = "county"
    field_mapping: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def provides_zoning(self) -> bool:
        return bool(self.field_mapping.get("zoning_code"))

    @property
    def provides_flu(self) -> bool:
        return bool(self.field_mapping.get("flu_code"))


@dataclass(frozen=True)
class Endpoint:
    url: str
    label: str
    timeout_s: Optional[float] = None
    retries: Optional[int] = None
    field_mapping: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    manual_link: Optional[str] = None


@dataclass(frozen=True)
class CountyZoningConfig:
    county: str
    slug: str
    source: str
    layers: Tuple[LayerConfig, ...] = ()
    manual_link: Optional[str] = None
    has_zoning: bool = True
    use_statewide_flu_fallback: bool = False
    timeout_s: Optional[float] = None
    retries: Optional[int] = None
    zoning_codes: Mapping[str, str] = field(default_factory=dict)

    @property
    def flu_only(self) -> bool:
        return (
            not self.has_zoning
            and not self.use_statewide_flu_fallback
            and any(layer.provides_flu for layer in self.layers)
        )


def _mapping(raw: Any, where: str) -> Dict[str, Tuple[str, ...]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RegistryError(f"{where}: field_mapping must be an object")
    out: Dict[str, Tuple[str, ...]] = {}
    for key, value in raw.items():
        if key not in MAPPING_KEYS:
            raise RegistryError(f"{where}: unknown field_mapping key {key!r}")
        names = [value] if isinstance(value, str) else value
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise RegistryError(f"{where}: {key} must be a field name or list of names")
        out[key] = tuple(names)
    return out


def _ms_to_s(value: Any) -> Optional[float]:
    if value is None:
        return None
    if not isinstance(value, (int, float)) or value <= 0:
        raise RegistryError(f"timeout_ms must be a positive number, got {value!r}")
    return value / 1000.0


def _parse_layers(raw: Any, base_url: Optional[str], where: str) -> Tuple[LayerConfig, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, dict):
        raise RegistryError(f"{where}: layers must be an object keyed by layer name")
    layers: List[LayerConfig] = []
    for name, spec in raw.items():
        if not isinstance(spec, dict):
            raise RegistryError(f"{where}.{name}: layer must be an object")
        url = spec.get("url")
        if not url:
            if not base_url or spec.get("layer_id") is None:
                raise RegistryError(f"{where}.{name}: needs url or base_url + layer_id")
            url = layer_query_url(base_url, spec["layer_id"])
        else:
            url = layer_query_url(url)
        jurisdiction = spec.get("jurisdiction", "county")
        if jurisdiction not in JURISDICTIONS:
            raise RegistryError(f"{where}.{name}: unknown jurisdiction {jurisdiction!r}")
        layers.append(
            LayerConfig(
                name=name,
                url=url,
                jurisdiction=jurisdiction,
                field_mapping=_mapping(spec.get("field_mapping"), f"{where}.{name}"),
            )
        )
    # Municipal layers are consulted first; they take precedence.
    layers.sort(key=lambda layer: JURISDICTIONS.index(layer.jurisdiction))
    return tuple(layers)


def parse_county(name: str, raw: Any) -> CountyZoningConfig:
    if not isinstance(raw, dict):
        raise RegistryError(f"{name}: county entry must be an object")
    display = county_display_name(name) or name
    base_url = raw.get("base_url")
    layers = _parse_layers(raw.get("layers"), base_url, name)
    has_zoning = bool(raw.get("has_zoning", True))
    if has_zoning and not any(layer.provides_zoning for layer in layers):
        raise RegistryError(f"{name}: has_zoning is set but no layer maps zoning_code")
    codes = raw.get("zoning_codes") or {}
    if not isinstance(codes, dict):
        raise RegistryError(f"{name}: zoning_codes must be an object")
    retries = raw.get("retries")
    if retries is not None and (not isinstance(retries, int) or retries < 0):
        raise RegistryError(f"{name}: retries must be a non-negative integer")
    return CountyZoningConfig(
        county=display,
        slug=canonicalize_county_name(name),
        source=raw.get("source") or f"{display} County Planning & Zoning",
        layers=layers,
        manual_link=raw.get("manual_link"),
        has_zoning=has_zoning,
        use_statewide_flu_fallback=bool(raw.get("use_statewide_flu_fallback", False)),
        timeout_s=_ms_to_s(raw.get("timeout_ms")),
        retries=retries,
        zoning_codes={str(k): str(v) for k, v in codes.items()},
    )


def parse_endpoint(raw: Any, where: str, default_label: str) -> Optional[Endpoint]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise RegistryError(f"{where}: must be an object")
    url = raw.get("url")
    if not url:
        return None
    return Endpoint(
        url=layer_query_url(url),
        label=raw.get("label") or default_label,
        timeout_s=_ms_to_s(raw.get("timeout_ms")),
        retries=raw.get("retries"),
        field_mapping=_mapping(raw.get("field_mapping"), where),
        manual_link=raw.get("manual_link"),
    )


class ZoningRegistry:
    def __init__(
        self,
        counties: Optional[Dict[str, CountyZoningConfig]] = None,
        land_use: Optional[Endpoint] = None,
        future_land_use: Optional[Endpoint] = None,
        dor_use_codes: Optional[Dict[str, Dict[str, Any]]] = None,
        source_path: Optional[str] = None,
    ):
        self._counties = dict(counties or {})
        self.land_use = land_use
        self.future_land_use = future_land_use
        self.dor_use_codes = dict(dor_use_codes or {})
        self.source_path = source_path

    @classmethod
    def empty(cls) -> "ZoningRegistry":
        return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source_path: Optional[str] = None) -> "ZoningRegistry":
        if not isinstance(data, dict):
            raise RegistryError("registry root must be an object")
        counties: Dict[str, CountyZoningConfig] = {}
        for name, raw in (data.get("counties") or {}).items():
            try:
                cfg = parse_county(name, raw)
            except RegistryError as exc:
                logger.error("skipping registry entry %s: %s", name, exc)
                continue
            counties[cfg.slug] = cfg
        statewide = data.get("statewide") or {}
        land_use = future_land_use = None
        try:
            land_use = parse_endpoint(
                statewide.get("land_use"), "statewide.land_use", "FDOR LandUse"
            )
        except RegistryError as exc:
            logger.error("ignoring statewide land use config: %s", exc)
        try:
            future_land_use = parse_endpoint(
                statewide.get("future_land_use"),
                "statewide.future_land_use",
                "Statewide FLU",
            )
        except RegistryError as exc:
            logger.error("ignoring statewide future land use config: %s", exc)
        if future_land_use is None:
            waiting = sorted(c.county for c in counties.values() if c.use_statewide_flu_fallback)
            if waiting:
                logger.warning(
                    "statewide future land use fallback is disabled (no url); "
                    "%d counties requesting it will report no zoning: %s",
                    len(waiting),
                    ", ".join(waiting),
                )
        dor = data.get("dor_use_codes") or {}
        if not isinstance(dor, dict):
            logger.error("ignoring dor_use_codes: must be an object")
            dor = {}
        return cls(
            counties,
            land_use=land_use,
            future_land_use=future_land_use,
            dor_use_codes=dor,
            source_path=source_path,
        )

    @classmethod
    def load(cls, path) -> "ZoningRegistry":
        try:
            text = Path(path).read_text(encoding="utf-8")
            data = json.loads(text)
            registry = cls.from_dict(data, source_path=str(path))
        except FileNotFoundError:
            logger.warning("zoning registry not found at %s; statewide fallback only", path)
            return cls.empty()
        except (OSError, ValueError) as exc:
            logger.error("zoning registry at %s unreadable (%s); statewide fallback only", path, exc)
            return cls.empty()
        logger.info(
            "zoning registry loaded from %s: %d counties", path, len(registry._counties)
        )
        return registry

    def get(self, county: Optional[str]) -> Optional[CountyZoningConfig]:
        return self._counties.get(canonicalize_county_name(county))

    def counties(self) -> List[CountyZoningConfig]:
        return list(self._counties.values())

    def __contains__(self, county: str) -> bool:
        return self.get(county) is not None

    def __len__(self) -> int:
        return len(self._counties)
