"""County zoning routing.

Tiers, in order: the county's registry layers, its future-land-use layer only,
the statewide future-land-use layer, then a not-found answer carrying the
manual verification link. A failing tier falls through to the next one.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..arcgis import attributes_of, build_point_query, features_of, resolve_field
from ..cache import cache_key
from ..coords import Coordinate
from ..county_links import canonicalize_county_name, county_display_name
from ..errors import RemoteError
from ..models import ZoningBasis, ZoningResult
from ..normalize import to_text
from ..registry import CountyZoningConfig, LayerConfig, ZoningRegistry
from .base import CachedSource, error_kind_of

logger = logging.getLogger("fpr.zoning")

LOCAL_NOTE = "Confirm with the county Planning Department before relying on this"
STATEWIDE_NOTE = (
    "Statewide future land use approximation; not authoritative local zoning"
)

Picked = Tuple[Optional[LayerConfig], Optional[str], Optional[str]]


def pick_layer_value(
    layers: Sequence[LayerConfig],
    attrs_by_layer: Dict[str, Optional[Dict[str, Any]]],
    code_key: str,
    desc_key: str,
) -> Picked:
    """First layer, in precedence order, whose mapping yields a code."""
    for layer in layers:
        attrs = attrs_by_layer.get(layer.name)
        candidates = layer.field_mapping.get(code_key)
        if not attrs or not candidates:
            continue
        code = to_text(resolve_field(attrs, candidates))
        if code:
            desc = to_text(resolve_field(attrs, layer.field_mapping.get(desc_key, ())))
            return layer, code, desc
    return None, None, None


class ZoningRouter(CachedSource):
    def __init__(self, client, cache, settings, registry: ZoningRegistry):
        super().__init__(client, cache, settings)
        self.registry = registry

    async def get_zoning(self, county: str, coord: Coordinate) -> ZoningResult:
        slug = canonicalize_county_name(county)
        key = cache_key("zoning", coord, county=slug)
        cached = await self._cached(key, ZoningResult)
        if cached is not None:
            return cached

        cfg = self.registry.get(county)
        display = cfg.county if cfg else (county_display_name(county) or county.strip().title())
        errors: List[RemoteError] = []
        result: Optional[ZoningResult] = None

        if cfg is not None and cfg.has_zoning:
            result = await self._local(cfg, coord, errors)
        elif cfg is not None and cfg.flu_only:
            result = await self._flu_only(cfg, coord, errors)
        if result is None:
            result = await self._statewide(display, cfg, coord, errors)
        if result is None:
            result = self._not_found(display, cfg, errors)

        logger.info(
            "zoning for %s at %s: basis=%s found=%s",
            display,
            coord.key(),
            result.basis.value,
            result.found,
        )
        if not errors:
            await self._remember(key, result)
        return result

    async def _query_layers(
        self,
        cfg: CountyZoningConfig,
        layers: Sequence[LayerConfig],
        coord: Coordinate,
        errors: List[RemoteError],
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        params = build_point_query(coord, ["*"])
        outcomes = await asyncio.gather(
            *(
                self.client.query(
                    layer.url,
                    params,
                    timeout_s=cfg.timeout_s or self.settings.request_timeout_s,
                    retries=cfg.retries,
                    label=f"{cfg.county} {layer.name}",
                )
                for layer in layers
            ),
            return_exceptions=True,
        )
        attrs_by_layer: Dict[str, Optional[Dict[str, Any]]] = {}
        for layer, outcome in zip(layers, outcomes):
            if isinstance(outcome, RemoteError):
                logger.warning("%s layer %s failed: %s", cfg.county, layer.name, outcome)
                errors.append(outcome)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            features = features_of(outcome)
            attrs_by_layer[layer.name] = attributes_of(features[0]) if features else None
        return attrs_by_layer

    def _jurisdiction(self, cfg: CountyZoningConfig, layer: Optional[LayerConfig]) -> str:
        if layer is not None and layer.jurisdiction == "municipal":
            return f"Municipal ({cfg.county} County)"
        if any(other.jurisdiction == "municipal" for other in cfg.layers):
            return f"Unincorporated {cfg.county} County"
        return f"{cfg.county} County"

    async def _local(
        self, cfg: CountyZoningConfig, coord: Coordinate, errors: List[RemoteError]
    ) -> Optional[ZoningResult]:
        tier_errors: List[RemoteError] = []
        attrs = await self._query_layers(cfg, cfg.layers, coord, tier_errors)
        errors.extend(tier_errors)
        zoning_layer, code, desc = pick_layer_value(
            cfg.layers, attrs, "zoning_code", "zoning_desc"
        )
        _, flu, flu_desc = pick_layer_value(cfg.layers, attrs, "flu_code", "flu_desc")
        if not code and not flu:
            return None
        note = LOCAL_NOTE
        if tier_errors:
            note = f"{note}. Some layers were unavailable"
        return ZoningResult.success(
            cfg.source,
            code=code,
            description=desc or cfg.zoning_codes.get(code or "") or code,
            future_land_use=flu,
            future_land_use_desc=flu_desc or flu,
            jurisdiction=self._jurisdiction(cfg, zoning_layer),
            is_municipal=bool(zoning_layer and zoning_layer.jurisdiction == "municipal"),
            basis=ZoningBasis.LOCAL,
            partial=bool(tier_errors) or code is None,
            note=note,
            manual_link=cfg.manual_link,
        )

    async def _flu_only(
        self, cfg: CountyZoningConfig, coord: Coordinate, errors: List[RemoteError]
    ) -> Optional[ZoningResult]:
        layers = [layer for layer in cfg.layers if layer.provides_flu]
        attrs = await self._query_layers(cfg, layers, coord, errors)
        flu_layer, flu, flu_desc = pick_layer_value(layers, attrs, "flu_code", "flu_desc")
        if not flu:
            return None
        return ZoningResult.success(
            cfg.source,
            future_land_use=flu,
            future_land_use_desc=flu_desc or flu,
            jurisdiction=self._jurisdiction(cfg, flu_layer),
            is_municipal=bool(flu_layer and flu_layer.jurisdiction == "municipal"),
            basis=ZoningBasis.FLU_ONLY,
            partial=True,
            note=(
                f"{cfg.county} County publishes future land use only; verify "
                "zoning manually"
            ),
            manual_link=cfg.manual_link,
        )

    async def _statewide(
        self,
        display: str,
        cfg: Optional[CountyZoningConfig],
        coord: Coordinate,
        errors: List[RemoteError],
    ) -> Optional[ZoningResult]:
        endpoint = self.registry.future_land_use
        if endpoint is None:
            return None
        try:
            payload = await self.client.query(
                endpoint.url,
                build_point_query(coord, ["*"]),
                timeout_s=endpoint.timeout_s or self.settings.request_timeout_s,
                retries=endpoint.retries,
                label=endpoint.label,
            )
        except RemoteError as exc:
            logger.warning("statewide FLU failed for %s: %s", display, exc)
            errors.append(exc)
            return None
        features = features_of(payload)
        if not features:
            return None
        attrs = attributes_of(features[0])
        flu = to_text(resolve_field(attrs, endpoint.field_mapping.get("flu_code", ())))
        if not flu:
            return None
        flu_desc = to_text(resolve_field(attrs, endpoint.field_mapping.get("flu_desc", ())))
        return ZoningResult.success(
            endpoint.label,
            future_land_use=flu,
            future_land_use_desc=flu_desc or flu,
            jurisdiction=f"{display} County",
            basis=ZoningBasis.STATEWIDE_FLU,
            partial=True,
            note=STATEWIDE_NOTE,
            manual_link=(cfg.manual_link if cfg else None) or endpoint.manual_link,
        )

    def _not_found(
        self,
        display: str,
        cfg: Optional[CountyZoningConfig],
        errors: List[RemoteError],
    ) -> ZoningResult:
        source = cfg.source if cfg else f"{display} County (not configured)"
        manual_link = cfg.manual_link if cfg else None
        if errors:
            return ZoningResult.failure(
                source,
                "; ".join(str(e) for e in errors),
                error_kind_of(errors[0]),
                manual_link=manual_link,
                note="Zoning sources unavailable; consult the Planning Department",
            )
        if cfg is None:
            note = (
                f"Zoning is not configured for {display} County; consult the "
                "local Planning Department"
            )
        elif not cfg.has_zoning and self.registry.future_land_use is None:
            note = (
                f"{display} County has no zoning service and no statewide future "
                "land use service is configured; consult the Planning Department"
            )
        else:
            note = "No zoning found at this location; consult the Planning Department"
        return ZoningResult.empty(source, note=note, manual_link=manual_link)
