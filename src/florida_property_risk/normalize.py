"""Per-source field mapping from raw feature-query payloads to report models."""

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .arcgis import attributes_of, features_of, resolve_field
from .classify import (
    classify_wetland,
    decode_nwi_code,
    describe_nwi_code,
    lookup_flood_zone,
    rank_wetlands,
)
from .dor_codes import describe_dor_code, pad_code
from .geometry import SQ_METERS_PER_ACRE, esri_polygon_acres, sqft_to_acres
from .models import FloodResult, LandUseResult, WetlandFeature

FEMA_SOURCE = "FEMA National Flood Hazard Layer"
NWI_SOURCE = "USFWS National Wetlands Inventory"
FDOR_SOURCE = "FL Dept of Revenue (Statewide Cadastral)"

LAND_USE_NOTE = "DOR Use Code is a tax classification, not legal zoning"

FEMA_BFE_UNSET = -9999

FLOOD_FIELDS: Dict[str, Sequence[str]] = {
    "zone": ("FLD_ZONE", "ZONE"),
    "subtype": ("ZONE_SUBTY",),
    "bfe": ("STATIC_BFE", "BFE"),
    "sfha": ("SFHA_TF",),
}

LAND_USE_FIELDS: Dict[str, Sequence[str]] = {
    "parcel_id": ("PARCEL_ID", "PARCELNO", "PIN"),
    "code": ("DOR_UC", "DORUC", "USE_CODE"),
    "owner": ("OWN_NAME", "OWNER"),
    "land_value": ("LND_VAL",),
    "just_value": ("JV",),
    "sale_price": ("SALE_PRC1",),
    "sale_year": ("SALE_YR1",),
    "sale_month": ("SALE_MO1",),
    "legal_desc": ("S_LEGAL",),
    "county_code": ("CO_NO",),
    "land_sqft": ("LND_SQFOOT",),
    "buildings": ("NO_BULDNG",),
    "address": ("PHY_ADDR1", "SITE_ADDR"),
    "city": ("PHY_CITY",),
}

LAND_USE_OUT_FIELDS = (
    "PARCEL_ID",
    "DOR_UC",
    "OWN_NAME",
    "LND_VAL",
    "JV",
    "SALE_PRC1",
    "SALE_YR1",
    "SALE_MO1",
    "S_LEGAL",
    "CO_NO",
    "LND_SQFOOT",
    "NO_BULDNG",
    "PHY_ADDR1",
    "PHY_CITY",
)

WETLAND_FIELDS: Dict[str, Sequence[str]] = {
    "code": ("ATTRIBUTE", "WETLAND_CODE"),
    "wetland_type": ("WETLAND_TYPE",),
    "area_sq_m": ("Shape__Area", "SHAPE_Area", "Shape_Area"),
    "acres": ("ACRES",),
    "system": ("SYSTEM_NAME",),
    "class": ("CLASS_NAME",),
    "subclass": ("SUBCLASS_NAME",),
    "water_regime": ("WATER_REGIME_NAME",),
    "modifier1": ("MODIFIER1_NAME",),
    "modifier2": ("MODIFIER2_NAME",),
}

WETLAND_OUT_FIELDS = (
    "ATTRIBUTE",
    "WETLAND_TYPE",
    "Shape__Area",
    "SYSTEM_NAME",
    "CLASS_NAME",
    "SUBCLASS_NAME",
    "WATER_REGIME_NAME",
    "MODIFIER1_NAME",
    "MODIFIER2_NAME",
)


def to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "").replace("$", "")
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def to_int(value: Any) -> Optional[int]:
    number = to_number(value)
    return int(number) if number is not None else None


def to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def sale_date(month: Any, year: Any) -> Optional[str]:
    """``M/YYYY``; month or year of 0 means no recorded sale."""
    m = to_int(month)
    y = to_int(year)
    if not m or not y:
        return None
    if not 1 <= m <= 12:
        return None
    return f"{m}/{y}"


def compact_parcel_id(value: Optional[str]) -> str:
    return re.sub(r"[^0-9A-Za-z]", "", value or "").upper()


def normalize_flood(payload: Dict[str, Any]) -> FloodResult:
    features = features_of(payload)
    if not features:
        return FloodResult.empty(
            FEMA_SOURCE, note="No FEMA flood zone mapped at this location"
        )
    attrs = attributes_of(features[0])
    zone = to_text(resolve_field(attrs, FLOOD_FIELDS["zone"]))
    subtype = to_text(resolve_field(attrs, FLOOD_FIELDS["subtype"]))
    bfe = to_number(resolve_field(attrs, FLOOD_FIELDS["bfe"]))
    if bfe is not None and bfe <= FEMA_BFE_UNSET:
        bfe = None
    info = lookup_flood_zone(zone, subtype)
    sfha_flag = to_text(resolve_field(attrs, FLOOD_FIELDS["sfha"]))
    sfha = sfha_flag.upper() == "T" if sfha_flag else info.sfha
    explanation = info.explanation
    if subtype:
        explanation = f"{explanation} Subtype: {subtype.title()}."
    return FloodResult.success(
        FEMA_SOURCE,
        zone=zone.upper() if zone else None,
        subtype=subtype,
        bfe=bfe,
        risk=info.risk,
        risk_label=info.risk_label,
        explanation=explanation,
        insurance=info.insurance,
        coastal=info.coastal,
        sfha=sfha,
    )


def normalize_land_use(
    payload: Dict[str, Any],
    parcel_id: Optional[str] = None,
    dor_overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> LandUseResult:
    features = features_of(payload)
    if not features:
        return LandUseResult.empty(
            FDOR_SOURCE, note="Parcel not found in the statewide cadastral layer"
        )
    feature = features[0]
    attrs = attributes_of(feature)

    def field(name):
        return resolve_field(attrs, LAND_USE_FIELDS[name])

    code = pad_code(field("code"))
    dor = describe_dor_code(code, dor_overrides)
    found_parcel = to_text(field("parcel_id"))
    land_sqft = to_number(field("land_sqft"))
    acres = esri_polygon_acres(feature.get("geometry"))
    if acres is None:
        acres = sqft_to_acres(land_sqft)
    price = to_number(field("sale_price"))

    note = LAND_USE_NOTE
    mismatch = bool(
        parcel_id
        and found_parcel
        and compact_parcel_id(parcel_id) != compact_parcel_id(found_parcel)
    )
    if mismatch:
        note = (
            f"{LAND_USE_NOTE}. Parcel at this location is {found_parcel}, "
            f"not the requested {parcel_id}"
        )

    return LandUseResult.success(
        FDOR_SOURCE,
        note=note,
        parcel_id=found_parcel,
        code=code,
        description=dor["description"],
        category=dor["category"],
        buildable=dor["buildable"],
        owner=to_text(field("owner")),
        land_value=to_number(field("land_value")),
        just_value=to_number(field("just_value")),
        last_sale_price=price if price and price > 0 else None,
        last_sale_date=sale_date(field("sale_month"), field("sale_year")),
        legal_desc=to_text(field("legal_desc")),
        county_code=to_text(field("county_code")),
        land_sqft=land_sqft,
        parcel_acres=acres,
        buildings=to_int(field("buildings")),
        address=to_text(field("address")),
        city=to_text(field("city")),
        parcel_mismatch=mismatch,
    )


def _wetland_feature(attrs: Dict[str, Any]) -> WetlandFeature:
    def field(name):
        return resolve_field(attrs, WETLAND_FIELDS[name])

    code = to_text(field("code")) or "UNKNOWN"
    decoded = decode_nwi_code(code)
    names = [
        to_text(field(k))
        for k in ("system", "class", "subclass", "water_regime", "modifier1", "modifier2")
    ]
    names = [n for n in names if n]
    area = to_number(field("area_sq_m"))
    acres = to_number(field("acres"))
    if acres is None:
        acres = area / SQ_METERS_PER_ACRE if area else 0.0
    risk = classify_wetland(code)
    return WetlandFeature(
        code=code,
        wetland_type=to_text(field("wetland_type")),
        decoded_classification=", ".join(names) if names else describe_nwi_code(code),
        water_regime=to_text(field("water_regime")) or decoded["water_regime"],
        acres=round(acres, 2),
        risk=risk.tier,
        risk_label=risk.label,
        buildability_note=risk.explanation,
    )


def normalize_wetland_features(payload: Dict[str, Any]) -> List[WetlandFeature]:
    """All features at one search radius, most severe first."""
    return rank_wetlands(_wetland_feature(attributes_of(f)) for f in features_of(payload))


def normalize(payload: Dict[str, Any], source_kind: str, **options: Any):
    if source_kind == "flood":
        return normalize_flood(payload)
    if source_kind == "land_use":
        return normalize_land_use(payload, **options)
    if source_kind == "wetlands":
        return normalize_wetland_features(payload)
    raise ValueError(f"unknown source kind: {source_kind}")
