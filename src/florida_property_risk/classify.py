"""Static risk tables for FEMA flood zones and NWI wetland codes."""

import re
from typing import Dict, Iterable, List, NamedTuple, Optional


class Classification(NamedTuple):
    tier: str
    label: str
    explanation: str


class FloodZoneInfo(NamedTuple):
    risk: str
    risk_label: str
    insurance: str
    explanation: str
    coastal: bool
    sfha: bool


_REQUIRED = "Required for federally backed mortgages"
_RECOMMENDED = "Not required; optional coverage recommended"

FLOOD_ZONES: Dict[str, FloodZoneInfo] = {
    "X": FloodZoneInfo(
        "minimal",
        "Minimal risk",
        _RECOMMENDED,
        "Outside the 1% annual chance floodplain. Shaded X areas still carry a "
        "0.2% annual chance (500-year) flood hazard.",
        False,
        False,
    ),
    "C": FloodZoneInfo(
        "minimal",
        "Minimal risk",
        _RECOMMENDED,
        "Area of minimal flooding on older flood maps (equivalent to unshaded X).",
        False,
        False,
    ),
    "A": FloodZoneInfo(
        "high",
        "High risk",
        _REQUIRED,
        "1% annual chance floodplain; no base flood elevation has been determined.",
        False,
        True,
    ),
    "AE": FloodZoneInfo(
        "high",
        "High risk",
        _REQUIRED,
        "1% annual chance floodplain with a determined base flood elevation. "
        "Construction must be elevated above the BFE.",
        False,
        True,
    ),
    "AH": FloodZoneInfo(
        "high",
        "High risk",
        _REQUIRED,
        "1% annual chance of shallow ponding, usually 1 to 3 feet deep.",
        False,
        True,
    ),
    "AO": FloodZoneInfo(
        "high",
        "High risk",
        _REQUIRED,
        "1% annual chance of shallow sheet flow on sloping terrain, usually 1 to 3 "
        "feet deep.",
        False,
        True,
    ),
    "AR": FloodZoneInfo(
        "moderate",
        "Moderate risk",
        _REQUIRED,
        "Temporarily increased flood risk while a decertified levee is being "
        "restored.",
        False,
        True,
    ),
    "A99": FloodZoneInfo(
        "moderate",
        "Moderate risk",
        _REQUIRED,
        "Floodplain to be protected by a federal flood protection system under "
        "construction.",
        False,
        True,
    ),
    "V": FloodZoneInfo(
        "high",
        "High risk (coastal)",
        _REQUIRED,
        "Coastal high hazard area with storm wave action; no base flood elevation "
        "determined.",
        True,
        True,
    ),
    "VE": FloodZoneInfo(
        "high",
        "High risk (coastal)",
        _REQUIRED,
        "Coastal high hazard area with storm wave action and a determined base "
        "flood elevation. Strict construction standards apply.",
        True,
        True,
    ),
    "D": FloodZoneInfo(
        "unknown",
        "Undetermined risk",
        "Available; rates vary",
        "Possible but undetermined flood hazard. No flood analysis has been done.",
        False,
        False,
    ),
}

UNKNOWN_FLOOD = FloodZoneInfo(
    "unknown",
    "Unknown risk",
    "Unknown",
    "Flood zone not recognized; check the FEMA Flood Map Service Center.",
    False,
    False,
)


def lookup_flood_zone(zone: Optional[str], subtype: Optional[str] = None) -> FloodZoneInfo:
    """Exact zone match first, then V/A prefix, otherwise unknown."""
    key = (zone or "").strip().upper()
    info = FLOOD_ZONES.get(key)
    if info is None and key:
        if key.startswith("V"):
            info = FLOOD_ZONES["V"]
        elif key.startswith("A"):
            info = FLOOD_ZONES["A"]
    if info is None:
        return UNKNOWN_FLOOD
    sub = (subtype or "").upper()
    if info.risk == "high" and not info.coastal and "LEVEE" in sub:
        info = info._replace(
            risk="moderate",
            risk_label="Moderate risk",
            explanation=info.explanation + " Mapped as protected by a levee.",
        )
    return info


# Most severe first.
WETLAND_TIERS = ("high", "medium-high", "medium", "low-medium")
TIER_RANK = {tier: rank for rank, tier in enumerate(WETLAND_TIERS)}

TIER_LABELS = {
    "high": "High",
    "medium-high": "Medium-High",
    "medium": "Medium",
    "low-medium": "Low-Medium",
}

BUILDABILITY_NOTES = {
    "high": (
        "Generally not buildable. Filling requires federal (USACE Section 404) and "
        "state environmental resource permits, and mitigation often runs $50,000 "
        "to $150,000 or more per acre."
    ),
    "medium-high": (
        "Difficult to build. Clearing shrub wetland needs permits and mitigation "
        "credits; approvals are slow and frequently denied."
    ),
    "medium": (
        "Possibly buildable with an environmental resource permit. Expect "
        "mitigation costs and a delineation survey."
    ),
    "low-medium": (
        "Usually a manmade pond or ditch. Modification may be allowed with local "
        "and water management district approval."
    ),
}

NWI_SYSTEMS = {
    "P": "Palustrine",
    "L": "Lacustrine",
    "R": "Riverine",
    "E": "Estuarine",
    "M": "Marine",
}

NWI_SUBSYSTEMS = {
    "L": {"1": "Limnetic", "2": "Littoral"},
    "R": {
        "1": "Tidal",
        "2": "Lower Perennial",
        "3": "Upper Perennial",
        "4": "Intermittent",
        "5": "Unknown Perennial",
    },
    "E": {"1": "Subtidal", "2": "Intertidal"},
    "M": {"1": "Subtidal", "2": "Intertidal"},
}

NWI_CLASSES = {
    "FO": "Forested",
    "SS": "Scrub-Shrub",
    "EM": "Emergent",
    "AB": "Aquatic Bed",
    "UB": "Unconsolidated Bottom",
    "US": "Unconsolidated Shore",
    "RB": "Rock Bottom",
    "RS": "Rocky Shore",
    "ML": "Moss-Lichen",
    "RF": "Reef",
    "SB": "Streambed",
}

_WOODY = {
    "1": "Broad-Leaved Deciduous",
    "2": "Needle-Leaved Deciduous",
    "3": "Broad-Leaved Evergreen",
    "4": "Needle-Leaved Evergreen",
    "5": "Dead",
    "6": "Deciduous",
    "7": "Evergreen",
}
_SUBSTRATE = {"1": "Cobble-Gravel", "2": "Sand", "3": "Mud", "4": "Organic", "5": "Vegetated"}

NWI_SUBCLASSES = {
    "FO": _WOODY,
    "SS": _WOODY,
    "EM": {"1": "Persistent", "2": "Nonpersistent", "5": "Phragmites australis"},
    "AB": {"1": "Algal", "2": "Aquatic Moss", "3": "Rooted Vascular", "4": "Floating Vascular"},
    "UB": _SUBSTRATE,
    "US": _SUBSTRATE,
    "SB": _SUBSTRATE,
    "RB": {"1": "Bedrock", "2": "Rubble"},
    "RS": {"1": "Bedrock", "2": "Rubble"},
    "RF": {"1": "Coral", "2": "Mollusk", "3": "Worm"},
}

NWI_WATER_REGIMES = {
    "A": "Temporarily Flooded",
    "B": "Seasonally Saturated",
    "C": "Seasonally Flooded",
    "D": "Continuously Saturated",
    "E": "Seasonally Flooded/Saturated",
    "F": "Semipermanently Flooded",
    "G": "Intermittently Exposed",
    "H": "Permanently Flooded",
    "J": "Intermittently Flooded",
    "K": "Artificially Flooded",
    "L": "Subtidal",
    "M": "Irregularly Exposed",
    "N": "Regularly Flooded",
    "P": "Irregularly Flooded",
    "R": "Seasonally Flooded-Fresh Tidal",
    "S": "Temporarily Flooded-Fresh Tidal",
    "T": "Semipermanently Flooded-Fresh Tidal",
    "V": "Permanently Flooded-Fresh Tidal",
    "U": "Unknown",
}

NWI_MODIFIERS = {
    "a": "Acid",
    "b": "Beaver",
    "d": "Partly Drained/Ditched",
    "f": "Farmed",
    "g": "Organic",
    "h": "Diked/Impounded",
    "i": "Alkaline",
    "m": "Managed",
    "n": "Mineral",
    "r": "Artificial Substrate",
    "s": "Spoil",
    "t": "Circumneutral",
    "x": "Excavated",
}

# Regimes where standing water is present for much of the growing season.
_WET_REGIMES = {"C", "E", "F", "G", "H", "K", "T", "V"}

_NWI_RE = re.compile(
    r"^(?P<system>[PLREM])(?P<subsystem>\d)?"
    r"(?P<cls>[A-Z]{2})(?P<sub>\d)?"
    r"(?:/(?P<cls2>[A-Z]{2})?(?P<sub2>\d)?)?"
    r"(?P<regime>[A-Z])?(?P<mods>[a-z0-9]*)$"
)


def decode_nwi_code(code: Optional[str]) -> Dict[str, Optional[str]]:
    """Split an NWI attribute code into its named parts.

    Unparseable codes decode to all-None parts; the caller keeps the raw code.
    """
    parts: Dict[str, Optional[str]] = {
        "system": None,
        "subsystem": None,
        "class": None,
        "subclass": None,
        "water_regime": None,
        "modifiers": None,
    }
    match = _NWI_RE.match((code or "").strip())
    if not match:
        return parts
    system = match.group("system")
    cls = match.group("cls")
    parts["system"] = NWI_SYSTEMS.get(system)
    if match.group("subsystem"):
        parts["subsystem"] = NWI_SUBSYSTEMS.get(system, {}).get(match.group("subsystem"))
    parts["class"] = NWI_CLASSES.get(cls)
    if match.group("sub"):
        parts["subclass"] = NWI_SUBCLASSES.get(cls, {}).get(match.group("sub"))
    if match.group("regime"):
        parts["water_regime"] = NWI_WATER_REGIMES.get(match.group("regime"))
    mod_letters = match.group("mods") or ""
    mods = [NWI_MODIFIERS[m] for m in mod_letters if m in NWI_MODIFIERS]
    if mods:
        parts["modifiers"] = ", ".join(mods)
    return parts


def describe_nwi_code(code: Optional[str]) -> str:
    parts = decode_nwi_code(code)
    labels = [
        parts[k]
        for k in ("system", "subsystem", "class", "subclass", "water_regime", "modifiers")
        if parts[k]
    ]
    return ", ".join(labels) if labels else (code or "Unclassified wetland")


def _wetland_tier(code: str) -> str:
    if code.startswith("PFO"):
        return "high"
    if code.startswith("PSS"):
        return "medium-high"
    if code.startswith("PEM"):
        return "medium"
    if code.startswith("PAB"):
        return "medium"
    if code.startswith("PUB"):
        match = _NWI_RE.match(code)
        mods = match.group("mods") if match else ""
        if "x" in mods or "h" in mods:
            return "low-medium"
        return "medium"
    if code[:1] in ("L", "R", "E", "M"):
        return "high"
    return "medium"


def classify_wetland(code: Optional[str]) -> Classification:
    raw = (code or "").strip()
    # System and class letters are case-insensitive; modifiers stay lowercase.
    raw = raw[:3].upper() + raw[3:]
    tier = _wetland_tier(raw)
    note = BUILDABILITY_NOTES[tier]
    if raw.startswith("PFO"):
        match = _NWI_RE.match(raw)
        regime = match.group("regime") if match else None
        if regime in _WET_REGIMES:
            note = "Forested wetland with standing water much of the year. " + note
        else:
            note = "Forested wetland with saturated soils. " + note
    elif raw[:1] in ("L", "R", "E", "M"):
        note = "Open water body or tidal system. " + note
    return Classification(tier, TIER_LABELS[tier], note)


def classify_flood(zone: Optional[str], subtype: Optional[str] = None) -> Classification:
    info = lookup_flood_zone(zone, subtype)
    return Classification(info.risk, info.risk_label, info.explanation)


def classify(code: Optional[str], domain: str) -> Classification:
    if domain == "flood":
        return classify_flood(code)
    if domain == "wetland":
        return classify_wetland(code)
    raise ValueError(f"unknown classification domain: {domain}")


def rank_wetlands(features: Iterable) -> List:
    """Sort by tier severity, then by acreage, both descending."""
    return sorted(
        features,
        key=lambda f: (TIER_RANK.get(f.risk, len(WETLAND_TIERS)), -(f.acres or 0.0)),
    )
