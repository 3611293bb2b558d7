"""Florida Department of Revenue land use codes (DOR_UC).

These are fiscal classifications used by property appraisers, not legal
zoning.
"""

from typing import Any, Dict, Mapping, Optional

DOR_USE_CODES: Dict[str, str] = {
    "000": "Vacant Residential",
    "001": "Single Family",
    "002": "Mobile Homes",
    "003": "Multi-family (10 units or more)",
    "004": "Condominiums",
    "005": "Cooperatives",
    "006": "Retirement Homes",
    "007": "Miscellaneous Residential",
    "008": "Multi-family (fewer than 10 units)",
    "009": "Residential Common Elements/Areas",
    "010": "Vacant Commercial",
    "011": "Stores, one story",
    "012": "Mixed Use (store and office or residential)",
    "013": "Department Stores",
    "014": "Supermarkets",
    "015": "Regional Shopping Centers",
    "016": "Community Shopping Centers",
    "017": "Office Buildings, one story",
    "018": "Office Buildings, multi-story",
    "019": "Professional Service Buildings",
    "020": "Airports, Terminals, Piers, Marinas",
    "021": "Restaurants, Cafeterias",
    "022": "Drive-in Restaurants",
    "023": "Financial Institutions",
    "024": "Insurance Company Offices",
    "025": "Repair Service Shops",
    "026": "Service Stations",
    "027": "Auto Sales, Repair and Storage",
    "028": "Parking Lots, Mobile Home Parks",
    "029": "Wholesale Outlets, Produce Houses",
    "030": "Florists, Greenhouses",
    "031": "Drive-in Theaters, Open Stadiums",
    "032": "Enclosed Theaters, Auditoriums",
    "033": "Nightclubs, Bars",
    "034": "Bowling Alleys, Skating Rinks, Arenas",
    "035": "Tourist Attractions",
    "036": "Camps",
    "037": "Race Tracks",
    "038": "Golf Courses, Driving Ranges",
    "039": "Hotels, Motels",
    "040": "Vacant Industrial",
    "041": "Light Manufacturing",
    "042": "Heavy Industrial",
    "043": "Lumber Yards, Sawmills",
    "044": "Packing Plants",
    "045": "Canneries, Bottlers, Breweries",
    "046": "Other Food Processing",
    "047": "Mineral Processing",
    "048": "Warehousing, Distribution Terminals",
    "049": "Open Storage, Junk Yards",
    "050": "Improved Agricultural",
    "051": "Cropland, Soil Class I",
    "052": "Cropland, Soil Class II",
    "053": "Cropland, Soil Class III",
    "054": "Timberland, Site Index 90+",
    "055": "Timberland, Site Index 80-89",
    "056": "Timberland, Site Index 70-79",
    "057": "Timberland, Site Index 60-69",
    "058": "Timberland, Site Index 50-59",
    "059": "Timberland, Not Classified",
    "060": "Grazing Land, Soil Class I",
    "061": "Grazing Land, Soil Class II",
    "062": "Grazing Land, Soil Class III",
    "063": "Grazing Land, Soil Class IV",
    "064": "Grazing Land, Soil Class V",
    "065": "Grazing Land, Soil Class VI",
    "066": "Orchards, Groves, Citrus",
    "067": "Poultry, Bees, Fish, Rabbits",
    "068": "Dairies, Feed Lots",
    "069": "Ornamentals, Miscellaneous Agricultural",
    "070": "Vacant Institutional",
    "071": "Churches",
    "072": "Private Schools and Colleges",
    "073": "Private Hospitals",
    "074": "Homes for the Aged",
    "075": "Orphanages, Non-profit Services",
    "076": "Mortuaries, Cemeteries",
    "077": "Clubs, Lodges, Union Halls",
    "078": "Sanitariums, Rest Homes",
    "079": "Cultural Organizations",
    "080": "Vacant Governmental",
    "081": "Military",
    "082": "Forests, Parks, Recreational Areas",
    "083": "Public County Schools",
    "084": "Colleges",
    "085": "Hospitals",
    "086": "County Government",
    "087": "State Government",
    "088": "Federal Government",
    "089": "Municipal Government",
    "090": "Leasehold Interests",
    "091": "Utilities, Railroads, Pipelines, Canals",
    "092": "Mining, Petroleum and Gas Lands",
    "093": "Subsurface Rights",
    "094": "Right-of-Way, Streets, Roads, Ditches",
    "095": "Rivers, Lakes, Submerged Lands",
    "096": "Sewage, Waste Land, Marsh, Swamps",
    "097": "Outdoor Recreational, Parkland",
    "098": "Centrally Assessed",
    "099": "Acreage Not Zoned Agricultural",
}

_CATEGORY_RANGES = (
    (0, 9, "residential"),
    (10, 39, "commercial"),
    (40, 49, "industrial"),
    (50, 69, "agricultural"),
    (70, 79, "institutional"),
    (80, 89, "governmental"),
    (90, 98, "miscellaneous"),
    (99, 99, "acreage"),
)

_BUILDABLE = {"000", "010", "040", "070", "080", "099"}
_NOT_BUILDABLE = {"082", "093", "094", "095", "096", "097", "098"}


def pad_code(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    if text.endswith(".0"):
        text = text[:-2]
    return text.zfill(3)


def category_for(code: str) -> str:
    try:
        number = int(code)
    except ValueError:
        return "unknown"
    for lo, hi, name in _CATEGORY_RANGES:
        if lo <= number <= hi:
            return name
    return "unknown"


def describe_dor_code(
    code: Optional[str], overrides: Optional[Mapping[str, Mapping[str, Any]]] = None
) -> Dict[str, Any]:
    """Description, category and buildability for a padded DOR code.

    Vacant parcels are buildable, right-of-way and submerged land is not,
    and improved parcels are left undetermined (None).
    """
    if not code:
        return {"description": None, "category": "unknown", "buildable": None}
    info: Dict[str, Any] = {
        "description": DOR_USE_CODES.get(code, f"DOR Code {code}"),
        "category": category_for(code),
        "buildable": True
        if code in _BUILDABLE
        else (False if code in _NOT_BUILDABLE else None),
    }
    override = (overrides or {}).get(code)
    if override:
        for key in ("description", "category", "buildable"):
            if key in override:
                info[key] = override[key]
    return info
