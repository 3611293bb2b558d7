import re
from typing import Dict, List, Optional

_QPUBLIC = (
    "https://qpublic.schneidercorp.com/Application.aspx"
    "?AppID=1067&LayerID=22538&PageTypeID=4&PageID=10198&Q=1964494354"
)

# Display name -> property appraiser search link.
FLORIDA_COUNTIES: Dict[str, str] = {
    "Alachua": "https://www.acpafl.org/",
    "Baker": _QPUBLIC,
    "Bay": _QPUBLIC,
    "Bradford": _QPUBLIC,
    "Brevard": "https://www.bcpao.us/",
    "Broward": "https://web.bcpa.net/",
    "Calhoun": _QPUBLIC,
    "Charlotte": "https://www.ccappraiser.com/",
    "Citrus": "https://www.citruspa.org/",
    "Clay": "https://www.ccpao.com/",
    "Collier": "https://www.collierappraiser.com/",
    "Columbia": _QPUBLIC,
    "DeSoto": _QPUBLIC,
    "Dixie": _QPUBLIC,
    "Duval": "https://pafl.coj.net/",
    "Escambia": "https://www.escpa.org/",
    "Flagler": "https://www.flaglerpa.com/",
    "Franklin": _QPUBLIC,
    "Gadsden": _QPUBLIC,
    "Gilchrist": _QPUBLIC,
    "Glades": _QPUBLIC,
    "Gulf": _QPUBLIC,
    "Hamilton": _QPUBLIC,
    "Hardee": _QPUBLIC,
    "Hendry": "https://www.hendrypa.net/",
    "Hernando": "https://www.hernandocounty.us/departments/departments-a-c/property-appraiser",
    "Highlands": "https://www.hcpao.org/",
    "Hillsborough": "https://www.hcpafl.org/",
    "Holmes": _QPUBLIC,
    "Indian River": "https://www.ircpa.org/",
    "Jackson": _QPUBLIC,
    "Jefferson": _QPUBLIC,
    "Lafayette": _QPUBLIC,
    "Lake": "https://www.lakecopropappr.com/",
    "Lee": "https://www.leepa.org/",
    "Leon": "https://www.leonpa.org/",
    "Levy": _QPUBLIC,
    "Liberty": _QPUBLIC,
    "Madison": _QPUBLIC,
    "Manatee": "https://www.manateepao.com/",
    "Marion": "https://www.pa.marion.fl.us/",
    "Martin": "https://www.pa.martin.fl.us/",
    "Miami-Dade": "https://www.miamidade.gov/pa/",
    "Monroe": "https://www.mcpafl.org/",
    "Nassau": "https://www.nassauflpa.com/",
    "Okaloosa": "https://www.okaloosapa.com/",
    "Okeechobee": "https://www.okeechobeepa.com/",
    "Orange": "https://www.ocpafl.org/",
    "Osceola": "https://www.property-appraiser.org/",
    "Palm Beach": "https://www.pbcgov.org/papa/",
    "Pasco": "https://www.pascopa.com/",
    "Pinellas": "https://www.pcpao.org/",
    "Polk": "https://www.polkpa.org/",
    "Putnam": _QPUBLIC,
    "St. Johns": "https://www.sjcpa.us/",
    "St. Lucie": "https://www.paslc.gov/",
    "Santa Rosa": "https://www.srcpa.org/",
    "Sarasota": "https://www.sc-pa.com/",
    "Seminole": "https://www.scpafl.org/",
    "Sumter": "https://www.sumterpa.com/",
    "Suwannee": _QPUBLIC,
    "Taylor": _QPUBLIC,
    "Union": _QPUBLIC,
    "Volusia": "https://www.vcpa.vcgov.org/",
    "Wakulla": _QPUBLIC,
    "Walton": "https://www.waltonpa.com/",
    "Washington": _QPUBLIC,
}

_ALIASES = {
    "dade": "miami_dade",
    "de_soto": "desoto",
}


def canonicalize_county_name(name: Optional[str]) -> str:
    """Slug for a county name: ``"St. Johns County"`` -> ``"st_johns"``."""
    if not name:
        return ""
    cleaned = name.strip().lower()
    cleaned = re.sub(r"\s+county$", "", cleaned)
    cleaned = re.sub(r"^saint\b", "st", cleaned)
    cleaned = re.sub(r"[\s\-\.]+", "_", cleaned)
    cleaned = re.sub(r"[^a-z0-9_]", "", cleaned)
    cleaned = re.sub(r"_+", "_", cleaned).strip("_")
    return _ALIASES.get(cleaned, cleaned)


_BY_SLUG = {canonicalize_county_name(name): name for name in FLORIDA_COUNTIES}


def county_display_name(name: Optional[str]) -> Optional[str]:
    return _BY_SLUG.get(canonicalize_county_name(name))


def is_florida_county(name: Optional[str]) -> bool:
    return county_display_name(name) is not None


def appraiser_link(name: Optional[str]) -> Optional[str]:
    display = county_display_name(name)
    return FLORIDA_COUNTIES[display] if display else None


def list_counties() -> List[Dict[str, str]]:
    return [
        {"name": name, "slug": canonicalize_county_name(name), "appraiserLink": link}
        for name, link in FLORIDA_COUNTIES.items()
    ]
