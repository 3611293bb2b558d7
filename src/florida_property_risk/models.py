from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SourceStatus(str, Enum):
    SUCCESS = "success"
    NO_DATA = "no_data"
    ERROR = "error"


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    UPSTREAM = "upstream"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class Proximity(str, Enum):
    ON_PROPERTY = "ON_PROPERTY"
    NEARBY = "NEARBY"
    IN_AREA = "IN_AREA"
    NONE = "NONE"
    UNKNOWN = "UNKNOWN"


class ZoningBasis(str, Enum):
    LOCAL = "local"
    FLU_ONLY = "flu_only"
    STATEWIDE_FLU = "statewide_flu"
    NONE = "none"


class OverallStatus(str, Enum):
    REJECT = "REJECT"
    INCOMPLETE = "INCOMPLETE"
    HIGH_RISK = "HIGH_RISK"
    EVALUATE_WEIGHTED = "EVALUATE_WEIGHTED"
    EVALUATE = "EVALUATE"
    APPROVED = "APPROVED"


STATUS_LABELS = {
    SourceStatus.SUCCESS: "Data found",
    SourceStatus.NO_DATA: "No data at this location",
    SourceStatus.ERROR: "Source unavailable",
}

PROXIMITY_LABELS = {
    Proximity.ON_PROPERTY: "Wetland on the property",
    Proximity.NEARBY: "Wetland nearby",
    Proximity.IN_AREA: "Wetland in the surrounding area",
    Proximity.NONE: "No mapped wetlands within the search area",
    Proximity.UNKNOWN: "Wetlands not verified",
}

OVERALL_LABELS = {
    OverallStatus.REJECT: "Reject: high flood risk",
    OverallStatus.INCOMPLETE: "Incomplete: wetlands could not be verified",
    OverallStatus.HIGH_RISK: "High risk: high-risk wetland on the property",
    OverallStatus.EVALUATE_WEIGHTED: "Evaluate: high-risk wetland near the property",
    OverallStatus.EVALUATE: "Evaluate: wetlands in the vicinity",
    OverallStatus.APPROVED: "Approved: no blocking risk found",
}


class ReportModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SourceResult(ReportModel):
    """Common envelope of every per-source answer.

    ``error`` is only set when the source could not be queried; an empty but
    valid answer is ``found=False`` with status ``no_data``.
    """

    found: bool = False
    status: SourceStatus = SourceStatus.NO_DATA
    label: str = STATUS_LABELS[SourceStatus.NO_DATA]
    source: str = ""
    note: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def failure(
        cls,
        source: str,
        error: str,
        kind: ErrorKind = ErrorKind.TRANSPORT,
        **fields: Any,
    ):
        return cls(
            found=False,
            status=SourceStatus.ERROR,
            label=STATUS_LABELS[SourceStatus.ERROR],
            source=source,
            error=error,
            error_kind=kind,
            **fields,
        )

    @classmethod
    def empty(cls, source: str, **fields: Any):
        return cls(found=False, status=SourceStatus.NO_DATA, source=source, **fields)

    @classmethod
    def success(cls, source: str, **fields: Any):
        return cls(
            found=True,
            status=SourceStatus.SUCCESS,
            label=STATUS_LABELS[SourceStatus.SUCCESS],
            source=source,
            **fields,
        )


class FloodResult(SourceResult):
    zone: Optional[str] = None
    subtype: Optional[str] = None
    bfe: Optional[float] = None
    risk: str = "unknown"
    risk_label: Optional[str] = None
    explanation: Optional[str] = None
    insurance: Optional[str] = None
    coastal: bool = False
    sfha: bool = False


class LandUseResult(SourceResult):
    parcel_id: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    buildable: Optional[bool] = None
    owner: Optional[str] = None
    land_value: Optional[float] = None
    just_value: Optional[float] = None
    last_sale_price: Optional[float] = None
    last_sale_date: Optional[str] = None
    legal_desc: Optional[str] = None
    county_code: Optional[str] = None
    land_sqft: Optional[float] = None
    parcel_acres: Optional[float] = None
    buildings: Optional[int] = None
    address: Optional[str] = None
    city: Optional[str] = None
    parcel_mismatch: bool = False


class ZoningResult(SourceResult):
    code: Optional[str] = None
    description: Optional[str] = None
    future_land_use: Optional[str] = None
    future_land_use_desc: Optional[str] = None
    jurisdiction: Optional[str] = None
    is_municipal: bool = False
    basis: ZoningBasis = ZoningBasis.NONE
    partial: bool = False
    manual_link: Optional[str] = None


class WetlandFeature(ReportModel):
    code: str
    wetland_type: Optional[str] = None
    decoded_classification: str
    water_regime: Optional[str] = None
    acres: float = 0.0
    risk: str
    risk_label: str
    buildability_note: str


class WetlandsReport(SourceResult):
    proximity: Proximity = Proximity.NONE
    proximity_label: str = PROXIMITY_LABELS[Proximity.NONE]
    buffer_meters_used: Optional[int] = None
    features: List[WetlandFeature] = Field(default_factory=list)
    count: int = 0
    total_acres: float = 0.0
    highest_risk: Optional[WetlandFeature] = None
    disclaimers: List[str] = Field(default_factory=list)


class PropertyReport(ReportModel):
    county: str
    parcel_id: Optional[str] = None
    coordinates: Dict[str, float]
    fema: FloodResult
    wetlands: WetlandsReport
    land_use: LandUseResult
    zoning: ZoningResult
    overall_status: OverallStatus
    overall_label: str
    appraiser_link: Optional[str] = None
    timestamp: str
