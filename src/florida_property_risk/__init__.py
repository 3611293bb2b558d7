"""Package initializer for `florida_property_risk`."""

from .analyzer import PropertyAnalyzer, analyze_property, derive_overall_status
from .models import OverallStatus, PropertyReport

__all__ = [
    "OverallStatus",
    "PropertyAnalyzer",
    "PropertyReport",
    "analyze_property",
    "derive_overall_status",
]
