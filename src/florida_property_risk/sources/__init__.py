from .flood import FloodSource
from .land_use import LandUseSource
from .wetlands import WetlandsSource
from .zoning import ZoningRouter

__all__ = ["FloodSource", "LandUseSource", "WetlandsSource", "ZoningRouter"]
