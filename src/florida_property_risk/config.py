from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import FrozenSet, Optional, Tuple


DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent / "data" / "zoning_registry.json"

# Self-hosted county GIS servers with broken certificate chains.
DEFAULT_RELAXED_TLS_HOSTS = ("gis.highlandsfl.gov", "mgrcmaps.org")

# Roughly: the footprint of a half-acre lot from its centroid, the adjoining
# lots, and the surrounding neighborhood.
DEFAULT_WETLAND_RADII_M = (25, 100, 400)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name, "").strip()
    return raw or None


def _env_radii(name: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        radii = tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        return default
    if not radii or any(r <= 0 for r in radii):
        return default
    return tuple(sorted(radii))


def _env_hosts(name: str, default: Tuple[str, ...]) -> FrozenSet[str]:
    raw = os.getenv(name)
    if raw is None:
        return frozenset(default)
    hosts = {part.strip().lower() for part in raw.split(",")}
    # "*" and friends are never honored; hosts must be named one by one.
    return frozenset(h for h in hosts if h and "*" not in h)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Built once from the environment and handed to every service object.
    Defaults describe a working production setup.
    """

    registry_path: Path = DEFAULT_REGISTRY_PATH
    request_timeout_s: float = 10.0
    wetlands_timeout_s: float = 15.0
    retries: int = 1
    backoff_step_s: float = 1.0
    wetland_radii_m: Tuple[int, ...] = DEFAULT_WETLAND_RADII_M
    cache_enabled: bool = True
    cache_ttl_s: float = 30 * 60
    cache_max_entries: int = 512
    cache_path: Optional[str] = None
    disk_cache_ttl_s: float = 7 * 24 * 60 * 60
    usage_path: Optional[str] = None
    usage_soft_limit: int = 5000
    relaxed_tls_hosts: FrozenSet[str] = frozenset(DEFAULT_RELAXED_TLS_HOSTS)
    admin_token: Optional[str] = None
    user_agent: str = "florida-property-risk/0.1"

    @classmethod
    def from_env(cls) -> "Settings":
        registry = _env_str("FPR_ZONING_REGISTRY")
        return cls(
            registry_path=Path(registry) if registry else DEFAULT_REGISTRY_PATH,
            request_timeout_s=_env_float("FPR_REQUEST_TIMEOUT_S", 10.0),
            wetlands_timeout_s=_env_float("FPR_WETLANDS_TIMEOUT_S", 15.0),
            retries=max(_env_int("FPR_REQUEST_RETRIES", 1), 0),
            backoff_step_s=_env_float("FPR_BACKOFF_STEP_S", 1.0),
            wetland_radii_m=_env_radii("FPR_WETLAND_RADII_M", DEFAULT_WETLAND_RADII_M),
            cache_enabled=_env_bool("FPR_CACHE", True),
            cache_ttl_s=_env_float("FPR_CACHE_TTL_S", 30 * 60),
            cache_max_entries=max(_env_int("FPR_CACHE_MAX_ENTRIES", 512), 1),
            cache_path=_env_str("FPR_CACHE_PATH"),
            disk_cache_ttl_s=_env_float("FPR_DISK_CACHE_TTL_S", 7 * 24 * 60 * 60),
            usage_path=_env_str("FPR_USAGE_PATH"),
            usage_soft_limit=_env_int("FPR_USAGE_SOFT_LIMIT", 5000),
            relaxed_tls_hosts=_env_hosts(
                "FPR_RELAXED_TLS_HOSTS", DEFAULT_RELAXED_TLS_HOSTS
            ),
            admin_token=_env_str("FPR_ADMIN_TOKEN"),
            user_agent=_env_str("FPR_HTTP_USER_AGENT") or "florida-property-risk/0.1",
        )

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
