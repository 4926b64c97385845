"""
opja_core.config
----------------
Runtime settings, resolved from explicit values first and then
OPJA_* environment variables.

    OPJA_DIRECTORY_PROVIDER      memory | doh              (default: memory)
    OPJA_DOH_URL                 DNS-over-HTTPS JSON endpoint
    OPJA_DISCOVERY_TIMEOUT       seconds per directory lookup
    OPJA_TRUST_TTL               seconds a looked-up key set stays fresh
    OPJA_KEY_CACHE_TTL           seconds a transaction key is kept (default 3600, 0 = forever)
    OPJA_KEY_CACHE_MAX_ENTRIES   bound on cached transaction keys (0 = unbounded)
    OPJA_ROTATION_INTERVAL_DAYS  advisory minimum spacing between rotations
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import os

from .constants import TRUST_WINDOW_DAYS, MAX_KEYS

DEFAULT_DOH_URL = "https://cloudflare-dns.com/dns-query"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


@dataclass
class Settings:
    directory_provider: str = "memory"
    doh_url: str = DEFAULT_DOH_URL
    discovery_timeout: float = 5.0
    trust_ttl: float = 3600.0
    # cached keys are not re-validated; expire them on the trust cadence
    key_cache_ttl: float = 3600.0
    key_cache_max_entries: int = 0
    # 5 keys spread over the 180-day trust window
    rotation_interval_days: float = TRUST_WINDOW_DAYS / MAX_KEYS

    @classmethod
    def from_env(cls, config: Optional[Dict[str, Any]] = None) -> "Settings":
        config = config or {}
        return cls(
            directory_provider=(config.get("directory_provider")
                                or os.getenv("OPJA_DIRECTORY_PROVIDER", "memory")).lower(),
            doh_url=config.get("doh_url") or os.getenv("OPJA_DOH_URL", DEFAULT_DOH_URL),
            discovery_timeout=float(config.get("discovery_timeout")
                                    or _env_float("OPJA_DISCOVERY_TIMEOUT", 5.0)),
            trust_ttl=float(config.get("trust_ttl") or _env_float("OPJA_TRUST_TTL", 3600.0)),
            key_cache_ttl=float(config.get("key_cache_ttl")
                                or _env_float("OPJA_KEY_CACHE_TTL", 3600.0)),
            key_cache_max_entries=int(config.get("key_cache_max_entries")
                                      or _env_int("OPJA_KEY_CACHE_MAX_ENTRIES", 0)),
            rotation_interval_days=float(config.get("rotation_interval_days")
                                         or _env_float("OPJA_ROTATION_INTERVAL_DAYS",
                                                       TRUST_WINDOW_DAYS / MAX_KEYS)),
        )
