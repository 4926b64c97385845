# opja_core/authority/__init__.py
from opja_core.authority.directory import KeyDirectory
from opja_core.authority.key_authority import KeyAuthority
from opja_core.authority.models import (
    TrustedKeySet, is_trusted, format_record, parse_record, parse_records,
)
from opja_core.authority.providers.memory_directory import InMemoryDirectory
from opja_core.authority.providers.doh_directory import DohDirectory
from opja_core.config import Settings


def load_key_directory(config: dict | None = None) -> KeyDirectory:
    """
    Factory resolver for the key discovery backend.

        - memory (default)
        - doh    → DNS-over-HTTPS TXT lookup at OPJA_DOH_URL
    """
    settings = Settings.from_env(config)

    if settings.directory_provider == "memory":
        return InMemoryDirectory(ttl=settings.trust_ttl)

    if settings.directory_provider == "doh":
        return DohDirectory(settings.doh_url, timeout=settings.discovery_timeout,
                            ttl=settings.trust_ttl)

    raise ValueError(f"Unknown directory provider: {settings.directory_provider}")


def load_key_authority(config: dict | None = None) -> KeyAuthority:
    settings = Settings.from_env(config)
    return KeyAuthority(load_key_directory(config), timeout=settings.discovery_timeout,
                        ttl=settings.trust_ttl)


__all__ = [
    "KeyDirectory",
    "KeyAuthority",
    "TrustedKeySet",
    "is_trusted",
    "format_record",
    "parse_record",
    "parse_records",
    "InMemoryDirectory",
    "DohDirectory",
    "load_key_directory",
    "load_key_authority",
]
