# opja_core/cache/__init__.py

from .models import TransactionKey
from .provider import LabelKeyCache
from .providers.memory_provider import InMemoryKeyCache
from opja_core.config import Settings
import os


def load_key_cache(config: dict | None = None) -> LabelKeyCache:
    """
    Factory resolver for the transaction key cache.

    For now:
        - memory (default)
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("OPJA_KEY_CACHE_PROVIDER", "memory")

    if provider == "memory":
        settings = Settings.from_env(config)
        return InMemoryKeyCache(ttl=settings.key_cache_ttl,
                                max_entries=settings.key_cache_max_entries)
    raise ValueError(f"Unknown key cache provider: {provider}")


__all__ = [
    "TransactionKey",
    "LabelKeyCache",
    "InMemoryKeyCache",
    "load_key_cache",
]
