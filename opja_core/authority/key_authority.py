"""
opja_core.authority.key_authority
---------------------------------
Trust decisions for counterparty public keys.

KeyAuthority wraps a KeyDirectory with a per-authority cache of the last
successfully looked-up TrustedKeySet. Directory calls run on a worker
thread with a timeout. A successful lookup replaces the cached set; a
failed or timed-out lookup falls back to the cached set while it is
fresh, and to "no trust" afterwards.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import replace
from typing import Dict, Optional
import threading, time

from opja_core.authority.directory import KeyDirectory
from opja_core.authority.models import TrustedKeySet, is_trusted
from opja_core.errors import DiscoveryError
from opja_core.logger import get_logger
from opja_core.utils import key_hint

log = get_logger("OPJA.KeyAuthority")


class KeyAuthority:
    def __init__(
        self,
        directory: KeyDirectory,
        timeout: float = 5.0,
        ttl: Optional[float] = None,
        clock=time.time,
        max_workers: int = 4,
    ):
        self.directory = directory
        self.timeout = timeout
        self.ttl = ttl
        self._clock = clock
        self._cache: Dict[str, TrustedKeySet] = {}
        self._lock = threading.Lock()
        self._pool = ThreadPoolExecutor(max_workers=max_workers,
                                        thread_name_prefix="opja-discovery")

    def lookup(self, authority_name: str) -> TrustedKeySet:
        """Fresh directory lookup; DiscoveryError on failure or timeout."""
        future = self._pool.submit(self.directory.lookup, authority_name)
        try:
            result = future.result(timeout=self.timeout)
        except FuturesTimeout as e:
            future.cancel()
            raise DiscoveryError(authority_name, f"lookup timed out after {self.timeout}s") from e

        stamped = replace(result, fetched_at=self._clock(),
                          ttl=result.ttl if self.ttl is None else self.ttl)
        with self._lock:
            self._cache[authority_name] = stamped
        log.info(f"[TRUST] refreshed {authority_name} keys={len(stamped.public_keys)}")
        return stamped

    def cached(self, authority_name: str) -> Optional[TrustedKeySet]:
        with self._lock:
            return self._cache.get(authority_name)

    def refresh(self, authority_name: str) -> TrustedKeySet:
        """lookup() with the last-known fallback. Never raises DiscoveryError."""
        try:
            return self.lookup(authority_name)
        except DiscoveryError as e:
            last = self.cached(authority_name)
            if last is not None and not last.is_expired(self._clock()):
                log.warning(f"[TRUST] {e}; using last known key set for {authority_name}")
                return last
            log.error(f"[TRUST] {e}; no fresh key set, {authority_name} is untrusted")
            return TrustedKeySet.untrusted(authority_name)

    def trusted_keys(self, authority_name: str) -> TrustedKeySet:
        """Cached set while fresh, otherwise refresh()."""
        last = self.cached(authority_name)
        if last is not None and not last.is_expired(self._clock()):
            return last
        return self.refresh(authority_name)

    def is_trusted(self, authority_name: str, public_key: bytes, fresh: bool = False) -> bool:
        trusted_set = self.refresh(authority_name) if fresh else self.trusted_keys(authority_name)
        ok = is_trusted(trusted_set, public_key)
        if not ok:
            log.warning(f"[TRUST] key {key_hint(public_key)} not trusted for {authority_name}")
        return ok

    def invalidate(self, authority_name: str) -> None:
        with self._lock:
            self._cache.pop(authority_name, None)

    def close(self) -> None:
        self._pool.shutdown(wait=False)
        self.directory.close()
