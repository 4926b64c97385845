from __future__ import annotations
from typing import Dict, Iterable, List
import threading

from opja_core.authority.directory import KeyDirectory
from opja_core.authority.models import TrustedKeySet, format_record, parse_records
from opja_core.errors import DiscoveryError
from opja_core.logger import get_logger

log = get_logger("OPJA.Directory.Memory")


class InMemoryDirectory(KeyDirectory):
    """
    Directory held in process, for tests and static deployments.
    Records are kept in their published string form and parsed on lookup.
    """
    name = "memory"

    def __init__(self, ttl: float = 3600.0):
        self.ttl = ttl
        self._records: Dict[str, List[str]] = {}
        self._down = set()
        self._lock = threading.Lock()

    def publish(self, authority_name: str, public_keys: Iterable[bytes]) -> None:
        """Replace the authority's record set; newest key first."""
        with self._lock:
            self._records[authority_name] = [format_record(k) for k in public_keys]
        log.info(f"[DIR PUB] {authority_name} keys={len(self._records[authority_name])}")

    def publish_records(self, authority_name: str, records: Iterable[str]) -> None:
        with self._lock:
            self._records[authority_name] = list(records)

    def set_unavailable(self, authority_name: str, down: bool = True) -> None:
        with self._lock:
            if down:
                self._down.add(authority_name)
            else:
                self._down.discard(authority_name)

    def lookup(self, authority_name: str) -> TrustedKeySet:
        with self._lock:
            if authority_name in self._down:
                raise DiscoveryError(authority_name, "directory unavailable")
            records = self._records.get(authority_name)
        if records is None:
            raise DiscoveryError(authority_name, "no record published")
        try:
            keys = parse_records(records)
        except ValueError as e:
            raise DiscoveryError(authority_name, str(e)) from e
        return TrustedKeySet.of(authority_name, keys, ttl=self.ttl)
