from __future__ import annotations
from collections import OrderedDict
from typing import Optional, Tuple
import threading, time

from opja_core.cache.models import TransactionKey
from opja_core.cache.provider import LabelKeyCache
from opja_core.constants import AEAD_KEY_SIZE
from opja_core.logger import get_logger

log = get_logger("OPJA.KeyCache")


class InMemoryKeyCache(LabelKeyCache):
    """
    Lock-protected in-process key cache.

    ttl: seconds a key stays usable after store() (0 = no expiry)
    max_entries: oldest keys are evicted past this bound (0 = unbounded)
    """

    def __init__(self, ttl: float = 0.0, max_entries: int = 0, clock=time.time):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._keys: "OrderedDict[Tuple[str, str], TransactionKey]" = OrderedDict()
        self._lock = threading.Lock()

    def store(self, authority_name: str, transaction_id: str, key) -> None:
        if len(key) != AEAD_KEY_SIZE:
            raise ValueError(f"transaction key must be {AEAD_KEY_SIZE} bytes, got {len(key)}")
        entry = TransactionKey(authority_name, transaction_id, bytearray(key), self._clock())
        with self._lock:
            old = self._keys.pop(entry.cache_key, None)
            if old is not None:
                old.wipe()
            self._keys[entry.cache_key] = entry
            while self.max_entries and len(self._keys) > self.max_entries:
                _, oldest = self._keys.popitem(last=False)
                oldest.wipe()
                log.info(f"[CACHE] evicted authority={oldest.authority_name} "
                         f"txid={oldest.transaction_id} (capacity)")
        log.debug(f"[CACHE] stored authority={authority_name} txid={transaction_id}")

    def lookup(self, authority_name: str, transaction_id: str) -> Optional[bytearray]:
        with self._lock:
            entry = self._keys.get((authority_name, transaction_id))
            if entry is None:
                return None
            if self._expired(entry):
                del self._keys[entry.cache_key]
                entry.wipe()
                log.info(f"[CACHE] expired authority={authority_name} txid={transaction_id}")
                return None
            return bytearray(entry.key)

    def evict(self, authority_name: str, transaction_id: str) -> bool:
        with self._lock:
            entry = self._keys.pop((authority_name, transaction_id), None)
        if entry is None:
            return False
        entry.wipe()
        return True

    def purge_expired(self) -> int:
        with self._lock:
            stale = [k for k, e in self._keys.items() if self._expired(e)]
            for k in stale:
                self._keys.pop(k).wipe()
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            for entry in self._keys.values():
                entry.wipe()
            self._keys.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def _expired(self, entry: TransactionKey) -> bool:
        return bool(self.ttl) and self._clock() > entry.stored_at + self.ttl
