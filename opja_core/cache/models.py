# opja_core/cache/models.py
from __future__ import annotations
from dataclasses import dataclass, field
import time

from opja_core.utils import wipe


@dataclass
class TransactionKey:
    """
    Cache-level representation of one derived per-transaction AEAD key,
    identified by (authority_name, transaction_id).
    """
    authority_name: str
    transaction_id: str
    key: bytearray = field(repr=False)
    stored_at: float = field(default_factory=time.time)

    @property
    def cache_key(self):
        return (self.authority_name, self.transaction_id)

    def wipe(self) -> None:
        wipe(self.key)

    def __enter__(self) -> "TransactionKey":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()
