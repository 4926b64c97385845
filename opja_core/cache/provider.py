# opja_core/cache/provider.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional


class LabelKeyCache(ABC):
    """
    Holds derived transaction keys for label decryption.

    A lookup miss is not an error: it tells the caller to ignore labels for
    that transaction. Implementations keep their own copy of stored keys,
    never log key bytes and wipe keys when they are evicted.
    """

    @abstractmethod
    def store(self, authority_name: str, transaction_id: str, key) -> None:
        ...

    @abstractmethod
    def lookup(self, authority_name: str, transaction_id: str) -> Optional[bytearray]:
        ...

    @abstractmethod
    def evict(self, authority_name: str, transaction_id: str) -> bool:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

