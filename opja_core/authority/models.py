# opja_core/authority/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List
import time

from opja_core.constants import (
    MAX_KEYS, PUBLIC_KEY_SIZE, PUBLIC_KEY_B64URL_LEN, RECORD_VERSION, RECORD_KEY_TYPE,
)
from opja_core.utils import b64url_e, b64url_d


@dataclass(frozen=True)
class TrustedKeySet:
    """
    Currently valid public keys of one authority, as last read from the
    directory. An empty set means nothing from that authority is trusted.
    """
    authority_name: str
    public_keys: FrozenSet[bytes] = frozenset()
    fetched_at: float = field(default_factory=time.time)
    ttl: float = 3600.0

    @classmethod
    def of(cls, authority_name: str, keys: Iterable[bytes], **kw) -> "TrustedKeySet":
        return cls(authority_name, frozenset(list(keys)[:MAX_KEYS]), **kw)

    @classmethod
    def untrusted(cls, authority_name: str) -> "TrustedKeySet":
        return cls(authority_name, frozenset(), ttl=0.0)

    def is_expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now > self.fetched_at + self.ttl

    def __contains__(self, public_key) -> bool:
        return bytes(public_key) in self.public_keys


def is_trusted(trusted_set: TrustedKeySet, public_key: bytes) -> bool:
    return public_key is not None and bytes(public_key) in trusted_set.public_keys


# --------- Directory record ----------
# One TXT string per key:  v=OPJA1; k=x25519; p=<43-char base64url>

def format_record(public_key: bytes) -> str:
    return f"v={RECORD_VERSION}; k={RECORD_KEY_TYPE}; p={b64url_e(public_key)}"


def parse_record(txt: str) -> bytes:
    """Public key from one record string; ValueError when malformed."""
    fields = {}
    for part in txt.strip().strip('"').split(";"):
        part = part.strip()
        if not part:
            continue
        name, sep, value = part.partition("=")
        if not sep:
            raise ValueError(f"malformed record field: {part!r}")
        fields[name.strip().lower()] = value.strip()

    if fields.get("v") != RECORD_VERSION:
        raise ValueError(f"unsupported record version: {fields.get('v')!r}")
    if fields.get("k") != RECORD_KEY_TYPE:
        raise ValueError(f"unsupported key type: {fields.get('k')!r}")
    encoded = fields.get("p", "")
    if len(encoded) != PUBLIC_KEY_B64URL_LEN:
        raise ValueError(f"public key must be {PUBLIC_KEY_B64URL_LEN} base64url chars")
    key = b64url_d(encoded)
    if len(key) != PUBLIC_KEY_SIZE:
        raise ValueError("public key must decode to 32 bytes")
    return key


def parse_records(records: Iterable[str]) -> List[bytes]:
    """Keys in published (decreasing-expiry) order, first MAX_KEYS kept."""
    keys: List[bytes] = []
    for txt in records:
        key = parse_record(txt)
        if key not in keys:
            keys.append(key)
    return keys[:MAX_KEYS]
