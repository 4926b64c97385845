"""
opja_core.keys
--------------
Long-lived X25519 identity keys.

- KeyPair: raw 32-byte public key + wipeable 32-byte private key
- Identity: an authority name and its key ring (newest first, at most 5)
- KeyStore: generation, rotation and copy-on-read access to the current key

Only public bytes are exportable; private bytes stay in the owning process
and are zeroed when a pair is evicted or a snapshot goes out of scope.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
import os, threading, time

from cryptography.hazmat.primitives.asymmetric import x25519

from .config import Settings
from .constants import MAX_KEYS, PRIVATE_KEY_SIZE, PUBLIC_KEY_SIZE
from .errors import EntropyError
from .logger import get_logger
from .utils import b64url_e, key_hint, wipe

log = get_logger("OPJA.KeyStore")


@dataclass
class KeyPair:
    public: bytes
    private: bytearray = field(repr=False)
    created_at: float = field(default_factory=time.time)

    @property
    def public_b64url(self) -> str:
        return b64url_e(self.public)

    def copy(self) -> "KeyPair":
        return KeyPair(public=self.public, private=bytearray(self.private),
                       created_at=self.created_at)

    def wipe(self) -> None:
        wipe(self.private)

    @property
    def wiped(self) -> bool:
        return not any(self.private)

    def __enter__(self) -> "KeyPair":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()


@dataclass(frozen=True)
class Identity:
    name: str
    key_ring: Tuple[KeyPair, ...]
    rotated_at: float = field(default_factory=time.time)

    @property
    def public_keys(self) -> Tuple[bytes, ...]:
        return tuple(kp.public for kp in self.key_ring)


def random_bytes(n: int) -> bytearray:
    """n bytes from the OS CSPRNG; EntropyError if the source is unavailable."""
    try:
        data = os.urandom(n)
    except (OSError, NotImplementedError) as e:
        raise EntropyError(f"random source unavailable: {e}") from e
    if len(data) != n:
        raise EntropyError(f"short read from random source: got {len(data)}, want {n}")
    return bytearray(data)


def public_from_private(private: bytearray) -> bytes:
    sk = x25519.X25519PrivateKey.from_private_bytes(private)
    return sk.public_key().public_bytes_raw()


class KeyStore:
    """
    Generates and rotates identity key rings.

    Rotation and reads of the current key are serialized by one lock, and
    readers receive a private copy of the pair, so an operation that started
    before a rotation completes against the key it read.
    """

    def __init__(self, settings: Optional[Settings] = None, clock=time.time):
        self.settings = settings or Settings.from_env()
        self._clock = clock
        self._lock = threading.RLock()

    def generate(self) -> KeyPair:
        private = random_bytes(PRIVATE_KEY_SIZE)
        public = public_from_private(private)
        return KeyPair(public=public, private=private, created_at=self._clock())

    def initialize(self, name: str, n: int = MAX_KEYS) -> Identity:
        if not 1 <= n <= MAX_KEYS:
            raise ValueError(f"key ring size must be between 1 and {MAX_KEYS}, got {n}")
        ring = tuple(self.generate() for _ in range(n))
        log.info(f"[KEYS] initialized identity={name} keys={n} current={key_hint(ring[0].public)}")
        return Identity(name=name, key_ring=ring, rotated_at=self._clock())

    def rotate(self, identity: Identity) -> Identity:
        """Evict and wipe the oldest pair, prepend a fresh one."""
        with self._lock:
            now = self._clock()
            min_gap = self.settings.rotation_interval_days * 86400
            if now - identity.rotated_at < min_gap:
                log.warning(f"[KEYS] rotating {identity.name} sooner than the "
                            f"{self.settings.rotation_interval_days:g}-day rotation interval")

            fresh = self.generate()
            kept, evicted = identity.key_ring[:-1], identity.key_ring[-1]
            ring = (fresh,) + kept
            evicted.wipe()
            log.info(f"[KEYS] rotated identity={identity.name} current={key_hint(fresh.public)}")
            return Identity(name=identity.name, key_ring=ring, rotated_at=now)

    def current(self, identity: Identity) -> KeyPair:
        """
        Snapshot of key_ring[0]; the caller owns and wipes it. ValueError if
        that pair was wiped by a later rotation of this identity.
        """
        with self._lock:
            kp = identity.key_ring[0]
            if kp.wiped:
                raise ValueError(f"current key of {identity.name} was evicted; use the rotated identity")
            return kp.copy()

    def find(self, identity: Identity, public_key: bytes) -> Optional[KeyPair]:
        """Snapshot of the live ring entry whose public key matches, if any."""
        if len(public_key) != PUBLIC_KEY_SIZE:
            return None
        with self._lock:
            for kp in identity.key_ring:
                if kp.public == public_key and not kp.wiped:
                    return kp.copy()
        return None
