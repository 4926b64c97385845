"""
opja_core.labels
----------------
AES-128-GCM sealing and opening of single-byte boolean labels.

Sealed label wire format (standard base64, padded, 40 chars):

    nonce (12) || ciphertext (1) || tag (16)

The nonce is base_nonce XOR sequence, where the sequence is a 12-byte
big-endian counter owned by the sealing side. The all-ones sequence value
is never used, so at most 2**96 - 1 labels are sealed under one key.
The associated data is the match transaction id.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Union
import binascii, threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .constants import (
    AEAD_KEY_SIZE, NONCE_SIZE, TAG_SIZE, LABEL_ONE, LABEL_ZERO, MAX_SEQUENCE,
)
from .errors import AuthenticationError, InvalidLabelError, SequenceExhaustedError
from .keys import random_bytes
from .logger import get_logger
from .utils import b64e, b64d, wipe

log = get_logger("OPJA.LabelCodec")

AssociatedData = Union[str, bytes]


def _aad(associated_data: AssociatedData) -> bytes:
    if isinstance(associated_data, str):
        return associated_data.encode("utf-8")
    return bytes(associated_data)


def _check_key(key) -> None:
    if len(key) != AEAD_KEY_SIZE:
        raise ValueError(f"transaction key must be {AEAD_KEY_SIZE} bytes, got {len(key)}")


@dataclass
class SealingState:
    """Base nonce and sequence counter of one sealing session. Not copyable."""
    base_nonce: bytes
    sequence: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self):
        if len(self.base_nonce) != NONCE_SIZE:
            raise ValueError(f"base nonce must be {NONCE_SIZE} bytes, got {len(self.base_nonce)}")
        if not 0 <= self.sequence <= MAX_SEQUENCE:
            raise ValueError("sequence out of range")

    @property
    def exhausted(self) -> bool:
        return self.sequence >= MAX_SEQUENCE

    def next_nonce(self) -> bytes:
        """Nonce for the current sequence value, then advance. Caller holds the lock."""
        if self.sequence >= MAX_SEQUENCE:
            raise SequenceExhaustedError("sequence counter exhausted; establish a new transaction key")
        seq = self.sequence.to_bytes(NONCE_SIZE, "big")
        nonce = bytes(b ^ s for b, s in zip(self.base_nonce, seq))
        self.sequence += 1
        return nonce


def new_sealing_state() -> SealingState:
    return SealingState(base_nonce=bytes(random_bytes(NONCE_SIZE)))


def _seal(key, state: SealingState, plaintext: bytes, associated_data: AssociatedData) -> str:
    _check_key(key)
    aead = AESGCM(key)
    with state._lock:
        nonce = state.next_nonce()
        ct = aead.encrypt(nonce, plaintext, _aad(associated_data))
    return b64e(nonce + ct)


def seal_label(key, state: SealingState, label: bool, associated_data: AssociatedData) -> str:
    """Encrypt one boolean label; SequenceExhaustedError once the counter is spent."""
    return _seal(key, state, bytes([LABEL_ONE if label else LABEL_ZERO]), associated_data)


def open_label(key, sealed: str, associated_data: AssociatedData) -> bool:
    """
    Decrypt one sealed label.

    Raises AuthenticationError for malformed input or a tag that does not
    verify (tampering, wrong key, wrong transaction id) and InvalidLabelError
    when the plaintext is not exactly 0x00 or 0xFF.
    """
    _check_key(key)
    try:
        raw = b64d(sealed)
    except (binascii.Error, ValueError) as e:
        raise AuthenticationError(f"sealed label is not valid base64: {e}") from e
    if len(raw) < NONCE_SIZE + TAG_SIZE:
        raise AuthenticationError(f"sealed label too short: {len(raw)} bytes")

    nonce, ct = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
    try:
        pt = AESGCM(key).decrypt(nonce, ct, _aad(associated_data))
    except InvalidTag as e:
        raise AuthenticationError("label failed authentication") from e

    if pt == bytes([LABEL_ONE]):
        return True
    if pt == bytes([LABEL_ZERO]):
        return False
    raise InvalidLabelError(f"invalid label plaintext ({len(pt)} bytes)")


def try_open_label(key, sealed: str, associated_data: AssociatedData) -> Optional[bool]:
    """open_label() that returns None instead of raising for a label to be dropped."""
    try:
        return open_label(key, sealed, associated_data)
    except (AuthenticationError, InvalidLabelError) as e:
        log.debug(f"[LABEL] dropped: {e}")
        return None


class LabelSealer:
    """
    Sender-side sealing session: a TransactionKey plus its nonce state.

    Holds its own copy of the key; wipe() (or leaving a with-block) zeroes it.
    """

    def __init__(self, key, state: Optional[SealingState] = None):
        _check_key(key)
        self._key = bytearray(key)
        self.state = state or new_sealing_state()

    def seal(self, label: bool, associated_data: AssociatedData) -> str:
        return seal_label(self._key, self.state, label, associated_data)

    def seal_one(self, associated_data: AssociatedData) -> str:
        return self.seal(True, associated_data)

    def seal_zero(self, associated_data: AssociatedData) -> str:
        return self.seal(False, associated_data)

    def wipe(self) -> None:
        wipe(self._key)

    def __enter__(self) -> "LabelSealer":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()
