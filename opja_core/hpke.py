"""
opja_core.hpke
--------------
Authenticated key establishment for label encryption (RFC 9180, Auth mode):

- DHKEM(X25519, HKDF-SHA256) AuthEncap / AuthDecap
- HKDF-SHA256 labeled extract-then-expand key schedule
- Exporter output of 16 bytes, used as the AES-128-GCM TransactionKey

encapsulate()/decapsulate() are the entry points; auth_encap(), auth_decap()
and export() expose the RFC steps individually.

The exporter context and the key-schedule info are both the caller's
context_info (typically the sender's authority name). Sender and receiver
derive byte-identical keys from matching inputs.

Every intermediate secret is held in a bytearray and zeroed before return.
"""

from __future__ import annotations
from typing import Optional, Tuple

from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

from .constants import (
    KEM_ID, KDF_ID, AEAD_ID, MODE_AUTH, HPKE_VERSION_LABEL,
    PUBLIC_KEY_SIZE, PRIVATE_KEY_SIZE, ENC_SIZE, DH_SECRET_SIZE, HASH_SIZE,
    AEAD_KEY_SIZE,
)
from .errors import KeyEncapsulationError, KeyDecapsulationError
from .keys import KeyPair, public_from_private, random_bytes
from .logger import get_logger
from .utils import key_hint, wipe

log = get_logger("OPJA.KeySchedule")


def _i2osp(n: int, w: int) -> bytes:
    return n.to_bytes(w, "big")


KEM_SUITE_ID = b"KEM" + _i2osp(KEM_ID, 2)
HPKE_SUITE_ID = b"HPKE" + _i2osp(KEM_ID, 2) + _i2osp(KDF_ID, 2) + _i2osp(AEAD_ID, 2)


# --------- HKDF-SHA256 ----------
def _extract(salt, ikm) -> bytearray:
    h = hmac.HMAC(salt if len(salt) else b"\x00" * HASH_SIZE, hashes.SHA256())
    h.update(ikm)
    return bytearray(h.finalize())

def _expand(prk, info: bytes, length: int) -> bytearray:
    return bytearray(HKDFExpand(algorithm=hashes.SHA256(), length=length, info=info).derive(prk))

def labeled_extract(suite_id: bytes, salt, label: bytes, ikm) -> bytearray:
    labeled_ikm = bytearray(HPKE_VERSION_LABEL + suite_id + label) + ikm
    try:
        return _extract(salt, labeled_ikm)
    finally:
        wipe(labeled_ikm)

def labeled_expand(suite_id: bytes, prk, label: bytes, info: bytes, length: int) -> bytearray:
    labeled_info = _i2osp(length, 2) + HPKE_VERSION_LABEL + suite_id + label + bytes(info)
    return _expand(prk, labeled_info, length)


# --------- DHKEM(X25519) ----------
def derive_key_pair(ikm: bytes) -> KeyPair:
    """Deterministic X25519 key pair from input keying material (RFC 9180 DeriveKeyPair)."""
    dkp_prk = labeled_extract(KEM_SUITE_ID, b"", b"dkp_prk", ikm)
    try:
        private = labeled_expand(KEM_SUITE_ID, dkp_prk, b"sk", b"", PRIVATE_KEY_SIZE)
    finally:
        wipe(dkp_prk)
    return KeyPair(public=public_from_private(private), private=private)

def _dh(private, public: bytes) -> bytearray:
    sk = x25519.X25519PrivateKey.from_private_bytes(private)
    pk = x25519.X25519PublicKey.from_public_bytes(public)
    shared = bytearray(sk.exchange(pk))
    if not any(shared):
        raise ValueError("X25519 produced an all-zero shared secret")
    return shared

def _extract_and_expand(dh: bytearray, kem_context: bytes) -> bytearray:
    eae_prk = labeled_extract(KEM_SUITE_ID, b"", b"eae_prk", dh)
    try:
        return labeled_expand(KEM_SUITE_ID, eae_prk, b"shared_secret", kem_context, DH_SECRET_SIZE)
    finally:
        wipe(eae_prk)


# --------- Key schedule + exporter ----------
def export(shared_secret, info: bytes, exporter_context: bytes, length: int) -> bytearray:
    """Auth-mode key schedule (empty PSK) followed by Export(exporter_context, length)."""
    psk_id_hash = labeled_extract(HPKE_SUITE_ID, b"", b"psk_id_hash", b"")
    info_hash = labeled_extract(HPKE_SUITE_ID, b"", b"info_hash", info)
    context = bytes([MODE_AUTH]) + bytes(psk_id_hash) + bytes(info_hash)
    secret = labeled_extract(HPKE_SUITE_ID, shared_secret, b"secret", b"")
    exporter_secret = bytearray()
    try:
        exporter_secret = labeled_expand(HPKE_SUITE_ID, secret, b"exp", context, HASH_SIZE)
        return labeled_expand(HPKE_SUITE_ID, exporter_secret, b"sec", exporter_context, length)
    finally:
        wipe(secret)
        wipe(exporter_secret)


def _check_len(name: str, value, size: int, error) -> None:
    if value is None or len(value) != size:
        got = "None" if value is None else len(value)
        raise error(f"{name} must be {size} bytes, got {got}")


def auth_encap(sender_private, receiver_public: bytes, ephemeral: KeyPair) -> Tuple[bytes, bytearray]:
    """AuthEncap: (enc, shared_secret). Does not wipe the ephemeral pair."""
    dh = bytearray()
    try:
        try:
            pk_s = public_from_private(sender_private)
            dh += _dh(ephemeral.private, receiver_public)
            dh += _dh(sender_private, receiver_public)
        except ValueError as e:
            raise KeyEncapsulationError(f"invalid key material: {e}") from e
        enc = ephemeral.public
        kem_context = enc + bytes(receiver_public) + pk_s
        return enc, _extract_and_expand(dh, kem_context)
    finally:
        wipe(dh)


def auth_decap(encapsulated_key: bytes, receiver_private, sender_public: bytes) -> bytearray:
    """AuthDecap: the shared secret matching auth_encap()."""
    dh = bytearray()
    try:
        try:
            pk_r = public_from_private(receiver_private)
            dh += _dh(receiver_private, encapsulated_key)
            dh += _dh(receiver_private, sender_public)
        except ValueError as e:
            raise KeyDecapsulationError(f"invalid key material: {e}") from e
        kem_context = bytes(encapsulated_key) + pk_r + bytes(sender_public)
        return _extract_and_expand(dh, kem_context)
    finally:
        wipe(dh)


def encapsulate(
    sender_private,
    receiver_public: bytes,
    context_info: bytes,
    ephemeral: Optional[KeyPair] = None,
) -> Tuple[bytes, bytearray]:
    """
    Sender side. Returns (encapsulated_key, transaction_key).

    A fresh ephemeral pair is generated unless one is supplied; it is wiped
    before returning either way, including on error.
    """
    if ephemeral is None:
        sk_e = random_bytes(PRIVATE_KEY_SIZE)
        ephemeral = KeyPair(public=public_from_private(sk_e), private=sk_e)

    shared_secret = bytearray()
    with ephemeral:
        _check_len("sender private key", sender_private, PRIVATE_KEY_SIZE, KeyEncapsulationError)
        _check_len("receiver public key", receiver_public, PUBLIC_KEY_SIZE, KeyEncapsulationError)
        try:
            enc, shared_secret = auth_encap(sender_private, receiver_public, ephemeral)
            key = export(shared_secret, bytes(context_info), bytes(context_info), AEAD_KEY_SIZE)
        finally:
            wipe(shared_secret)

    log.debug(f"[KEM] encapsulated to receiver={key_hint(receiver_public)}")
    return enc, key


def decapsulate(
    encapsulated_key: bytes,
    receiver_private,
    sender_public: bytes,
    context_info: bytes,
) -> bytearray:
    """Receiver side mirror of encapsulate(); returns the 16-byte transaction key."""
    _check_len("encapsulated key", encapsulated_key, ENC_SIZE, KeyDecapsulationError)
    _check_len("receiver private key", receiver_private, PRIVATE_KEY_SIZE, KeyDecapsulationError)
    _check_len("sender public key", sender_public, PUBLIC_KEY_SIZE, KeyDecapsulationError)

    shared_secret = bytearray()
    try:
        shared_secret = auth_decap(encapsulated_key, receiver_private, sender_public)
        key = export(shared_secret, bytes(context_info), bytes(context_info), AEAD_KEY_SIZE)
    finally:
        wipe(shared_secret)

    log.debug(f"[KEM] decapsulated from sender={key_hint(sender_public)}")
    return key
