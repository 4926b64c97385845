import pytest
from cryptography.hazmat.primitives.asymmetric import x25519

import opja_core.keys as keys_mod
from opja_core.config import Settings
from opja_core.errors import EntropyError
from opja_core.keys import KeyStore


def test_generate_keypair():
    kp = KeyStore().generate()
    assert len(kp.public) == 32
    assert len(kp.private) == 32

    sk = x25519.X25519PrivateKey.from_private_bytes(bytes(kp.private))
    assert sk.public_key().public_bytes_raw() == kp.public
    assert len(kp.public_b64url) == 43
    assert "private" not in repr(kp)


def test_generate_without_entropy(monkeypatch):
    def no_entropy(n):
        raise OSError("no randomness")

    monkeypatch.setattr(keys_mod.os, "urandom", no_entropy)
    with pytest.raises(EntropyError):
        KeyStore().generate()


def test_initialize_identity():
    identity = KeyStore().initialize("dsp.example")
    assert identity.name == "dsp.example"
    assert len(identity.key_ring) == 5
    assert len(set(identity.public_keys)) == 5

    assert len(KeyStore().initialize("dsp.example", n=2).key_ring) == 2
    for bad in (0, 6):
        with pytest.raises(ValueError):
            KeyStore().initialize("dsp.example", n=bad)


def test_rotate_evicts_oldest_and_wipes_it():
    store = KeyStore()
    identity = store.initialize("dsp.example")
    oldest = identity.key_ring[-1]

    rotated = store.rotate(identity)
    assert len(rotated.key_ring) == 5
    assert rotated.key_ring[1:] == identity.key_ring[:4]
    assert rotated.key_ring[0].public not in identity.public_keys
    assert oldest.wiped


def test_rotate_sooner_than_interval_warns(caplog):
    now = [1_000_000.0]
    store = KeyStore(Settings(rotation_interval_days=36), clock=lambda: now[0])
    identity = store.initialize("dsp.example")

    now[0] += 86400
    identity = store.rotate(identity)
    assert "rotation interval" in caplog.text

    caplog.clear()
    now[0] += 40 * 86400
    store.rotate(identity)
    assert "rotation interval" not in caplog.text


def test_current_returns_snapshot():
    store = KeyStore()
    identity = store.initialize("ms.example", n=1)

    with store.current(identity) as snap:
        assert snap.public == identity.key_ring[0].public
        # rotation evicts the only ring key; the snapshot is unaffected
        store.rotate(identity)
        assert identity.key_ring[0].wiped
        assert not snap.wiped
    assert snap.wiped


def test_find_key_in_ring():
    store = KeyStore()
    identity = store.initialize("dsp.example", n=3)
    target = identity.key_ring[2]

    found = store.find(identity, target.public)
    assert found is not None
    assert bytes(found.private) == bytes(target.private)
    assert found.private is not target.private

    assert store.find(identity, b"\x01" * 32) is None
    assert store.find(identity, b"short") is None


def test_find_skips_key_evicted_by_rotation():
    store = KeyStore()
    old = store.initialize("dsp.example", n=2)
    evicted = old.key_ring[-1].public
    kept = old.key_ring[0].public

    rotated = store.rotate(old)
    assert store.find(old, evicted) is None
    assert store.find(rotated, evicted) is None
    with store.find(old, kept) as snap:
        assert not snap.wiped


def test_current_on_stale_identity_raises():
    store = KeyStore()
    old = store.initialize("ms.example", n=1)
    rotated = store.rotate(old)

    with pytest.raises(ValueError):
        store.current(old)
    with store.current(rotated) as snap:
        assert snap.public == rotated.key_ring[0].public
