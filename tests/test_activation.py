import base64

import pytest

from opja_core.activation import LabelReceiver, MatchingSystem
from opja_core.authority import InMemoryDirectory, KeyAuthority
from opja_core.cache import InMemoryKeyCache
from opja_core.campaign import Campaign
from opja_core.errors import CampaignError, KeyDecapsulationError
from opja_core.keys import KeyStore
from opja_core.message import LabelMessage

MS = "match-system-operator.com"
DSP = "dsp.example"
TXID = "2VwhmTY9MecgWsu6"


@pytest.fixture
def world():
    store = KeyStore()
    directory = InMemoryDirectory()
    authority = KeyAuthority(directory)

    ms_identity = store.initialize(MS)
    dsp_identity = store.initialize(DSP)
    directory.publish(MS, ms_identity.public_keys)
    directory.publish(DSP, dsp_identity.public_keys)

    sender = MatchingSystem(ms_identity, key_store=store, authority=authority)
    receiver = LabelReceiver(dsp_identity, authority, cache=InMemoryKeyCache(), key_store=store)
    return sender, receiver, directory


def test_end_to_end_labels(world):
    sender, receiver, _ = world
    dsp_public = receiver.identity.key_ring[0].public

    campaign, sealer = sender.start_transaction(TXID, dsp_public, receiver_authority=DSP)
    enc_one = sealer.seal(True, TXID)
    enc_zero = sealer.seal(False, TXID)
    assert enc_one != enc_zero
    assert base64.b64decode(enc_one)[:12] != base64.b64decode(enc_zero)[:12]

    # campaign configuration travels as plain dict
    status = receiver.establish(Campaign.from_dict(campaign.to_dict()))
    assert status

    assert [receiver.open_label(MS, TXID, enc_one),
            receiver.open_label(MS, TXID, enc_zero)] == [True, False]
    # out of order
    assert receiver.open_label(MS, TXID, enc_zero) is False
    assert receiver.open_label(MS, TXID, enc_one) is True


def test_open_message_drops_bad_labels(world):
    sender, receiver, _ = world
    dsp_public = receiver.identity.key_ring[0].public

    sealed = {}
    for txid, label in (("tx1", True), ("tx2", True), ("tx3", False)):
        campaign, sealer = sender.start_transaction(txid, dsp_public)
        assert receiver.establish(campaign)
        sealed[txid] = sealer.seal(label, txid)

    forged = bytearray(base64.b64decode(sealed["tx2"]))
    forged[14] ^= 0x01
    other, other_sealer = sender.start_transaction("tx4", dsp_public)

    message = LabelMessage.from_dict({"name": MS, "labels": [
        {"id": "tx1", "label": sealed["tx1"]},
        {"id": "tx2", "label": base64.b64encode(bytes(forged)).decode()},
        {"id": "tx3", "label": sealed["tx3"]},
        {"id": "tx4", "label": other_sealer.seal_one("tx4")},  # never established
        {"id": "tx5"},
    ]})

    results = receiver.open_message(message)
    assert results == {"tx1": True, "tx3": False}
    assert "tx2" not in results


def test_label_replayed_under_other_transaction_is_dropped(world):
    sender, receiver, _ = world
    dsp_public = receiver.identity.key_ring[0].public
    for txid in ("tx1", "tx2"):
        campaign, _ = sender.start_transaction(txid, dsp_public)
        receiver.establish(campaign)

    campaign, sealer = sender.start_transaction("tx1", dsp_public)
    receiver.establish(campaign)
    label = sealer.seal_one("tx1")
    assert receiver.open_label(MS, "tx1", label) is True
    assert receiver.open_label(MS, "tx2", label) is None


def test_untrusted_sender_key_invalidates_campaign(world):
    sender, receiver, directory = world
    dsp_public = receiver.identity.key_ring[0].public
    campaign, sealer = sender.start_transaction(TXID, dsp_public)

    # the matching system withdraws its published keys
    directory.publish(MS, [KeyStore().generate().public])
    status = receiver.establish(campaign)
    assert not status
    assert receiver.cache.lookup(MS, TXID) is None
    assert receiver.open_label(MS, TXID, sealer.seal_one(TXID)) is None


def test_reestablish_after_withdrawal_drops_cached_key(world):
    sender, receiver, directory = world
    dsp_public = receiver.identity.key_ring[0].public
    campaign, sealer = sender.start_transaction(TXID, dsp_public)
    assert receiver.establish(campaign)

    directory.publish(MS, [KeyStore().generate().public])
    # cached key still opens until the campaign is re-established
    assert receiver.open_label(MS, TXID, sealer.seal_one(TXID)) is True

    assert not receiver.establish(campaign)
    assert receiver.open_label(MS, TXID, sealer.seal_one(TXID)) is None


def test_cached_key_expires_with_ttl(world):
    sender, _, directory = world
    now = [1000.0]
    dsp_store = KeyStore()
    dsp_identity = dsp_store.initialize("dsp2.example")
    directory.publish("dsp2.example", dsp_identity.public_keys)
    receiver = LabelReceiver(dsp_identity, KeyAuthority(directory),
                             cache=InMemoryKeyCache(ttl=3600, clock=lambda: now[0]),
                             key_store=dsp_store)

    campaign, sealer = sender.start_transaction(TXID, dsp_identity.key_ring[0].public)
    assert receiver.establish(campaign)
    assert receiver.open_label(MS, TXID, sealer.seal_zero(TXID)) is False

    now[0] += 3601
    assert receiver.open_label(MS, TXID, sealer.seal_zero(TXID)) is None


def test_default_key_cache_ttl_is_finite(monkeypatch):
    monkeypatch.delenv("OPJA_KEY_CACHE_TTL", raising=False)
    receiver = LabelReceiver(KeyStore().initialize(DSP, n=1), KeyAuthority(InMemoryDirectory()))
    assert receiver.cache.ttl == 3600.0


def test_sender_refuses_unpublished_receiver_key(world):
    sender, _, _ = world
    with pytest.raises(CampaignError):
        sender.start_transaction(TXID, KeyStore().generate().public, receiver_authority=DSP)


def test_receiver_accepts_older_ring_key_after_rotation(world):
    sender, receiver, directory = world
    old_public = receiver.identity.key_ring[0].public
    campaign, sealer = sender.start_transaction(TXID, old_public)

    receiver.rotate()
    directory.publish(DSP, receiver.identity.public_keys)
    assert receiver.identity.key_ring[1].public == old_public

    assert receiver.establish(campaign)
    assert receiver.open_label(MS, TXID, sealer.seal_zero(TXID)) is False


def test_receiver_key_evicted_from_ring(world):
    sender, receiver, _ = world
    oldest_public = receiver.identity.key_ring[-1].public
    campaign, _ = sender.start_transaction(TXID, oldest_public)

    receiver.rotate()
    # directory not yet republished: key still listed but no longer held locally
    status = receiver.establish(campaign)
    assert not status
    assert "local key ring" in status.reason


def test_malformed_encapsulated_key_propagates(world):
    sender, receiver, _ = world
    campaign, _ = sender.start_transaction(TXID, receiver.identity.key_ring[0].public)
    broken = Campaign(
        authority_name=campaign.authority_name,
        transaction_id=campaign.transaction_id,
        encapsulated_key=b"\x00" * 32,
        sender_public_key=campaign.sender_public_key,
        receiver_public_key=campaign.receiver_public_key,
    )
    with pytest.raises(KeyDecapsulationError):
        receiver.establish(broken)


def test_sender_rotation_keeps_existing_transactions(world):
    sender, receiver, directory = world
    dsp_public = receiver.identity.key_ring[0].public
    campaign, sealer = sender.start_transaction(TXID, dsp_public)

    sender.rotate()
    directory.publish(MS, sender.identity.public_keys)
    label = sealer.seal_one(TXID)

    assert receiver.establish(campaign)
    assert receiver.open_label(MS, TXID, label) is True
