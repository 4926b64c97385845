import pytest

from opja_core.authority import InMemoryDirectory, KeyAuthority
from opja_core.campaign import Campaign, validate_campaign
from opja_core.errors import CampaignError
from opja_core.keys import KeyStore


@pytest.fixture
def campaign():
    store = KeyStore()
    return Campaign(
        authority_name="ms.example",
        transaction_id="2VwhmTY9MecgWsu6",
        encapsulated_key=store.generate().public,
        sender_public_key=store.generate().public,
        receiver_public_key=store.generate().public,
    )


def test_campaign_dict_roundtrip(campaign):
    d = campaign.to_dict()
    assert d["authority_name"] == "ms.example"
    assert len(d["encapsulated_key"]) == 43
    assert "=" not in d["sender_public_key"]

    restored = Campaign.from_dict(d)
    assert restored == campaign
    assert restored.context_info == b"ms.example"


@pytest.mark.parametrize("txid", ["", "2VwhmTY9MecgWsu6X", "abc-123", "tx 1", "ünïcode"])
def test_campaign_rejects_bad_transaction_id(campaign, txid):
    d = campaign.to_dict()
    d["transaction_id"] = txid
    with pytest.raises(CampaignError):
        Campaign.from_dict(d)


def test_campaign_rejects_missing_or_bad_fields(campaign):
    d = campaign.to_dict()
    del d["encapsulated_key"]
    with pytest.raises(CampaignError, match="encapsulated_key"):
        Campaign.from_dict(d)

    d = campaign.to_dict()
    d["sender_public_key"] = d["sender_public_key"][:20]
    with pytest.raises(CampaignError):
        Campaign.from_dict(d)

    d = campaign.to_dict()
    d["receiver_public_key"] = "***"
    with pytest.raises(CampaignError):
        Campaign.from_dict(d)


def test_validate_campaign(campaign):
    directory = InMemoryDirectory()
    authority = KeyAuthority(directory)
    directory.publish("ms.example", [campaign.sender_public_key])
    directory.publish("dsp.example", [campaign.receiver_public_key])

    status = validate_campaign(campaign, authority, "dsp.example")
    assert status
    assert status.reason == ""

    directory.publish("ms.example", [KeyStore().generate().public])
    status = validate_campaign(campaign, authority, "dsp.example")
    assert not status
    assert "sender key" in status.reason

    directory.publish("ms.example", [campaign.sender_public_key])
    directory.publish("dsp.example", [])
    status = validate_campaign(campaign, authority, "dsp.example")
    assert not status
    assert "receiver key" in status.reason
