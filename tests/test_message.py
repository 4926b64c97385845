from opja_core.message import LabelMessage


def test_label_message_roundtrip():
    msg = LabelMessage("ms.example", [("tx1", "A" * 40), ("tx2", "B" * 40)])
    restored = LabelMessage.from_dict(msg.to_dict())
    assert restored == msg


def test_label_message_skips_malformed_entries():
    msg = LabelMessage.from_dict({
        "name": "ms.example",
        "labels": [
            {"id": "tx1", "label": "A" * 40},
            {"id": "tx2"},
            {"label": "B" * 40},
            {"id": 7, "label": "C" * 40},
            "garbage",
        ],
    })
    assert msg.labels == [("tx1", "A" * 40)]


def test_label_message_without_labels():
    msg = LabelMessage.from_dict({"name": "ms.example"})
    assert msg.authority_name == "ms.example"
    assert msg.labels == []
