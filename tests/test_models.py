import json

import pytest

from wa_webhook.queue.models import (
    MessagePayload,
    QueuedEnvelope,
    WebhookPayload,
    is_malformed_entry,
    malformed_entry,
)


def test_payload_wire_format_uses_camel_case_session_id():
    payload = WebhookPayload.create("6281234", "message", {"body": "hi"}, timestamp=1700000000)

    assert payload.to_dict() == {
        "event": "message",
        "sessionId": "6281234",
        "timestamp": 1700000000,
        "data": {"body": "hi"},
    }


@pytest.mark.parametrize("event,session_id", [("", "6281234"), ("message", "")])
def test_payload_rejects_empty_event_or_session(event, session_id):
    with pytest.raises(ValueError):
        WebhookPayload(event=event, session_id=session_id, timestamp=0)


def test_payload_is_immutable():
    payload = WebhookPayload.create("s1", "receipt")
    with pytest.raises(Exception):
        payload.event = "presence"


def test_envelope_survives_store_encoding():
    envelope = QueuedEnvelope(
        payload=WebhookPayload.create("s1", "presence", {"available": True}, timestamp=5),
        retries=2,
        created_at=1700000001,
    )

    stored = json.loads(envelope.to_json())
    assert stored["retries"] == 2
    assert stored["createdAt"] == 1700000001
    assert stored["payload"]["sessionId"] == "s1"
    assert QueuedEnvelope.from_json(envelope.to_json()) == envelope


def test_with_retries_keeps_created_at():
    envelope = QueuedEnvelope(payload=WebhookPayload.create("s1", "typing"), created_at=42)

    bumped = envelope.with_retries(1)

    assert bumped.retries == 1
    assert bumped.created_at == 42
    assert envelope.retries == 0


@pytest.mark.parametrize("raw", [
    "not json",
    "[]",
    json.dumps({"retries": 0, "createdAt": 1}),
    json.dumps({"payload": {"event": "", "sessionId": "s", "timestamp": 1}, "retries": 0, "createdAt": 1}),
    json.dumps({"payload": {"event": "m", "sessionId": "s", "timestamp": 1}, "retries": -1, "createdAt": 1}),
])
def test_from_json_raises_value_error_for_bad_entries(raw):
    with pytest.raises(ValueError):
        QueuedEnvelope.from_json(raw)


def test_malformed_entry_marker():
    entry = malformed_entry("garbage", "bad json")

    assert is_malformed_entry(entry)
    assert json.loads(entry)["raw"] == "garbage"
    assert not is_malformed_entry("garbage")
    assert not is_malformed_entry(json.dumps({"retries": 3}))


def test_message_payload_omits_empty_optional_fields():
    message = MessagePayload(id="ABC", sender="628@s.whatsapp.net", chat="628@s.whatsapp.net",
                             type="text", timestamp=10, body="hi")

    doc = message.to_dict()

    assert doc["from"] == "628@s.whatsapp.net"
    assert doc["body"] == "hi"
    assert doc["isGroup"] is False
    assert "caption" not in doc
    assert "quotedMessage" not in doc
    assert "raw" not in doc


def test_message_payload_carries_raw_protocol_fields():
    message = MessagePayload(id="ABC", sender="a", chat="a", type="location", timestamp=10,
                             raw={"degreesLatitude": -6.2, "degreesLongitude": 106.8})

    assert message.to_dict()["raw"] == {"degreesLatitude": -6.2, "degreesLongitude": 106.8}
    assert "raw" not in MessagePayload(id="ABC", sender="a", chat="a", type="text",
                                       timestamp=10, raw={}).to_dict()
