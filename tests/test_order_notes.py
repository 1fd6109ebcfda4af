import json

import pytest

from studyhub.services.gateway import GatewayPayment, InvalidNotesError, OrderNotes, WebhookEnvelope
from tests.fakes import new_id


def test_notes_encode_as_flat_string_map():
    user_id, a, b = new_id(), new_id(), new_id()
    encoded = OrderNotes(user_id=user_id, course_ids=[a, b]).to_gateway()
    assert encoded == {"v": "1", "userId": user_id, "courseIds": json.dumps([a, b])}
    assert all(isinstance(v, str) for v in encoded.values())


def test_notes_read_back_from_gateway():
    user_id, a = new_id(), new_id()
    notes = OrderNotes.from_gateway({"v": "1", "userId": user_id, "courseIds": json.dumps([a])})
    assert notes.user_id == user_id
    assert notes.course_ids == [a]


def test_unversioned_notes_are_read_as_version_one():
    user_id, a = new_id(), new_id()
    notes = OrderNotes.from_gateway({"userId": user_id, "courseIds": json.dumps([a])})
    assert notes.version == "1"


@pytest.mark.parametrize(
    "notes",
    [
        None,
        {},
        {"v": "2", "userId": "64b7f0c2a1b2c3d4e5f60718", "courseIds": '["64b7f0c2a1b2c3d4e5f60719"]'},
        {"userId": "64b7f0c2a1b2c3d4e5f60718", "courseIds": "not json"},
        {"userId": "64b7f0c2a1b2c3d4e5f60718", "courseIds": "[]"},
        {"userId": "64b7f0c2a1b2c3d4e5f60718", "courseIds": '{"a": 1}'},
        {"userId": "not-an-id", "courseIds": '["64b7f0c2a1b2c3d4e5f60719"]'},
        {"userId": "64b7f0c2a1b2c3d4e5f60718", "courseIds": '["bad"]'},
        {"courseIds": '["64b7f0c2a1b2c3d4e5f60719"]'},
    ],
)
def test_malformed_notes_fail_the_schema(notes):
    with pytest.raises(InvalidNotesError):
        OrderNotes.from_gateway(notes)


def test_duplicate_course_ids_collapse_in_order():
    a, b = new_id(), new_id()
    assert OrderNotes(user_id=new_id(), course_ids=[a, b, a]).course_ids == [a, b]


def test_gateway_payment_normalizes_empty_notes_and_failure_reason():
    payment = GatewayPayment.model_validate({"id": "pay_1", "amount": 15000, "notes": []})
    assert payment.notes == {}
    assert payment.amount_rupees == 150
    assert payment.failure_reason == "Payment processing failed"
    assert GatewayPayment(error_reason="payment_cancelled").failure_reason == "payment_cancelled"
    assert (
        GatewayPayment(error_reason="x", error_description="Card declined").failure_reason
        == "Card declined"
    )


def test_envelope_payment_entity_tolerates_odd_shapes():
    assert WebhookEnvelope.model_validate({"event": 5, "payload": []}).event == ""
    assert WebhookEnvelope(event="payment.captured").payment_entity() is None
    assert WebhookEnvelope(event="payment.captured", payload={"payment": {"entity": "x"}}).payment_entity() is None
    envelope = WebhookEnvelope(event="payment.captured", payload={"payment": {"entity": {"id": "pay_9"}}})
    assert envelope.payment_entity().id == "pay_9"


def test_amount_rupees_is_whole_rupees():
    assert GatewayPayment(amount=15000).amount_rupees == 150
    assert GatewayPayment(amount=15099).amount_rupees == 150
