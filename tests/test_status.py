import pytest

from apps.payments.models import PaymentLog

pytestmark = pytest.mark.django_db


def _start_payment(initiate, event, entry):
    resp = initiate(
        entryId=str(entry.id),
        eventId=str(event.id),
        userId="user-42",
        userFirstName="Thandi",
        userLastName="Mokoena",
        userEmail="thandi@example.com",
        masteryLevel="Water (Competition)",
        performanceType="Solo",
        participantCount=1,
        includeRegistration=True,
    )
    assert resp.status_code == 200
    return resp.json()["payment_id"]


def test_end_to_end_payment_is_reflected_in_status(client, initiate, post_notification, notification, event, entry):
    payment_id = _start_payment(initiate, event, entry)

    resp = client.get("/api/payments/status/", {"payment_id": payment_id})
    assert resp.status_code == 200
    payment = resp.json()["payment"]
    assert payment["status"] == "pending"
    assert payment["amount"] == "12.00"
    assert payment["paid_at"] is None
    assert payment["entry"]["payment_status"] == "pending"

    assert post_notification(notification(payment_id, amount="12.00")).status_code == 200

    resp = client.get("/api/payments/status/", {"payment_id": payment_id})
    payment = resp.json()["payment"]
    assert payment["status"] == "completed"
    assert payment["paid_at"] is not None
    assert payment["amount_gross"] == "12.00"
    assert payment["event_name"] == event.name
    assert payment["entry"] == {
        "entry_id": str(entry.id),
        "item_name": "Swan Song",
        "performance_type": "Solo",
        "payment_status": "paid",
        "approved": True,
    }

    timeline = payment["timeline"]
    assert [item["event"] for item in timeline] == [
        "completed",
        "status_updated",
        "webhook_received",
        "redirect_sent",
        "initiated",
    ]
    assert timeline[0]["description"] == "Payment completed"
    assert timeline[1]["description"] == "Status changed from pending to completed"


def test_timeline_is_limited(client, initiate, event, entry, settings):
    settings.PAYMENT_TIMELINE_LENGTH = 3
    payment_id = _start_payment(initiate, event, entry)
    for _ in range(5):
        PaymentLog.objects.create(payment_id=payment_id, event_type="webhook_error", event_data={"error": "x"})

    payment = client.get("/api/payments/status/", {"payment_id": payment_id}).json()["payment"]
    assert len(payment["timeline"]) == 3
    assert {item["event"] for item in payment["timeline"]} == {"webhook_error"}


def test_batch_status_lookup_skips_unknown_ids(client, initiate, event, entry):
    payment_id = _start_payment(initiate, event, entry)

    resp = client.post(
        "/api/payments/status/",
        {"payment_ids": [payment_id, "ENTRY_unknown_000000000000"]},
        content_type="application/json",
    )
    assert resp.status_code == 200
    payments = resp.json()["payments"]
    assert list(payments) == [payment_id]
    assert payments[payment_id]["status"] == "pending"


def test_status_errors(client, db):
    assert client.get("/api/payments/status/").status_code == 400
    resp = client.get("/api/payments/status/", {"payment_id": "ENTRY_unknown_000000000000"})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Payment not found"}
    assert client.post("/api/payments/status/", {"payment_ids": []}, content_type="application/json").status_code == 400


def test_status_query_does_not_write(client, initiate, event, entry):
    payment_id = _start_payment(initiate, event, entry)
    before = PaymentLog.objects.count()
    client.get("/api/payments/status/", {"payment_id": payment_id})
    assert PaymentLog.objects.count() == before
