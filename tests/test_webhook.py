from decimal import Decimal

import pytest
import requests

from apps.payments.models import PaymentLog, PaymentSession

pytestmark = pytest.mark.django_db


@pytest.fixture
def pending_session(event, entry):
    session = PaymentSession.objects.create(
        payment_id=f"ENTRY_{entry.id}_0123456789ab",
        entry=entry,
        event=event,
        user_id="user-42",
        base_amount=Decimal("10.00"),
        processing_fee=Decimal("2.00"),
        amount=Decimal("12.00"),
        item_name="Swan Song",
    )
    entry.payment_id = session.payment_id
    entry.payment_status = "pending"
    entry.save()
    return session


def _log_types(payment_id):
    return list(PaymentLog.objects.filter(payment_id=payment_id).order_by("id").values_list("event_type", flat=True))


def test_acknowledges_get(client):
    resp = client.get("/api/payments/webhook/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_complete_notification_marks_session_and_entry_paid(post_notification, notification, pending_session, entry):
    resp = post_notification(notification(pending_session.payment_id))
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "payment_id": pending_session.payment_id, "status": "completed"}

    pending_session.refresh_from_db()
    assert pending_session.status == "completed"
    assert pending_session.provider_status == "COMPLETE"
    assert pending_session.provider_payment_id == "1089250"
    assert pending_session.amount_gross == Decimal("12.00")
    assert pending_session.amount_fee == Decimal("-0.42")
    assert pending_session.amount_net == Decimal("11.58")
    assert pending_session.paid_at is not None
    assert pending_session.raw_notification[0] == ["m_payment_id", pending_session.payment_id]

    entry.refresh_from_db()
    assert entry.payment_status == "paid"
    assert entry.approved is True
    assert entry.approved_at is not None
    assert entry.payment_method == "payfast"

    assert _log_types(pending_session.payment_id) == ["webhook_received", "status_updated", "completed"]


def test_redelivery_is_a_no_op_beyond_logging(post_notification, notification, pending_session, entry):
    fields = notification(pending_session.payment_id)
    assert post_notification(fields).status_code == 200
    pending_session.refresh_from_db()
    entry.refresh_from_db()
    paid_at, approved_at = pending_session.paid_at, entry.approved_at

    resp = post_notification(fields)
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    pending_session.refresh_from_db()
    entry.refresh_from_db()
    assert pending_session.paid_at == paid_at
    assert entry.approved_at == approved_at
    assert entry.payment_status == "paid"

    types = _log_types(pending_session.payment_id)
    assert types.count("status_updated") == 1
    assert types.count("completed") == 1
    assert types[-2:] == ["webhook_received", "notification_ignored"]


def test_terminal_status_is_not_regressed(post_notification, notification, pending_session, entry):
    post_notification(notification(pending_session.payment_id))
    resp = post_notification(notification(pending_session.payment_id, payment_status="CANCELLED"))
    assert resp.status_code == 200

    pending_session.refresh_from_db()
    entry.refresh_from_db()
    assert pending_session.status == "completed"
    assert entry.payment_status == "paid"


def test_failed_notification(post_notification, notification, pending_session, entry):
    resp = post_notification(notification(pending_session.payment_id, payment_status="FAILED"))
    assert resp.status_code == 200
    assert resp.json()["status"] == "failed"

    pending_session.refresh_from_db()
    entry.refresh_from_db()
    assert pending_session.status == "failed"
    assert pending_session.paid_at is None
    assert entry.payment_status == "failed"
    assert entry.approved is False
    assert _log_types(pending_session.payment_id)[-1] == "failed"


def test_tampered_signature_is_rejected(post_notification, notification, pending_session, entry):
    fields = notification(pending_session.payment_id)
    fields[-1] = ("signature", "0" * 32)

    resp = post_notification(fields)
    assert resp.status_code == 403

    pending_session.refresh_from_db()
    entry.refresh_from_db()
    assert pending_session.status == "pending"
    assert entry.payment_status == "pending"
    assert entry.approved is False
    assert _log_types(pending_session.payment_id) == ["verification_failed"]


def test_tampered_amount_is_rejected(post_notification, notification, pending_session):
    fields = notification(pending_session.payment_id)
    fields[5] = ("amount_gross", "0.01")

    resp = post_notification(fields)
    assert resp.status_code == 403
    pending_session.refresh_from_db()
    assert pending_session.status == "pending"


def test_merchant_mismatch_is_a_verification_failure(post_notification, notification, pending_session, settings):
    fields = notification(pending_session.payment_id)
    settings.PAYFAST_MERCHANT_ID = "10000999"

    resp = post_notification(fields)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Merchant mismatch"


def test_unknown_origin_is_rejected(post_notification, notification, pending_session):
    resp = post_notification(notification(pending_session.payment_id), remote_addr="10.1.2.3")
    assert resp.status_code == 403
    assert resp.json()["error"] == "Invalid host"

    pending_session.refresh_from_db()
    assert pending_session.status == "pending"
    assert _log_types(pending_session.payment_id) == ["forbidden_origin"]


def test_forwarded_for_from_a_trusted_proxy(post_notification, notification, pending_session, settings):
    settings.TRUSTED_PROXIES = ["10.0.0.0/8"]
    resp = post_notification(
        notification(pending_session.payment_id),
        remote_addr="10.0.0.1",
        HTTP_X_FORWARDED_FOR="203.0.113.9, 41.74.179.194, 10.0.0.2",
    )
    assert resp.status_code == 200


def test_forwarded_for_from_an_untrusted_client_is_ignored(post_notification, notification, pending_session):
    resp = post_notification(
        notification(pending_session.payment_id),
        remote_addr="203.0.113.9",
        HTTP_X_FORWARDED_FOR="197.97.145.145",
        HTTP_X_REAL_IP="197.97.145.145",
    )
    assert resp.status_code == 403
    pending_session.refresh_from_db()
    assert pending_session.status == "pending"
    log = PaymentLog.objects.get(payment_id=pending_session.payment_id, event_type="forbidden_origin")
    assert log.ip_address == "203.0.113.9"


def test_spoofed_hop_behind_a_trusted_proxy_is_ignored(post_notification, notification, pending_session, settings):
    settings.TRUSTED_PROXIES = ["10.0.0.1"]
    resp = post_notification(
        notification(pending_session.payment_id),
        remote_addr="10.0.0.1",
        HTTP_X_FORWARDED_FOR="197.97.145.145, 203.0.113.9",
    )
    assert resp.status_code == 403


def test_sandbox_skips_the_origin_check(post_notification, notification, pending_session, settings):
    settings.PAYFAST_SANDBOX = True
    resp = post_notification(notification(pending_session.payment_id), remote_addr="10.1.2.3")
    assert resp.status_code == 200


def test_missing_fields(post_notification):
    resp = post_notification([("payment_status", "COMPLETE"), ("signature", "abc")])
    assert resp.status_code == 400


def test_unrecognized_status(post_notification, notification, pending_session):
    resp = post_notification(notification(pending_session.payment_id, payment_status="PENDING"))
    assert resp.status_code == 400


def test_unknown_payment(post_notification, notification, db):
    resp = post_notification(notification("ENTRY_missing_000000000000"))
    assert resp.status_code == 404
    assert _log_types("ENTRY_missing_000000000000") == ["webhook_error"]


def test_unrecognized_fields_are_ignored_but_signed(post_notification, notification, pending_session):
    resp = post_notification(notification(pending_session.payment_id, custom_int5="7", token="abc"))
    assert resp.status_code == 200


def test_amount_mismatch_is_logged_and_applied(post_notification, notification, pending_session):
    resp = post_notification(notification(pending_session.payment_id, amount="11.00"))
    assert resp.status_code == 200

    pending_session.refresh_from_db()
    assert pending_session.status == "completed"
    mismatch = PaymentLog.objects.get(payment_id=pending_session.payment_id, event_type="amount_mismatch")
    assert mismatch.event_data == {"expected": "12.00", "amount_gross": "11.00"}


def test_server_validation(post_notification, notification, pending_session, settings, monkeypatch):
    settings.PAYFAST_VALIDATE_WITH_SERVER = True
    calls = []

    class FakeResponse:
        text = "INVALID"

        def raise_for_status(self):
            return None

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append((url, data, timeout))
        return FakeResponse()

    monkeypatch.setattr(requests, "post", fake_post)

    resp = post_notification(notification(pending_session.payment_id))
    assert resp.status_code == 403
    assert resp.json()["error"] == "Provider validation failed"
    assert calls[0][0] == settings.PAYFAST_VALIDATE_URL
    assert calls[0][2] == settings.PAYFAST_HTTP_TIMEOUT
    assert calls[0][1].startswith(f"m_payment_id={pending_session.payment_id}&")

    FakeResponse.text = "VALID"
    resp = post_notification(notification(pending_session.payment_id))
    assert resp.status_code == 200


def test_audit_rows_cannot_be_changed(pending_session):
    log = PaymentLog.objects.create(payment_id=pending_session.payment_id, event_type="initiated")
    with pytest.raises(ValueError):
        log.save()
    with pytest.raises(ValueError):
        log.delete()


def test_completing_an_earlier_attempt_settles_a_reinitiated_entry(
    initiate, post_notification, notification, event, entry
):
    payer = {
        "entryId": str(entry.id),
        "eventId": str(event.id),
        "userId": "user-42",
        "userFirstName": "Thandi",
        "userEmail": "thandi@example.com",
        "amount": "10.00",
    }
    first_id = initiate(**payer).json()["payment_id"]
    second_id = initiate(**payer).json()["payment_id"]
    entry.refresh_from_db()
    assert entry.payment_id == second_id

    resp = post_notification(notification(first_id, amount="12.00"))
    assert resp.status_code == 200

    entry.refresh_from_db()
    assert entry.payment_status == "paid"
    assert entry.approved is True
    assert entry.payment_id == first_id

    resp = initiate(**payer)
    assert resp.status_code == 409


def test_failed_earlier_attempt_leaves_a_reinitiated_entry_alone(
    initiate, post_notification, notification, event, entry
):
    payer = {
        "entryId": str(entry.id),
        "eventId": str(event.id),
        "userId": "user-42",
        "userFirstName": "Thandi",
        "userEmail": "thandi@example.com",
        "amount": "10.00",
    }
    first_id = initiate(**payer).json()["payment_id"]
    second_id = initiate(**payer).json()["payment_id"]

    assert post_notification(notification(first_id, payment_status="FAILED", amount="12.00")).status_code == 200

    entry.refresh_from_db()
    assert entry.payment_id == second_id
    assert entry.payment_status == "pending"


def test_audit_rows_cannot_be_changed_in_bulk(pending_session):
    PaymentLog.objects.create(payment_id=pending_session.payment_id, event_type="initiated")
    rows = PaymentLog.objects.filter(payment_id=pending_session.payment_id)
    with pytest.raises(ValueError):
        rows.update(event_type="completed")
    with pytest.raises(ValueError):
        rows.delete()
    assert list(rows.values_list("event_type", flat=True)) == ["initiated"]
