from __future__ import annotations

import json
from decimal import Decimal
from urllib.parse import urlencode

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.events.models import Event, EventEntry
from apps.payments.models import PaymentLog, PaymentSession
from apps.payments.signature import generate_signature


def _print(title: str, data) -> None:
    print(f"\n=== {title} ===")
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)


def _notify(client: APIClient, payment_id: str, amount: str) -> None:
    fields = [
        ("m_payment_id", payment_id),
        ("pf_payment_id", "1089250"),
        ("payment_status", "COMPLETE"),
        ("amount_gross", amount),
        ("amount_fee", "-0.42"),
        ("amount_net", str(Decimal(amount) - Decimal("0.42"))),
        ("merchant_id", settings.PAYFAST_MERCHANT_ID),
    ]
    fields.append(("signature", generate_signature(fields, settings.PAYFAST_PASSPHRASE)))
    resp = client.post(
        "/api/payments/webhook/",
        urlencode(fields),
        content_type="application/x-www-form-urlencoded",
        REMOTE_ADDR="197.97.145.145",
    )
    _print(f"PayFast ITN for {payment_id}", {"status": resp.status_code, "data": resp.data})
    assert resp.status_code == 200, resp.content


def run() -> None:
    """
    Manual smoke test walking through a single entry payment and a batch payment.

    Run with:
      python manage.py shell --settings=config.settings.testing -c "from scripts.smoke_test_endpoints import run; run()"
    """
    User = get_user_model()

    # Clean tables for a deterministic run
    PaymentSession.objects.all().delete()
    EventEntry.objects.all().delete()
    Event.objects.all().delete()
    User.objects.filter(username="smoke-admin").delete()

    admin = User.objects.create_superuser(username="smoke-admin", email="admin@example.com", password="Admin123!")
    event = Event.objects.create(name="Smoke Test Nationals", venue="Test Hall", entry_fee=Decimal("150.00"))
    entry = EventEntry.objects.create(
        event=event,
        contestant_id="dancer-1",
        calculated_fee=Decimal("10.00"),
        item_name="Smoke Solo",
        mastery="Water (Competitive)",
        performance_type="Solo",
    )
    _print("Fixtures created", {"admin": admin.username, "event": str(event.id), "entry": str(entry.id)})

    client = APIClient()

    resp = client.get(
        "/api/payments/fees/",
        {"masteryLevel": "Water (Competition)", "performanceType": "Solo", "numberOfParticipants": 1},
    )
    _print("GET /api/payments/fees/", {"status": resp.status_code, "data": resp.data})
    assert resp.status_code == 200

    payer = {
        "userId": "smoke-user",
        "userFirstName": "Smoke",
        "userLastName": "Tester",
        "userEmail": "smoke@example.com",
    }

    # Single entry payment
    resp = client.post(
        "/api/payments/initiate/",
        {
            **payer,
            "entryId": str(entry.id),
            "eventId": str(event.id),
            "masteryLevel": "Water (Competition)",
            "performanceType": "Solo",
            "includeRegistration": True,
        },
        format="json",
        HTTP_ACCEPT="application/json",
    )
    _print("POST /api/payments/initiate/ (single)", {"status": resp.status_code, "data": resp.data})
    assert resp.status_code == 200, resp.content
    single_id = resp.data["payment_id"]
    _notify(client, single_id, resp.data["total_amount"])

    # Batch payment with entries stored at initiation
    batch_entries = [
        {
            "eventId": str(event.id),
            "contestantId": "studio-1",
            "participantIds": ["dancer-2", "dancer-3"],
            "calculatedFee": "400.00",
            "itemName": "Smoke Duet",
            "performanceType": "Duet",
        },
        {
            "eventId": str(event.id),
            "contestantId": "studio-1",
            "calculatedFee": "0.00",
            "itemName": "Smoke Broken",
            "performanceType": "Quartet",
        },
    ]
    resp = client.post(
        "/api/payments/initiate/",
        {
            **payer,
            "entryId": "batch",
            "eventId": str(event.id),
            "amount": "400.00",
            "isBatchPayment": True,
            "entries": batch_entries,
        },
        format="json",
        HTTP_ACCEPT="application/json",
    )
    _print("POST /api/payments/initiate/ (batch)", {"status": resp.status_code, "data": resp.data})
    assert resp.status_code == 200, resp.content
    batch_id = resp.data["payment_id"]
    _notify(client, batch_id, resp.data["total_amount"])

    resp = client.post("/api/payments/process-entries/", {"payment_id": batch_id}, format="json")
    _print("POST /api/payments/process-entries/", {"status": resp.status_code, "data": resp.data})

    resp = client.post("/api/payments/process-entries/", {"payment_id": batch_id}, format="json")
    _print("POST /api/payments/process-entries/ (repeat)", {"status": resp.status_code, "data": resp.data})

    resp = client.post("/api/payments/status/", {"payment_ids": [single_id, batch_id]}, format="json")
    _print("POST /api/payments/status/", {"status": resp.status_code, "data": resp.data})

    # Staff view of the entries
    resp = client.post("/api/auth/token/", {"username": "smoke-admin", "password": "Admin123!"}, format="json")
    assert resp.status_code == 200, resp.content
    admin_client = APIClient()
    admin_client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
    resp = admin_client.get("/api/events/entries/", {"event": str(event.id)})
    _print("GET /api/events/entries/", {"status": resp.status_code, "count": resp.data.get("count")})

    _print("Audit rows written", PaymentLog.objects.count())
    _print("Smoke test complete", "OK")
