"""
Shared fixtures for the payment API tests.

Provides an event and an unpaid entry, a staff client authenticated with a
JWT token, and helpers that build PayFast notifications signed with the
testing passphrase.
"""
from decimal import Decimal
from urllib.parse import urlencode

import pytest
from django.conf import settings
from django.contrib.auth.models import User
from django.core.cache import cache

from apps.events.models import Event, EventEntry
from apps.payments.signature import generate_signature

PAYFAST_IP = "197.97.145.145"


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def event(db):
    return Event.objects.create(
        name="Nationals 2025",
        venue="Joburg Theatre",
        entry_fee=Decimal("150.00"),
        payment_required=True,
    )


@pytest.fixture
def entry(event):
    return EventEntry.objects.create(
        event=event,
        contestant_id="dancer-1",
        participant_ids=["dancer-1"],
        calculated_fee=Decimal("10.00"),
        item_name="Swan Song",
        mastery="Water (Competitive)",
        item_style="Contemporary",
        performance_type="Solo",
    )


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(username="admin1", password="pass12345", email="admin@example.com", is_staff=True)


@pytest.fixture
def staff_client(client, staff_user):
    """Authenticate the Django test client as a staff user using JWT tokens."""
    resp = client.post(
        "/api/auth/token/",
        {"username": "admin1", "password": "pass12345"},
        content_type="application/json",
    )
    assert resp.status_code == 200
    token = resp.json()["access"]
    client.defaults["HTTP_AUTHORIZATION"] = f"Bearer {token}"
    return client


@pytest.fixture
def initiate(client):
    """POST to the initiation endpoint asking for the JSON variant."""

    def _initiate(**payload):
        return client.post(
            "/api/payments/initiate/",
            payload,
            content_type="application/json",
            HTTP_ACCEPT="application/json",
        )

    return _initiate


def signed_notification(payment_id, payment_status="COMPLETE", amount="12.00", **extra):
    """Ordered ITN fields the way PayFast posts them, signature last."""
    fields = [
        ("m_payment_id", payment_id),
        ("pf_payment_id", "1089250"),
        ("payment_status", payment_status),
        ("item_name", "Swan Song"),
        ("item_description", ""),
        ("amount_gross", amount),
        ("amount_fee", "-0.42"),
        ("amount_net", str(Decimal(amount) - Decimal("0.42"))),
        ("custom_str1", ""),
        ("name_first", "Thandi"),
        ("name_last", "Mokoena"),
        ("email_address", "thandi@example.com"),
        ("merchant_id", settings.PAYFAST_MERCHANT_ID),
    ]
    fields.extend(extra.items())
    fields.append(("signature", generate_signature(fields, settings.PAYFAST_PASSPHRASE)))
    return fields


@pytest.fixture
def post_notification(client):
    def _post(fields, remote_addr=PAYFAST_IP, **headers):
        return client.post(
            "/api/payments/webhook/",
            urlencode(fields),
            content_type="application/x-www-form-urlencoded",
            REMOTE_ADDR=remote_addr,
            **headers,
        )

    return _post


@pytest.fixture
def notification():
    return signed_notification
