import pytest

pytestmark = pytest.mark.django_db


def test_quote_with_registration_by_default(client):
    resp = client.get(
        "/api/payments/fees/",
        {"masteryLevel": "Water (Competition)", "performanceType": "Solo", "numberOfParticipants": 1},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["fees"] == {
        "registration_fee": "5.00",
        "performance_fee": "5.00",
        "total_fee": "10.00",
        "breakdown": "1 Solo",
        "registration_breakdown": "Registration fee (Water (Competitive))",
    }
    assert body["payment"] == {"base_amount": "10.00", "processing_fee": "2.00", "total_amount": "12.00"}


def test_quote_by_post(client):
    resp = client.post(
        "/api/payments/fees/",
        {
            "masteryLevel": "Nationals",
            "performanceType": "Trio",
            "numberOfParticipants": 3,
            "includeRegistration": False,
        },
        content_type="application/json",
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["fees"]["total_fee"] == "600.00"
    assert body["payment"]["processing_fee"] == "21.00"
    assert body["payment"]["total_amount"] == "621.00"


def test_quote_rejects_unknown_tier(client):
    resp = client.get("/api/payments/fees/", {"masteryLevel": "Ice", "performanceType": "Solo"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_quote_rejects_zero_participants(client):
    resp = client.get(
        "/api/payments/fees/",
        {"masteryLevel": "Nationals", "performanceType": "Group", "numberOfParticipants": 0},
    )
    assert resp.status_code == 400
