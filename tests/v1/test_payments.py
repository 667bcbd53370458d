# mypy: ignore-errors
# tests/v1/test_payments.py
"""Tests for the simulated payment endpoint."""

from fastapi import status


def test_simulate_defaults(client, owner, owner_headers) -> None:
    response = client.post("/api/v1/payments/simulate", json={}, headers=owner_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["amount_sats"] == 21
    assert data["status"] == "PAID_SIMULATED"
    assert data["user_id"] == owner.id
    assert data["event_id"] is None
    assert data["provider_meta"]["simulated"] is True
    assert data["provider_meta"]["type"] == "community"


def test_simulate_custom_amount(client, owner_headers) -> None:
    response = client.post(
        "/api/v1/payments/simulate",
        json={"amount_sats": 1000, "type": "tip"},
        headers=owner_headers,
    )
    assert response.json()["amount_sats"] == 1000
    assert response.json()["provider_meta"]["type"] == "tip"


def test_simulate_rejects_negative(client, owner_headers) -> None:
    response = client.post("/api/v1/payments/simulate", json={"amount_sats": -1}, headers=owner_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_simulate_requires_auth(client) -> None:
    response = client.post("/api/v1/payments/simulate", json={})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
