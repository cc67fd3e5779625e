"""
Tests de la API HTTP: headers de tenant, mapeo de errores y flujo completo.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from tests.conftest import at

API = "/api/v1"


@pytest.fixture
def headers(clinic_id):
    return {"X-Clinic-ID": str(clinic_id), "X-User-ID": str(uuid4())}


async def _setup_clinic(client, headers, stock: str = "10") -> dict:
    """Crea profesional, horario, procedimiento, insumo y kit vía API."""
    prof = await client.post(
        f"{API}/professionals",
        json={"first_name": "Luis", "last_name": "Rojas", "commission_rate": "20"},
        headers=headers,
    )
    assert prof.status_code == 201
    professional_id = prof.json()["id"]

    for day in range(5):
        resp = await client.post(
            f"{API}/availability/schedule",
            json={
                "professional_id": professional_id,
                "day_of_week": day,
                "start_time": "09:00",
                "end_time": "13:00",
            },
            headers=headers,
        )
        assert resp.status_code == 201

    svc = await client.post(
        f"{API}/services",
        json={"name": "Peeling químico", "duration_minutes": 45, "price": "200.00"},
        headers=headers,
    )
    assert svc.status_code == 201
    service_id = svc.json()["id"]

    item = await client.post(
        f"{API}/inventory/items",
        json={"code": "ACI-01", "name": "Ácido glicólico", "initial_stock": stock, "unit": "mililitro"},
        headers=headers,
    )
    assert item.status_code == 201
    item_id = item.json()["id"]

    kit = await client.post(
        f"{API}/kits",
        json={"service_id": service_id, "item_id": item_id, "quantity": "3"},
        headers=headers,
    )
    assert kit.status_code == 201

    return {"professional_id": professional_id, "service_id": service_id, "item_id": item_id}


async def _book(client, headers, ids, start):
    return await client.post(
        f"{API}/appointments",
        json={
            "patient_id": str(uuid4()),
            "professional_id": ids["professional_id"],
            "service_id": ids["service_id"],
            "start_time": start.isoformat(),
        },
        headers=headers,
    )


async def _status(client, headers, appointment_id, status):
    return await client.patch(
        f"{API}/appointments/{appointment_id}/status",
        json={"status": status},
        headers=headers,
    )


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


async def test_missing_clinic_header(client):
    resp = await client.get(f"{API}/professionals")
    assert resp.status_code == 400


async def test_invalid_clinic_header(client):
    resp = await client.get(f"{API}/professionals", headers={"X-Clinic-ID": "no-es-uuid"})
    assert resp.status_code == 400


async def test_tenants_are_isolated(client, headers):
    ids = await _setup_clinic(client, headers)

    other = {"X-Clinic-ID": str(uuid4())}
    resp = await client.get(f"{API}/professionals/{ids['professional_id']}", headers=other)
    assert resp.status_code == 404


async def test_full_flow_over_http(client, headers, monday):
    ids = await _setup_clinic(client, headers)

    booked = await _book(client, headers, ids, at(monday, 10))
    assert booked.status_code == 201
    appt = booked.json()
    assert appt["status"] == "scheduled"
    assert appt["service_name"] == "Peeling químico"

    # Solapa con la anterior (10:00-10:45)
    clash = await _book(client, headers, ids, at(monday, 10, 30))
    assert clash.status_code == 409

    # Fuera de horario
    late = await _book(client, headers, ids, at(monday, 12, 30))
    assert late.status_code == 409

    # Saltarse estados
    skip = await _status(client, headers, appt["id"], "completed")
    assert skip.status_code == 409

    for status in ("confirmed", "arrived", "in_service", "completed"):
        resp = await _status(client, headers, appt["id"], status)
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == status
        assert resp.json()["is_terminal"] is (status == "completed")

    item = await client.get(f"{API}/inventory/items/{ids['item_id']}", headers=headers)
    assert Decimal(item.json()["current_stock"]) == Decimal("7")

    movements = await client.get(
        f"{API}/inventory/movements",
        params={"reference": f"appointment:{appt['id']}"},
        headers=headers,
    )
    assert movements.json()["total"] == 1

    summary = await client.get(
        f"{API}/commissions/summary",
        params={
            "professional_id": ids["professional_id"],
            "period_start": monday.isoformat(),
            "period_end": monday.isoformat(),
        },
        headers=headers,
    )
    assert summary.status_code == 200
    assert Decimal(summary.json()["total_generated"]) == Decimal("40.00")
    assert summary.json()["count"] == 1

    settled = await client.post(
        f"{API}/commissions/settle-period",
        json={
            "professional_id": ids["professional_id"],
            "period_start": monday.isoformat(),
            "period_end": (monday + timedelta(days=6)).isoformat(),
            "paid_reference": "LIQ-2026-01",
        },
        headers=headers,
    )
    assert settled.status_code == 200
    assert settled.json()["settled"] == 1


async def test_complete_with_insufficient_stock_returns_409(client, headers, monday):
    ids = await _setup_clinic(client, headers, stock="2")

    appt = (await _book(client, headers, ids, at(monday, 9))).json()
    for status in ("confirmed", "arrived", "in_service"):
        await _status(client, headers, appt["id"], status)

    resp = await _status(client, headers, appt["id"], "completed")
    assert resp.status_code == 409
    assert "Ácido glicólico" in resp.json()["detail"]

    current = await client.get(f"{API}/appointments/{appt['id']}", headers=headers)
    assert current.json()["status"] == "in_service"


async def test_manual_decrement_never_goes_negative(client, headers):
    ids = await _setup_clinic(client, headers, stock="1")

    ok = await client.post(
        f"{API}/inventory/items/{ids['item_id']}/decrement", json={"quantity": "1"}, headers=headers
    )
    assert ok.status_code == 200
    assert Decimal(ok.json()["current_stock"]) == Decimal("0")

    again = await client.post(
        f"{API}/inventory/items/{ids['item_id']}/decrement", json={}, headers=headers
    )
    assert again.status_code == 409


async def test_quantities_beyond_three_decimals_are_rejected(client, headers):
    ids = await _setup_clinic(client, headers)

    resp = await client.post(
        f"{API}/inventory/items/{ids['item_id']}/decrement", json={"quantity": "0.0004"}, headers=headers
    )
    assert resp.status_code == 422

    resp = await client.post(
        f"{API}/inventory/items",
        json={"code": "ALC-009", "name": "Alcohol", "unit": "mililitro", "initial_stock": "1.2345"},
        headers=headers,
    )
    assert resp.status_code == 422

    current = await client.get(f"{API}/inventory/items/{ids['item_id']}", headers=headers)
    assert Decimal(current.json()["current_stock"]) == Decimal("10")


async def test_availability_exception_blocks_booking(client, headers, monday):
    ids = await _setup_clinic(client, headers)

    exc = await client.post(
        f"{API}/availability/exceptions",
        json={
            "professional_id": ids["professional_id"],
            "date_start": monday.isoformat(),
            "date_end": monday.isoformat(),
            "reason": "Vacaciones",
        },
        headers=headers,
    )
    assert exc.status_code == 201

    check = await client.get(
        f"{API}/availability/check",
        params={
            "professional_id": ids["professional_id"],
            "start_time": at(monday, 10).isoformat(),
            "end_time": at(monday, 10, 45).isoformat(),
        },
        headers=headers,
    )
    assert check.json()["available"] is False
    assert "Vacaciones" in check.json()["reason"]

    booked = await _book(client, headers, ids, at(monday, 10))
    assert booked.status_code == 409

    deleted = await client.delete(
        f"{API}/availability/exceptions/{exc.json()['id']}", headers=headers
    )
    assert deleted.status_code == 204

    booked = await _book(client, headers, ids, at(monday, 10))
    assert booked.status_code == 201


async def test_partial_exception_requires_window(client, headers, monday):
    ids = await _setup_clinic(client, headers)

    resp = await client.post(
        f"{API}/availability/exceptions",
        json={
            "professional_id": ids["professional_id"],
            "date_start": monday.isoformat(),
            "date_end": monday.isoformat(),
            "is_full_day": False,
        },
        headers=headers,
    )
    assert resp.status_code == 422
