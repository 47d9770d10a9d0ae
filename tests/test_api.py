# tests/test_api.py
import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from shedula.database import get_db
from shedula.dependencies import get_order_store
from shedula.main import app
from shedula.services.local_store import MedicineOrderStore


@pytest.fixture
def client(seeded_db, storage):
    order_store = MedicineOrderStore(storage)

    def override_get_db():
        yield seeded_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_store] = lambda: order_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _book(client, today, time="10:30 AM", **extra):
    body = {
        "doctorId": "1",
        "mode": "online",
        "date": today.isoformat(),
        "time": time,
        "patientName": "Riya",
        "patientAge": "29",
    }
    body.update(extra)
    return client.post("/api/v1/appointments/book", json=body, headers={"X-User-Id": "patient-1"})


def test_list_and_read_doctors(client):
    response = client.get("/api/v1/doctors/")
    assert response.status_code == 200
    assert len(response.json()) == 5

    doctor = client.get("/api/v1/doctors/1").json()
    assert doctor["id"] == "1"
    assert "clinicPrice" in doctor
    assert "online" in doctor["availableSlots"]

    assert client.get("/api/v1/doctors/999").status_code == 404


def test_doctor_slots_for_one_day(client, today):
    response = client.get("/api/v1/doctors/1/slots", params={"mode": "online", "date": today.isoformat()})
    assert response.status_code == 200
    slots = response.json()[today.isoformat()]
    assert slots[0] == {"time": "09:00 AM", "available": True}


def test_booking_flow(client, today):
    response = _book(client, today)
    assert response.status_code == 201
    appointment = response.json()
    assert appointment["status"] == "Pending"
    assert appointment["patientId"] == "patient-1"
    assert appointment["type"] == "Online Consultation"
    assert appointment["token"].startswith("A")

    assert _book(client, today).status_code == 409

    mine = client.get("/api/v1/appointments/", headers={"X-User-Id": "patient-1"}).json()
    assert [a["id"] for a in mine] == [appointment["id"]]

    response = client.post(
        f"/api/v1/appointments/{appointment['id']}/reschedule",
        json={"date": today.isoformat(), "time": "11:00 AM"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Rescheduled"
    assert response.json()["originalTime"] == "10:30 AM"

    response = client.patch(f"/api/v1/appointments/{appointment['id']}/status", json={"status": "Cancelled"})
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"
    assert _book(client, today, time="11:00 AM").status_code == 201


def test_patch_to_cancelled_frees_the_slot(client, today):
    appointment = _book(client, today).json()

    response = client.patch(f"/api/v1/appointments/{appointment['id']}", json={"status": "Cancelled"})
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"
    assert _book(client, today, patientName="Kabir").status_code == 201


def test_reviving_a_cancelled_appointment_on_a_rebooked_slot_conflicts(client, today):
    appointment = _book(client, today).json()
    client.post(f"/api/v1/appointments/{appointment['id']}/cancel")
    assert _book(client, today, patientId="patient-2").status_code == 201

    response = client.patch(f"/api/v1/appointments/{appointment['id']}/status", json={"status": "Pending"})
    assert response.status_code == 409
    assert client.get(f"/api/v1/appointments/{appointment['id']}").json()["status"] == "Cancelled"


def test_patch_time_moves_the_booking(client, today):
    appointment = _book(client, today).json()

    response = client.patch(f"/api/v1/appointments/{appointment['id']}", json={"time": "11:00 AM"})
    assert response.status_code == 200
    assert response.json()["status"] == "Rescheduled"
    assert response.json()["originalTime"] == "10:30 AM"

    assert _book(client, today, time="11:00 AM").status_code == 409
    assert _book(client, today, time="10:30 AM").status_code == 201


def test_order_store_is_shared_across_requests():
    get_order_store.cache_clear()
    try:
        assert get_order_store() is get_order_store()
    finally:
        get_order_store.cache_clear()


def test_list_appointments_requires_an_owner(client):
    assert client.get("/api/v1/appointments/").status_code == 400
    assert client.get("/api/v1/appointments/", params={"owner_id": "patient-42"}).json() == []


def test_appointment_document_crud(client):
    response = client.post("/api/v1/appointments/", json={"date": "2025-06-01", "time": "10:30 AM", "patientId": "p9"})
    assert response.status_code == 201
    appointment_id = response.json()["id"]

    response = client.patch(f"/api/v1/appointments/{appointment_id}", json={"notes": "Bring reports", "rating": 5})
    assert response.json()["notes"] == "Bring reports"
    assert response.json()["rating"] == 5

    assert client.patch(f"/api/v1/appointments/{appointment_id}", json={"rating": 9}).status_code == 422
    assert client.patch("/api/v1/appointments/missing", json={"notes": "x"}).status_code == 404
    assert client.delete(f"/api/v1/appointments/{appointment_id}").status_code == 204
    assert client.get(f"/api/v1/appointments/{appointment_id}").status_code == 404


def test_prescriptions(client):
    body = {
        "appointmentId": "appt-1",
        "patientId": "patient-1",
        "medicines": [{"name": "Amoxicillin", "dosage": "250mg", "duration": "7 days"}],
    }
    response = client.post("/api/v1/prescriptions/", json=body, headers={"X-User-Id": "doctor-7"})
    assert response.status_code == 201
    prescription_id = response.json()["id"]

    listed = client.get("/api/v1/prescriptions/", params={"owner": "doctor"}, headers={"X-User-Id": "doctor-7"}).json()
    assert [p["id"] for p in listed] == [prescription_id]
    assert listed[0]["medicines"][0]["instructions"] == ""

    assert client.post("/api/v1/prescriptions/", json={**body, "medicines": []}).status_code == 422
    assert client.delete(f"/api/v1/prescriptions/{prescription_id}").status_code == 204
    assert client.get(f"/api/v1/prescriptions/{prescription_id}").status_code == 404


def test_medicine_orders(client):
    assert client.get("/api/v1/medicines/", params={"q": "para"}).json()[0]["id"] == "M001"
    assert "Pediatrics" in client.get("/api/v1/medicines/categories").json()

    response = client.post("/api/v1/medicine-orders/", json={
        "medicineId": "M001",
        "quantity": 3,
        "customerName": "Asha Rao",
        "city": "Pune",
        "address": "12 MG Road",
        "phoneNumber": "9876543210",
    })
    assert response.status_code == 201
    order = response.json()
    assert order["totalPrice"] == 7.5
    assert order["deliveryStatus"] == "pending"

    response = client.patch(f"/api/v1/medicine-orders/{order['orderId']}", json={"deliveryStatus": "delivered"})
    assert response.json()["deliveryStatus"] == "delivered"

    assert client.delete(f"/api/v1/medicine-orders/{order['orderId']}").status_code == 204
    assert client.delete(f"/api/v1/medicine-orders/{order['orderId']}").status_code == 404
    assert client.get("/api/v1/medicine-orders/").json() == []


def test_order_for_unknown_medicine(client):
    response = client.post("/api/v1/medicine-orders/", json={
        "medicineId": "M999", "customerName": "A", "city": "B", "address": "C", "phoneNumber": "1",
    })
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health_check(client):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get("/api/v1/health/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["storageBackend"] == "memory"
    assert data["storageAvailable"] is True
