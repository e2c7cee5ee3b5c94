from datetime import timedelta

import pytest

from telehealth.core.security import create_access_token

API = "/api/v1"


@pytest.fixture
async def doctor_with_slots(client, auth_headers, doctor_user, doctor, next_monday):
    headers = auth_headers(doctor_user)
    created = await client.post(
        f"{API}/availability/schedule",
        json={"dayOfWeek": 1, "startTime": "09:00", "endTime": "17:00"},
        headers=headers,
    )
    assert created.status_code == 201, created.text
    generated = await client.post(
        f"{API}/availability/slots/generate",
        json={"startDate": next_monday.isoformat(), "endDate": (next_monday + timedelta(days=6)).isoformat()},
        headers=headers,
    )
    assert generated.status_code == 201, generated.text
    return generated.json()["slots"]


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_requires_bearer_token(client):
    response = await client.get(f"{API}/availability/schedule")
    assert response.status_code == 401

    response = await client.get(
        f"{API}/availability/schedule", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


async def test_expired_token_is_rejected(client, patient):
    expired = create_access_token(patient.id, expires_minutes=-1)
    response = await client.get(
        f"{API}/consultations/my", headers={"Authorization": f"Bearer {expired}"}
    )
    assert response.status_code == 401


async def test_doctor_routes_reject_other_roles(client, auth_headers, patient, doctor_user):
    response = await client.get(f"{API}/availability/schedule", headers=auth_headers(patient))
    assert response.status_code == 403

    # Doctor account without a doctor profile
    response = await client.get(f"{API}/availability/schedule", headers=auth_headers(doctor_user))
    assert response.status_code == 403
    assert response.json() == {"detail": "Doctor profile not found", "code": "not_a_doctor"}


async def test_schedule_crud(client, auth_headers, doctor_user, doctor):
    headers = auth_headers(doctor_user)
    created = await client.post(
        f"{API}/availability/schedule",
        json={"dayOfWeek": 2, "startTime": "9:00", "endTime": "12:00"},
        headers=headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert (body["day_of_week"], body["start_time"], body["is_active"]) == (2, "09:00", True)

    overlap = await client.post(
        f"{API}/availability/schedule",
        json={"dayOfWeek": 2, "startTime": "11:00", "endTime": "13:00"},
        headers=headers,
    )
    assert overlap.status_code == 409
    assert overlap.json()["code"] == "conflict"

    bad = await client.post(
        f"{API}/availability/schedule",
        json={"dayOfWeek": 9, "startTime": "09:00", "endTime": "10:00"},
        headers=headers,
    )
    assert bad.status_code == 400
    assert bad.json()["code"] == "validation_error"

    updated = await client.put(
        f"{API}/availability/schedule/{body['id']}", json={"endTime": "14:00"}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["end_time"] == "14:00"

    listed = await client.get(f"{API}/availability/schedule", headers=headers)
    assert [w["id"] for w in listed.json()] == [body["id"]]

    deleted = await client.delete(f"{API}/availability/schedule/{body['id']}", headers=headers)
    assert deleted.status_code == 204
    missing = await client.delete(f"{API}/availability/schedule/{body['id']}", headers=headers)
    assert missing.status_code == 404


async def test_generate_validation_maps_to_400(client, auth_headers, doctor_user, doctor, next_monday):
    response = await client.post(
        f"{API}/availability/slots/generate",
        json={"startDate": next_monday.isoformat(), "endDate": next_monday.isoformat(), "slotDuration": 0},
        headers=auth_headers(doctor_user),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


async def test_booking_flow(
    client, auth_headers, doctor_with_slots, patient, other_patient, doctor_user, doctor, next_monday
):
    assert len(doctor_with_slots) == 16
    browse = await client.get(f"{API}/slots/doctor/{doctor.id}", params={"date": next_monday.isoformat()})
    assert browse.status_code == 200
    assert browse.json()["count"] == 16
    slot_id = browse.json()["slots"][0]["id"]

    booked = await client.post(
        f"{API}/consultations/book",
        json={"slotId": slot_id, "consultationType": "CHAT", "chiefComplaint": "Rash"},
        headers=auth_headers(patient),
    )
    assert booked.status_code == 201, booked.text
    consultation = booked.json()
    assert consultation["status"] == "SCHEDULED"
    assert consultation["consultation_type"] == "CHAT"

    again = await client.post(
        f"{API}/consultations/book", json={"slotId": slot_id}, headers=auth_headers(other_patient)
    )
    assert again.status_code == 409
    assert again.json() == {"detail": "Slot not available", "code": "slot_unavailable"}

    browse = await client.get(f"{API}/slots/doctor/{doctor.id}", params={"date": next_monday.isoformat()})
    assert browse.json()["count"] == 15

    mine = await client.get(f"{API}/consultations/my", headers=auth_headers(patient))
    assert mine.json()["total"] == 1
    theirs = await client.get(
        f"{API}/consultations/{consultation['id']}", headers=auth_headers(other_patient)
    )
    assert theirs.status_code == 403

    empty_reason = await client.post(
        f"{API}/consultations/{consultation['id']}/cancel", json={"reason": ""}, headers=auth_headers(patient)
    )
    assert empty_reason.status_code == 422

    cancelled = await client.post(
        f"{API}/consultations/{consultation['id']}/cancel",
        json={"reason": "Resolved"},
        headers=auth_headers(patient),
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"

    available = await client.get(
        f"{API}/availability/slots", params={"status": "AVAILABLE"}, headers=auth_headers(doctor_user)
    )
    assert available.json()["total"] == 16

    rebooked = await client.post(
        f"{API}/consultations/book", json={"slotId": slot_id}, headers=auth_headers(other_patient)
    )
    assert rebooked.status_code == 201


async def test_reschedule_start_complete(
    client, auth_headers, doctor_with_slots, patient, doctor_user, doctor
):
    first, second = doctor_with_slots[0]["id"], doctor_with_slots[1]["id"]
    booked = (
        await client.post(f"{API}/consultations/book", json={"slotId": first}, headers=auth_headers(patient))
    ).json()

    moved = await client.post(
        f"{API}/consultations/{booked['id']}/reschedule",
        json={"newSlotId": second, "reason": "Earlier meeting"},
        headers=auth_headers(patient),
    )
    assert moved.status_code == 200
    assert moved.json()["slot_id"] == second
    assert moved.json()["scheduled_start_time"] == doctor_with_slots[1]["slot_start_time"]

    forbidden = await client.post(f"{API}/consultations/{booked['id']}/start", headers=auth_headers(patient))
    assert forbidden.status_code == 403

    started = await client.post(f"{API}/consultations/{booked['id']}/start", headers=auth_headers(doctor_user))
    assert started.json()["status"] == "IN_PROGRESS"

    notes = await client.patch(
        f"{API}/consultations/{booked['id']}/notes",
        json={"doctorNotes": "Mild"},
        headers=auth_headers(doctor_user),
    )
    assert notes.json()["doctor_notes"] == "Mild"

    completed = await client.post(
        f"{API}/consultations/{booked['id']}/complete",
        json={"diagnosis": "Contact dermatitis", "followUpRequired": False},
        headers=auth_headers(doctor_user),
    )
    assert completed.status_code == 200
    assert completed.json()["status"] == "COMPLETED"

    cancel = await client.post(
        f"{API}/consultations/{booked['id']}/cancel", json={"reason": "Oops"}, headers=auth_headers(patient)
    )
    assert cancel.status_code == 409
    assert cancel.json()["code"] == "invalid_state"

    completed_slots = await client.get(
        f"{API}/availability/slots", params={"status": "COMPLETED"}, headers=auth_headers(doctor_user)
    )
    assert [s["id"] for s in completed_slots.json()["items"]] == [second]


async def test_block_and_slot_filters(client, auth_headers, doctor_with_slots, doctor_user, doctor):
    headers = auth_headers(doctor_user)
    ids = [s["id"] for s in doctor_with_slots[:3]]
    blocked = await client.post(
        f"{API}/availability/block", json={"slotIds": ids + [987654], "reason": "Leave"}, headers=headers
    )
    assert blocked.status_code == 200
    assert blocked.json()["updated_count"] == 3
    assert blocked.json()["skipped_ids"] == [987654]

    page = await client.get(
        f"{API}/availability/slots",
        params={"status": "cancelled,booked", "limit": 2, "page": 2},
        headers=headers,
    )
    assert page.json()["total"] == 3
    assert len(page.json()["items"]) == 1

    bad_filter = await client.get(f"{API}/availability/slots", params={"status": "LOST"}, headers=headers)
    assert bad_filter.status_code == 400
