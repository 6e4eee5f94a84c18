"""Tests for the monthly hours endpoints."""

from httpx import AsyncClient

API = "/api/v1"

HOURS = {"morningIn": "08:00", "morningOut": "12:00", "afternoonIn": "13:00", "afternoonOut": "17:00"}


def _month(*days, signature=None):
    return {"year": 2025, "month": 6, "signatureDataUrl": signature, "days": list(days)}


async def test_requires_authentication(async_client: AsyncClient):
    resp = await async_client.get(f"{API}/hours", params={"year": 2025, "month": 6})
    assert resp.status_code == 401


async def test_unsaved_month_does_not_exist(async_client: AsyncClient, worker, auth_headers):
    resp = await async_client.get(
        f"{API}/hours", params={"year": 2025, "month": 6}, headers=auth_headers(worker)
    )
    assert resp.status_code == 200
    assert resp.json() == {"exists": False, "data": None}


async def test_save_then_read_month(async_client: AsyncClient, worker, auth_headers):
    headers = auth_headers(worker)
    resp = await async_client.put(
        f"{API}/hours",
        json=_month(
            {"day": 2, **HOURS},
            {"day": 3, "absenceType": "medicalLeave", "medicalJustificationRef": "note.pdf"},
            signature="data:image/png;base64,AAAA",
        ),
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["totalMinutes"] == 480

    resp = await async_client.get(f"{API}/hours", params={"year": 2025, "month": 6}, headers=headers)
    data = resp.json()
    assert data["exists"] is True
    days = data["data"]["days"]
    assert len(days) == 30
    assert days[1]["totalMinutes"] == 480
    assert days[1]["hasSignature"] is True
    assert days[2]["absenceType"] == "medicalLeave"
    assert days[2]["medicalJustificationRef"] == "note.pdf"
    assert data["data"]["signatureDataUrl"] == "data:image/png;base64,AAAA"


async def test_invalid_month_is_refused_with_every_error(async_client: AsyncClient, worker, auth_headers):
    headers = auth_headers(worker)
    resp = await async_client.put(
        f"{API}/hours",
        json=_month(
            {"day": 2, "morningIn": "12:00", "morningOut": "08:00"},
            {"day": 3, "morningIn": "07:00", "morningOut": "12:00", "afternoonIn": "13:00", "afternoonOut": "18:00"},
            {"day": 4, **HOURS},
        ),
        headers=headers,
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert set(body["perDayErrors"]) == {"2", "3"}
    assert len(body["errors"]) == 2

    resp = await async_client.get(f"{API}/hours", params={"year": 2025, "month": 6}, headers=headers)
    assert resp.json()["exists"] is False


async def test_absence_with_hours_is_rejected_at_the_boundary(async_client: AsyncClient, worker, auth_headers):
    resp = await async_client.put(
        f"{API}/hours",
        json=_month({"day": 2, "absenceType": "vacation", "morningIn": "08:00"}),
        headers=auth_headers(worker),
    )
    assert resp.status_code == 422


async def test_malformed_time_is_rejected(async_client: AsyncClient, worker, auth_headers):
    resp = await async_client.put(
        f"{API}/hours",
        json=_month({"day": 2, "morningIn": "8h"}),
        headers=auth_headers(worker),
    )
    assert resp.status_code == 422


async def test_edit_single_day(async_client: AsyncClient, worker, auth_headers):
    resp = await async_client.put(
        f"{API}/hours/days/16",
        json={"year": 2025, "month": 6, **HOURS},
        headers=auth_headers(worker),
    )
    assert resp.status_code == 200
    assert resp.json()["totalMinutes"] == 480


async def test_edit_future_or_weekend_day_is_locked(async_client: AsyncClient, worker, auth_headers):
    headers = auth_headers(worker)
    resp = await async_client.put(
        f"{API}/hours/days/19", json={"year": 2025, "month": 6, **HOURS}, headers=headers
    )
    assert resp.status_code == 422
    resp = await async_client.put(
        f"{API}/hours/days/14", json={"year": 2025, "month": 6, **HOURS}, headers=headers
    )
    assert resp.status_code == 422

    # Absences can be booked ahead
    resp = await async_client.put(
        f"{API}/hours/days/30",
        json={"year": 2025, "month": 6, "absenceType": "nonWorkingDay"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["absenceType"] == "nonWorkingDay"


async def test_summary(async_client: AsyncClient, worker, auth_headers):
    headers = auth_headers(worker)
    await async_client.put(
        f"{API}/hours",
        json=_month({"day": 2, **HOURS}, {"day": 3, "morningIn": "08:00", "morningOut": "12:30"}),
        headers=headers,
    )
    resp = await async_client.get(
        f"{API}/hours/summary", params={"year": 2025, "month": 6}, headers=headers
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["totalMinutes"] == 750
    assert data["totalFormatted"] == "12:30"
    assert data["daysWithHours"] == 2
    assert data["workingDays"] == 13


async def test_range_copy_uses_the_reserved_quota(async_client: AsyncClient, worker, db_session, auth_headers):
    # The unrequested source day already takes one of the two days
    worker.vacation_days_per_year = 2
    await db_session.commit()

    resp = await async_client.post(
        f"{API}/hours/range-copy",
        json={
            "year": 2025,
            "month": 6,
            "days": [{"day": 2, "absenceType": "vacation"}],
            "sourceDay": 2,
            "targetDay": 4,
        },
        headers=auth_headers(worker),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["affectedDays"] == [3]
    assert data["quotaLeft"] == 0
    assert data["days"][2]["absenceType"] == "vacation"
    assert data["days"][3]["absenceType"] == "none"


async def test_range_copy_without_eligible_days(async_client: AsyncClient, worker, auth_headers):
    resp = await async_client.post(
        f"{API}/hours/range-copy",
        json={"year": 2025, "month": 6, "days": [{"day": 13, **HOURS}], "sourceDay": 13, "targetDay": 15},
        headers=auth_headers(worker),
    )
    assert resp.status_code == 200
    assert resp.json()["affected"] == 0
    assert resp.json()["message"] == "no eligible days in range"


async def test_range_copy_from_empty_source(async_client: AsyncClient, worker, auth_headers):
    resp = await async_client.post(
        f"{API}/hours/range-copy",
        json={"year": 2025, "month": 6, "days": [], "sourceDay": 2, "targetDay": 4},
        headers=auth_headers(worker),
    )
    assert resp.status_code == 422


async def test_pdf_report(async_client: AsyncClient, worker, auth_headers):
    headers = auth_headers(worker)
    resp = await async_client.get(f"{API}/hours/pdf", params={"year": 2025, "month": 6}, headers=headers)
    assert resp.status_code == 404

    await async_client.put(f"{API}/hours", json=_month({"day": 2, **HOURS}), headers=headers)
    resp = await async_client.get(f"{API}/hours/pdf", params={"year": 2025, "month": 6}, headers=headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert "hours_2025_06_ana.pdf" in resp.headers["content-disposition"]


async def test_admin_reads_any_worker(async_client: AsyncClient, worker, admin, auth_headers):
    await async_client.put(f"{API}/hours", json=_month({"day": 2, **HOURS}), headers=auth_headers(worker))

    params = {"userId": worker.id, "year": 2025, "month": 6}
    resp = await async_client.get(f"{API}/admin/hours", params=params, headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["data"]["userId"] == worker.id

    resp = await async_client.get(f"{API}/admin/hours/pdf", params=params, headers=auth_headers(admin))
    assert resp.status_code == 200

    resp = await async_client.get(f"{API}/admin/hours", params=params, headers=auth_headers(worker))
    assert resp.status_code == 403


async def test_weekend_absence_is_refused_on_save(async_client: AsyncClient, worker, auth_headers):
    headers = auth_headers(worker)
    resp = await async_client.put(
        f"{API}/hours",
        json=_month({"day": 2, **HOURS}, {"day": 7, "absenceType": "medicalLeave"}),
        headers=headers,
    )
    assert resp.status_code == 422
    assert set(resp.json()["perDayErrors"]) == {"7"}

    resp = await async_client.get(f"{API}/hours", params={"year": 2025, "month": 6}, headers=headers)
    assert resp.json()["exists"] is False


async def test_approved_vacation_survives_a_full_month_save(
    async_client: AsyncClient, worker, admin, auth_headers
):
    headers = auth_headers(worker)
    resp = await async_client.post(
        f"{API}/calendar/events", json={"type": "vacation", "date": "2025-06-10"}, headers=headers
    )
    await async_client.patch(
        f"{API}/admin/calendar/events/{resp.json()['id']}/vacation",
        json={"status": "approved"},
        headers=auth_headers(admin),
    )

    # Hours on the vacation day are refused
    resp = await async_client.put(f"{API}/hours", json=_month({"day": 10, **HOURS}), headers=headers)
    assert resp.status_code == 422
    assert "vacation request is approved" in resp.json()["perDayErrors"]["10"][0]

    # Leaving the day out keeps the vacation
    resp = await async_client.put(f"{API}/hours", json=_month({"day": 9, **HOURS}), headers=headers)
    assert resp.status_code == 200
    resp = await async_client.get(f"{API}/hours", params={"year": 2025, "month": 6}, headers=headers)
    day = resp.json()["data"]["days"][9]
    assert day["absenceType"] == "vacation"
    assert day["vacationStatus"] == "approved"


async def test_repeated_range_copies_cannot_exceed_the_allowance(
    async_client: AsyncClient, worker, db_session, auth_headers
):
    worker.vacation_days_per_year = 2
    await db_session.commit()
    headers = auth_headers(worker)

    resp = await async_client.post(
        f"{API}/hours/range-copy",
        json={
            "year": 2025,
            "month": 6,
            "days": [{"day": 2, "absenceType": "vacation"}],
            "sourceDay": 2,
            "targetDay": 6,
        },
        headers=headers,
    )
    assert resp.json()["affectedDays"] == [3]
    assert resp.json()["quotaLeft"] == 0
    vacation = [{"day": d, "absenceType": "vacation"} for d in (2, 3)]
    resp = await async_client.put(f"{API}/hours", json=_month(*vacation), headers=headers)
    assert resp.status_code == 200

    # The saved days now count, so a second copy has nothing left to spend
    resp = await async_client.post(
        f"{API}/hours/range-copy",
        json={"year": 2025, "month": 6, "days": vacation, "sourceDay": 2, "targetDay": 13},
        headers=headers,
    )
    assert resp.json()["affectedDays"] == [3]
    assert resp.json()["quotaLeft"] == 0

    more = [{"day": d, "absenceType": "vacation"} for d in (2, 3, 4, 5, 6)]
    resp = await async_client.put(f"{API}/hours", json=_month(*more), headers=headers)
    assert resp.status_code == 422
    assert resp.json()["perDayErrors"] == {}

    resp = await async_client.get(f"{API}/calendar/vacation-days-left", headers=headers)
    assert resp.json()["daysLeft"] == 0
