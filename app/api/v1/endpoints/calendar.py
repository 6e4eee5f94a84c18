"""
Calendar and vacation endpoints.

- Workers see every event visible to them and manage their own.
- Admins read any worker's events and approve or reject vacation requests.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (get_current_active_user, get_db, get_ledger_store,
                             get_vacation_ledger, require_admin)
from app.core.exceptions import NotFound
from app.db.ledger_store import LedgerStore
from app.models.calendar_event import VACATION, CalendarEvent
from app.models.user import User
from app.schemas.calendar import (DaysLeftResponse, EventCreate, EventRead,
                                  RangeFailureRead, VacationRangeRequest,
                                  VacationRangeResponse, VacationStatusUpdate)
from app.schemas.common import DeleteResponse
from app.services.vacation_ledger import QuotaPolicy, VacationLedger

router = APIRouter(tags=["calendar"])
logger = logging.getLogger(__name__)


async def _delete_event(
    store: LedgerStore, vacations: VacationLedger, event: CalendarEvent
) -> DeleteResponse:
    if event.type == VACATION:
        await vacations.delete_request(event.id)
    else:
        await store.delete_event(event.id)
    return DeleteResponse(success=True, message=f"Event {event.id} deleted")


# ── Worker ──────────────────────────────────────────────────────────
@router.get("/calendar/events", response_model=list[EventRead])
async def list_events(
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
) -> list[CalendarEvent]:
    return await store.list_visible_events(user.id)


@router.post("/calendar/events", response_model=EventRead, status_code=201)
async def create_event(
    body: EventCreate,
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
    vacations: VacationLedger = Depends(get_vacation_ledger),
) -> CalendarEvent:
    """A ``vacation`` event is a single-day vacation request."""
    viewers = body.viewers
    if body.type == VACATION:
        return await vacations.request_vacation(
            user.id, body.date, visibility=body.visibility.value, viewers=viewers
        )
    return await store.create_event(
        user.id, body.type, body.date, visibility=body.visibility.value, viewers=viewers
    )


@router.post("/calendar/vacations/range", response_model=VacationRangeResponse)
async def request_vacation_range(
    body: VacationRangeRequest,
    user: User = Depends(get_current_active_user),
    vacations: VacationLedger = Depends(get_vacation_ledger),
) -> VacationRangeResponse:
    """Request every date of the range; failed dates are reported, not fatal."""
    result = await vacations.request_vacation_range(
        user.id,
        body.start_date,
        body.end_date,
        visibility=body.visibility.value,
        viewers=body.viewers,
    )
    return VacationRangeResponse(
        created=[EventRead.model_validate(ev) for ev in result.created],
        failures=[RangeFailureRead(date=f.date, reason=f.reason) for f in result.failures],
        success_count=result.success_count,
        days_left=await vacations.days_left(user.id),
    )


@router.get("/calendar/vacation-days-left", response_model=DaysLeftResponse)
async def vacation_days_left(
    user: User = Depends(get_current_active_user),
    vacations: VacationLedger = Depends(get_vacation_ledger),
) -> DaysLeftResponse:
    return DaysLeftResponse(
        allowance=user.vacation_days_per_year,
        days_left=await vacations.days_left(user.id, QuotaPolicy.RESERVED),
        approved_days_left=await vacations.days_left(user.id, QuotaPolicy.APPROVED_ONLY),
    )


@router.delete("/calendar/events/{event_id}", response_model=DeleteResponse)
async def delete_own_event(
    event_id: int,
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
    vacations: VacationLedger = Depends(get_vacation_ledger),
) -> DeleteResponse:
    event = await store.get_event(event_id)
    if event is None or event.owner_id != user.id:
        raise NotFound(f"Event {event_id} not found")
    return await _delete_event(store, vacations, event)


# ── Admin ───────────────────────────────────────────────────────────
@router.get("/admin/calendar/events/{user_id}", response_model=list[EventRead])
async def admin_list_events(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    store: LedgerStore = Depends(get_ledger_store),
    _admin: User = Depends(require_admin),
) -> list[CalendarEvent]:
    result = await db.execute(select(User.id).where(User.id == user_id))
    if result.first() is None:
        raise NotFound(f"User {user_id} not found")
    return await store.list_events_for_owner(user_id)


@router.patch("/admin/calendar/events/{event_id}/vacation", response_model=EventRead)
async def admin_set_vacation_status(
    event_id: int,
    body: VacationStatusUpdate,
    vacations: VacationLedger = Depends(get_vacation_ledger),
    _admin: User = Depends(require_admin),
) -> CalendarEvent:
    """Approve or reject a pending vacation request."""
    return await vacations.set_status(event_id, body.status)


@router.delete("/admin/calendar/events/{event_id}", response_model=DeleteResponse)
async def admin_delete_event(
    event_id: int,
    store: LedgerStore = Depends(get_ledger_store),
    vacations: VacationLedger = Depends(get_vacation_ledger),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    event = await store.get_event(event_id)
    if event is None:
        raise NotFound(f"Event {event_id} not found")
    return await _delete_event(store, vacations, event)
