"""
Monthly hours endpoints.

- Workers read and write their own month ledgers.
- ``/admin/hours`` lets an admin read any worker's ledger and report.

Saves are all-or-nothing: a month with any invalid day is refused with every
error listed and nothing is written.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (get_current_active_user, get_db, get_ledger_store,
                             get_today, get_vacation_ledger, require_admin)
from app.core.exceptions import MonthValidationFailed, NotFound, ValidationError
from app.db.ledger_store import LedgerStore
from app.models.user import User
from app.schemas.hours import (DayEditRequest, DayRead, MonthPayload, MonthRead,
                               MonthResponse, RangeCopyRequest, RangeCopyResponse,
                               SaveResponse, SummaryRead)
from app.services.month_ledger import MonthLedger
from app.services.range_copy import copy_range
from app.services.report_pdf import WorkerProfile, render_month_pdf, report_filename
from app.services.vacation_ledger import VacationLedger

router = APIRouter(tags=["hours"])
logger = logging.getLogger(__name__)

YearQuery = Annotated[int, Query(ge=1900, le=9999)]
MonthQuery = Annotated[int, Query(ge=1, le=12)]


# ── Helpers ─────────────────────────────────────────────────────────
async def _load_or_empty(store: LedgerStore, user_id: int, year: int, month: int) -> MonthLedger:
    ledger = await store.load_month(user_id, year, month)
    return ledger if ledger is not None else MonthLedger.empty(user_id, year, month)


async def _check_month(store: LedgerStore, vacations: VacationLedger, ledger: MonthLedger) -> None:
    """Raise ``MonthValidationFailed`` listing every reason ``ledger`` cannot be saved.

    Days behind a pending or approved vacation request are held as vacation,
    weekends never carry an absence, and newly marked vacation days must fit
    the remaining allowance.
    """
    result = ledger.validate()
    per_day = dict(result.per_day_errors)
    messages = list(result.messages)

    requests = await store.month_vacation_requests(ledger.user_id, ledger.year, ledger.month)
    for errors in (ledger.weekend_absence_errors(), ledger.hold_vacation_requests(requests)):
        for number, day_errors in errors.items():
            per_day.setdefault(number, []).extend(day_errors)
            messages.extend(day_errors)

    quota = await vacations.month_quota(ledger)
    if quota.exceeded:
        messages.append(
            f"{quota.posted} vacation day(s) marked but only {max(quota.available, 0)} left"
        )

    if messages:
        logger.info(
            "Refused hours %d-%02d for user %d: %d message(s)",
            ledger.year,
            ledger.month,
            ledger.user_id,
            len(messages),
        )
        raise MonthValidationFailed(per_day, messages)


async def _save(store: LedgerStore, vacations: VacationLedger, ledger: MonthLedger) -> SaveResponse:
    await _check_month(store, vacations, ledger)
    await store.save_ledger(ledger)
    return SaveResponse(
        message="Hours saved",
        total_minutes=sum(d.total_minutes for d in ledger),
    )


def _profile(user: User) -> WorkerProfile:
    name = user.full_name or " ".join(
        part for part in (user.worker_first_name, user.worker_last_name) if part
    )
    return WorkerProfile(
        full_name=name or user.email,
        email=user.email,
        nif=user.worker_nif,
        ss_number=user.worker_ss_number,
        work_center=user.work_center,
        company_cif=user.company_cif,
        company_ccc=user.company_ccc,
    )


async def _pdf_response(store: LedgerStore, user: User, year: int, month: int, today: date) -> Response:
    ledger = await store.load_month(user.id, year, month)
    if ledger is None:
        raise NotFound(f"No hours saved for {year}-{month:02d}")
    profile = _profile(user)
    pdf = render_month_pdf(ledger, profile, today)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(ledger, profile)}"'},
    )


async def _get_worker(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


# ── Worker ──────────────────────────────────────────────────────────
@router.get("/hours", response_model=MonthResponse)
async def get_hours(
    year: YearQuery,
    month: MonthQuery,
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
) -> MonthResponse:
    ledger = await store.load_month(user.id, year, month)
    if ledger is None:
        return MonthResponse(exists=False, data=None)
    return MonthResponse(exists=True, data=MonthRead.from_ledger(ledger))


@router.put("/hours", response_model=SaveResponse)
async def save_hours(
    body: MonthPayload,
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
    vacations: VacationLedger = Depends(get_vacation_ledger),
) -> SaveResponse:
    """Replace the whole month: every day row and the signature."""
    return await _save(store, vacations, body.to_ledger(user.id))


@router.put("/hours/days/{day}", response_model=DayRead)
async def edit_day(
    body: DayEditRequest,
    day: int = Path(..., ge=1, le=31),
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
    vacations: VacationLedger = Depends(get_vacation_ledger),
    today: date = Depends(get_today),
) -> DayRead:
    """Edit one day in place; weekends and future days are locked for hours."""
    ledger = await _load_or_empty(store, user.id, body.year, body.month)
    kwargs = {}
    if "medical_justification_ref" in body.model_fields_set:
        kwargs["medical_justification_ref"] = body.medical_justification_ref
    try:
        entry = ledger.edit_day(
            day,
            today,
            times=body.times(),
            absence_type=body.absence_type,
            **kwargs,
        )
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    await _save(store, vacations, ledger)
    return DayRead.from_entry(ledger.rows()[ledger.index_of(entry.day)])


@router.get("/hours/summary", response_model=SummaryRead)
async def get_summary(
    year: YearQuery,
    month: MonthQuery,
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
    today: date = Depends(get_today),
) -> SummaryRead:
    ledger = await _load_or_empty(store, user.id, year, month)
    return SummaryRead.build(ledger, ledger.summary(today))


@router.post("/hours/range-copy", response_model=RangeCopyResponse)
async def range_copy(
    body: RangeCopyRequest,
    user: User = Depends(get_current_active_user),
    vacations: VacationLedger = Depends(get_vacation_ledger),
    today: date = Depends(get_today),
) -> RangeCopyResponse:
    """Copy one day over a span of the posted month. Nothing is saved."""
    ledger = MonthLedger(user.id, body.year, body.month, body.entries())
    try:
        source_index = ledger.index_of(body.source_day)
        target_index = ledger.index_of(body.target_day)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if source_index == target_index:
        raise ValidationError("Source and target must be different days")

    result = copy_range(
        ledger.days,
        source_index,
        target_index,
        year=ledger.year,
        month=ledger.month,
        today=today,
        vacation_quota=(await vacations.month_quota(ledger)).left,
    )
    return RangeCopyResponse(
        days=[DayRead.from_entry(d) for d in result.days],
        affected=result.affected,
        affected_days=list(result.affected_days),
        message=result.message,
        quota_left=result.quota_left,
    )


@router.get("/hours/pdf")
async def get_hours_pdf(
    year: YearQuery,
    month: MonthQuery,
    user: User = Depends(get_current_active_user),
    store: LedgerStore = Depends(get_ledger_store),
    today: date = Depends(get_today),
) -> Response:
    return await _pdf_response(store, user, year, month, today)


# ── Admin ───────────────────────────────────────────────────────────
@router.get("/admin/hours", response_model=MonthResponse)
async def admin_get_hours(
    user_id: Annotated[int, Query(alias="userId")],
    year: YearQuery,
    month: MonthQuery,
    db: AsyncSession = Depends(get_db),
    store: LedgerStore = Depends(get_ledger_store),
    _admin: User = Depends(require_admin),
) -> MonthResponse:
    worker = await _get_worker(db, user_id)
    ledger = await store.load_month(worker.id, year, month)
    if ledger is None:
        return MonthResponse(exists=False, data=None)
    return MonthResponse(exists=True, data=MonthRead.from_ledger(ledger))


@router.get("/admin/hours/pdf")
async def admin_get_hours_pdf(
    user_id: Annotated[int, Query(alias="userId")],
    year: YearQuery,
    month: MonthQuery,
    db: AsyncSession = Depends(get_db),
    store: LedgerStore = Depends(get_ledger_store),
    today: date = Depends(get_today),
    _admin: User = Depends(require_admin),
) -> Response:
    worker = await _get_worker(db, user_id)
    return await _pdf_response(store, worker, year, month, today)
