"""
Persistence gateway for month ledgers and vacation requests.

``save_month`` replaces every day row of a worker-month inside one
transaction: the old rows and signature are dropped and the new set inserted,
or nothing changes at all. Day identity is therefore not preserved across
saves; clients always resend the whole month.

Low-level helpers (``_write_month``, ``mirror_absence``, the vacation
request helpers) never commit; callers group them with ``transaction()``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Iterable, Optional, Sequence

from sqlalchemy import delete as sa_delete
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, PersistenceFailure
from app.models.calendar_event import VACATION, CalendarEvent
from app.models.hours import HoursDay, HoursMonth
from app.models.user import User
from app.services.day_rules import (AbsenceType, DayEntry, VacationStatus,
                                    days_in_month, is_weekend)
from app.services.month_ledger import MonthLedger
from app.services.visibility import Visibility, is_visible_to

logger = logging.getLogger(__name__)


class LedgerStore:
    def __init__(self, session: AsyncSession):
        self._session = session

    # ── Transactions ─────────────────────────────────────────────────
    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit on success; roll back on any failure.

        Database errors surface as ``PersistenceFailure``; domain errors raised
        inside the block are re-raised unchanged after the rollback.
        """
        try:
            yield
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Transaction rolled back: %s", exc)
            raise PersistenceFailure(str(exc)) from exc
        except Exception:
            await self._session.rollback()
            raise

    # ── Month ledgers ────────────────────────────────────────────────
    async def _month_record(
        self, user_id: int, year: int, month: int, *, lock: bool = False
    ) -> Optional[HoursMonth]:
        query = select(HoursMonth).where(
            HoursMonth.user_id == user_id,
            HoursMonth.year == year,
            HoursMonth.month == month,
        )
        if lock:
            query = query.with_for_update()
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def month_vacation_requests(self, user_id: int, year: int, month: int) -> dict[int, VacationStatus]:
        """Status of the vacation request behind each day of the month, by day."""
        first = date(year, month, 1)
        last = date(year, month, days_in_month(year, month))
        result = await self._session.execute(
            select(CalendarEvent.date, CalendarEvent.status).where(
                CalendarEvent.owner_id == user_id,
                CalendarEvent.type == VACATION,
                CalendarEvent.date >= first,
                CalendarEvent.date <= last,
            )
        )
        return {
            on.day: VacationStatus(status)
            for on, status in result.all()
            if status is not None
        }

    async def load_month(self, user_id: int, year: int, month: int) -> Optional[MonthLedger]:
        """The saved ledger, or ``None`` when the month was never saved."""
        record = await self._month_record(user_id, year, month)
        if record is None:
            return None

        rows = await self._session.execute(
            select(HoursDay).where(HoursDay.month_id == record.id).order_by(HoursDay.day.asc())
        )
        statuses = await self.month_vacation_requests(user_id, year, month)
        entries = []
        for row in rows.scalars().all():
            absence = AbsenceType(row.absence_type or AbsenceType.NONE.value)
            entries.append(
                DayEntry(
                    day=row.day,
                    morning_in=row.morning_in,
                    morning_out=row.morning_out,
                    afternoon_in=row.afternoon_in,
                    afternoon_out=row.afternoon_out,
                    absence_type=absence,
                    has_signature=bool(row.has_signature),
                    medical_justification_ref=row.medical_justification_ref,
                    vacation_status=statuses.get(row.day) if absence is AbsenceType.VACATION else None,
                )
            )
        return MonthLedger(user_id, year, month, entries, signature=record.signature_data_url)

    async def _write_month(
        self,
        user_id: int,
        year: int,
        month: int,
        signature: Optional[str],
        days: Sequence[DayEntry],
    ) -> HoursMonth:
        record = await self._month_record(user_id, year, month, lock=True)
        if record is None:
            record = HoursMonth(user_id=user_id, year=year, month=month, signature_data_url=signature)
            self._session.add(record)
            await self._session.flush()
        else:
            record.signature_data_url = signature
            await self._session.execute(sa_delete(HoursDay).where(HoursDay.month_id == record.id))

        signed = signature is not None
        self._session.add_all(
            [
                HoursDay(
                    month_id=record.id,
                    day=d.day,
                    morning_in=d.morning_in,
                    morning_out=d.morning_out,
                    afternoon_in=d.afternoon_in,
                    afternoon_out=d.afternoon_out,
                    total_minutes=d.total_minutes,
                    absence_type=d.absence_type.value,
                    has_signature=signed and d.has_hours(),
                    medical_justification_ref=d.medical_justification_ref,
                )
                for d in days
            ]
        )
        await self._session.flush()
        return record

    async def save_month(
        self,
        user_id: int,
        year: int,
        month: int,
        signature: Optional[str],
        days: Sequence[DayEntry],
    ) -> None:
        """Atomically replace the day set and signature of one worker-month."""
        async with self.transaction():
            await self._write_month(user_id, year, month, signature or None, days)
        logger.info("Saved hours %d-%02d for user %d (%d days)", year, month, user_id, len(days))

    async def save_ledger(self, ledger: MonthLedger) -> None:
        await self.save_month(ledger.user_id, ledger.year, ledger.month, ledger.signature, ledger.rows())
        ledger.mark_saved()

    async def mirror_absence(self, user_id: int, on: date, absence: AbsenceType) -> None:
        """Flag (or unflag) one day of the worker's month ledger as vacation."""
        if is_weekend(on.year, on.month, on.day):
            return
        ledger = await self.load_month(user_id, on.year, on.month)
        if ledger is None:
            if absence is AbsenceType.NONE:
                return
            ledger = MonthLedger.empty(user_id, on.year, on.month)

        current = ledger.day(on.day)
        if absence is AbsenceType.NONE:
            if current.absence_type is not AbsenceType.VACATION:
                return
            updated = current.cleared()
        else:
            updated = current.with_absence(absence)
        ledger.recompute_day(ledger.index_of(on.day), updated)
        await self._write_month(user_id, on.year, on.month, ledger.signature, ledger.rows())

    # ── Vacation requests ────────────────────────────────────────────
    async def get_allowance(self, owner_id: int) -> int:
        result = await self._session.execute(
            select(User.vacation_days_per_year).where(User.id == owner_id)
        )
        allowance = result.scalar_one_or_none()
        if allowance is None:
            raise NotFound(f"User {owner_id} not found")
        return int(allowance)

    async def get_event(self, event_id: int) -> Optional[CalendarEvent]:
        result = await self._session.execute(select(CalendarEvent).where(CalendarEvent.id == event_id))
        return result.scalar_one_or_none()

    async def find_vacation_request(self, owner_id: int, on: date) -> Optional[CalendarEvent]:
        result = await self._session.execute(
            select(CalendarEvent).where(
                CalendarEvent.owner_id == owner_id,
                CalendarEvent.type == VACATION,
                CalendarEvent.date == on,
            )
        )
        return result.scalar_one_or_none()

    async def create_or_update_vacation_request(
        self,
        owner_id: int,
        on: date,
        status: VacationStatus,
        *,
        visibility: str = "only-me",
        viewers: Optional[list[int]] = None,
    ) -> CalendarEvent:
        event = await self.find_vacation_request(owner_id, on)
        if event is None:
            event = CalendarEvent(
                owner_id=owner_id,
                type=VACATION,
                date=on,
                status=status.value,
                visibility=visibility,
                viewers=viewers,
            )
            self._session.add(event)
        else:
            event.status = status.value
        await self._session.flush()
        return event

    async def delete_vacation_request(self, event_id: int) -> None:
        await self._session.execute(sa_delete(CalendarEvent).where(CalendarEvent.id == event_id))

    async def count_vacation_requests(self, owner_id: int, statuses: Iterable[VacationStatus]) -> int:
        result = await self._session.execute(
            select(func.count(CalendarEvent.id)).where(
                CalendarEvent.owner_id == owner_id,
                CalendarEvent.type == VACATION,
                CalendarEvent.status.in_([s.value for s in statuses]),
            )
        )
        return int(result.scalar() or 0)

    async def vacation_request_dates(self, owner_id: int, statuses: Iterable[VacationStatus]) -> set[date]:
        result = await self._session.execute(
            select(CalendarEvent.date).where(
                CalendarEvent.owner_id == owner_id,
                CalendarEvent.type == VACATION,
                CalendarEvent.status.in_([s.value for s in statuses]),
            )
        )
        return set(result.scalars().all())

    async def ledger_vacation_dates(self, user_id: int) -> set[date]:
        """Every saved day, across all months, marked as a vacation absence."""
        result = await self._session.execute(
            select(HoursMonth.year, HoursMonth.month, HoursDay.day)
            .join(HoursDay, HoursDay.month_id == HoursMonth.id)
            .where(
                HoursMonth.user_id == user_id,
                HoursDay.absence_type == AbsenceType.VACATION.value,
            )
        )
        return {date(y, m, d) for y, m, d in result.all()}

    # ── Other calendar events ────────────────────────────────────────
    async def create_event(
        self,
        owner_id: int,
        event_type: str,
        on: date,
        *,
        visibility: str = "only-me",
        viewers: Optional[list[int]] = None,
    ) -> CalendarEvent:
        if event_type == VACATION:
            raise ValueError("Vacation requests go through the vacation ledger")
        event = CalendarEvent(
            owner_id=owner_id,
            type=event_type,
            date=on,
            visibility=visibility,
            viewers=viewers,
        )
        async with self.transaction():
            self._session.add(event)
        logger.info("Calendar event %s on %s created for user %d", event_type, on.isoformat(), owner_id)
        return event

    async def delete_event(self, event_id: int) -> None:
        async with self.transaction():
            await self._session.execute(sa_delete(CalendarEvent).where(CalendarEvent.id == event_id))

    # ── Calendar reads ───────────────────────────────────────────────
    async def list_events_for_owner(self, owner_id: int) -> list[CalendarEvent]:
        result = await self._session.execute(
            select(CalendarEvent)
            .where(CalendarEvent.owner_id == owner_id)
            .order_by(CalendarEvent.date.asc(), CalendarEvent.id.asc())
        )
        return list(result.scalars().all())

    async def list_visible_events(self, viewer_id: int) -> list[CalendarEvent]:
        """Events ``viewer_id`` may see.

        ``all`` and ``only-me`` are decided in SQL. ``some`` rows are narrowed
        to their viewer list afterwards, since JSON membership is not portable
        between PostgreSQL and SQLite.
        """
        result = await self._session.execute(
            select(CalendarEvent)
            .where(
                or_(
                    CalendarEvent.visibility == Visibility.ALL.value,
                    and_(
                        CalendarEvent.visibility == Visibility.ONLY_ME.value,
                        CalendarEvent.owner_id == viewer_id,
                    ),
                    CalendarEvent.visibility == Visibility.SOME.value,
                )
            )
            .order_by(CalendarEvent.date.asc(), CalendarEvent.id.asc())
        )
        return [
            ev
            for ev in result.scalars().all()
            if ev.visibility != Visibility.SOME.value
            or is_visible_to(viewer_id, ev.owner_id, ev.visibility, ev.viewers)
        ]

    # ── Workers ──────────────────────────────────────────────────────
    async def delete_worker(self, user_id: int) -> None:
        """Delete a worker together with its ledgers and calendar events."""
        async with self.transaction():
            month_ids = select(HoursMonth.id).where(HoursMonth.user_id == user_id)
            await self._session.execute(sa_delete(HoursDay).where(HoursDay.month_id.in_(month_ids)))
            await self._session.execute(sa_delete(HoursMonth).where(HoursMonth.user_id == user_id))
            await self._session.execute(sa_delete(CalendarEvent).where(CalendarEvent.owner_id == user_id))
            await self._session.execute(sa_delete(User).where(User.id == user_id))
        logger.info("Deleted user %d with its hours and calendar events", user_id)
