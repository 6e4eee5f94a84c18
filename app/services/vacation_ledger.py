"""
Vacation ledger: per-day vacation requests and the annual quota.

Two balances coexist. The *reserved* balance subtracts pending and approved
requests and is what admission checks use; the *official* balance subtracts
approved requests only. Rejected requests count in neither, so rejecting a
pending request gives the day back at once. Vacation days saved straight into
a month ledger without a request (range copy) count against the reserved
balance too.

Every request is mirrored into the owner's month ledger: the day becomes a
``vacation`` absence while the request is pending or approved, and is cleared
again on rejection or deletion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (DuplicateRequest, InvalidTransition, LedgerError,
                                 NotFound, QuotaExceeded, ValidationError)
from app.db.ledger_store import LedgerStore
from app.models.calendar_event import VACATION, CalendarEvent
from app.services.day_rules import AbsenceType, VacationStatus, days_in_month
from app.services.month_ledger import MonthLedger

logger = logging.getLogger(__name__)


class QuotaPolicy(Enum):
    APPROVED_ONLY = (VacationStatus.APPROVED,)
    RESERVED = (VacationStatus.PENDING, VacationStatus.APPROVED)

    @property
    def statuses(self) -> tuple[VacationStatus, ...]:
        return self.value


_TRANSITIONS = {
    VacationStatus.PENDING: {VacationStatus.APPROVED, VacationStatus.REJECTED},
    VacationStatus.APPROVED: set(),
    VacationStatus.REJECTED: set(),
}


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date from ``start`` to ``end`` inclusive.

    Walks (year, month, day) tuples so no clock or timezone is involved.
    """
    y, m, d = start.year, start.month, start.day
    while (y, m, d) <= (end.year, end.month, end.day):
        yield date(y, m, d)
        d += 1
        if d > days_in_month(y, m):
            d = 1
            m += 1
            if m > 12:
                m = 1
                y += 1


@dataclass
class RangeFailure:
    date: date
    reason: str


@dataclass
class VacationRangeResult:
    created: list[CalendarEvent] = field(default_factory=list)
    failures: list[RangeFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.created)


@dataclass(frozen=True)
class MonthQuota:
    # Days left once every other month is accounted for.
    available: int
    # Unrequested vacation days in the stored copy of the month.
    saved: int
    # Unrequested vacation days in the edited copy.
    posted: int

    @property
    def left(self) -> int:
        return max(self.available - self.posted, 0)

    @property
    def exceeded(self) -> bool:
        """True when an edit adds vacation days the allowance cannot cover."""
        return self.posted > self.saved and self.posted > self.available


class VacationLedger:
    def __init__(self, store: LedgerStore):
        self._store = store

    async def _unrequested_dates(self, owner_id: int) -> set[date]:
        """Saved vacation days with no pending or approved request behind them."""
        booked = await self._store.ledger_vacation_dates(owner_id)
        requested = await self._store.vacation_request_dates(owner_id, QuotaPolicy.RESERVED.statuses)
        return booked - requested

    async def days_left(self, owner_id: int, policy: QuotaPolicy = QuotaPolicy.RESERVED) -> int:
        allowance = await self._store.get_allowance(owner_id)
        used = await self._store.count_vacation_requests(owner_id, policy.statuses)
        if policy is QuotaPolicy.RESERVED:
            used += len(await self._unrequested_dates(owner_id))
        return allowance - used

    async def month_quota(self, ledger: MonthLedger) -> MonthQuota:
        """Quota for an edited copy of one worker-month.

        Days of ``ledger`` marked as vacation without a live request are
        weighed against what the rest of the year leaves over.
        """
        owner_id = ledger.user_id
        allowance = await self._store.get_allowance(owner_id)
        reserved = await self._store.count_vacation_requests(owner_id, QuotaPolicy.RESERVED.statuses)
        requested = await self._store.vacation_request_dates(owner_id, QuotaPolicy.RESERVED.statuses)
        booked = await self._store.ledger_vacation_dates(owner_id)

        def in_month(on: date) -> bool:
            return (on.year, on.month) == (ledger.year, ledger.month)

        unrequested = booked - requested
        return MonthQuota(
            available=allowance - reserved - sum(1 for on in unrequested if not in_month(on)),
            saved=sum(1 for on in unrequested if in_month(on)),
            posted=len(ledger.vacation_dates() - requested),
        )

    async def request_vacation(
        self,
        owner_id: int,
        on: date,
        *,
        visibility: str = "only-me",
        viewers: Optional[list[int]] = None,
    ) -> CalendarEvent:
        if await self._store.find_vacation_request(owner_id, on) is not None:
            raise DuplicateRequest(owner_id, on)
        if await self.days_left(owner_id) <= 0:
            raise QuotaExceeded(owner_id, on)

        async with self._store.transaction():
            try:
                event = await self._store.create_or_update_vacation_request(
                    owner_id,
                    on,
                    VacationStatus.PENDING,
                    visibility=visibility,
                    viewers=viewers,
                )
            except IntegrityError as exc:
                # Lost a race against a concurrent request for the same date.
                raise DuplicateRequest(owner_id, on) from exc
            await self._store.mirror_absence(owner_id, on, AbsenceType.VACATION)

        logger.info("Vacation requested by user %d for %s", owner_id, on.isoformat())
        return event

    async def request_vacation_range(
        self,
        owner_id: int,
        start: date,
        end: date,
        *,
        visibility: str = "only-me",
        viewers: Optional[list[int]] = None,
    ) -> VacationRangeResult:
        """Request every date in ``[start, end]``, one call per date.

        Dates that fail are reported and skipped; dates already created stay
        committed.
        """
        if end < start:
            raise ValidationError("The range end precedes its start")

        result = VacationRangeResult()
        for on in iter_dates(start, end):
            try:
                event = await self.request_vacation(owner_id, on, visibility=visibility, viewers=viewers)
            except LedgerError as exc:
                logger.info("Vacation %s for user %d skipped: %s", on.isoformat(), owner_id, exc)
                result.failures.append(RangeFailure(on, str(exc)))
                continue
            result.created.append(event)
        return result

    async def _get_request(self, request_id: int) -> CalendarEvent:
        event = await self._store.get_event(request_id)
        if event is None or event.type != VACATION:
            raise NotFound(f"Vacation request {request_id} not found")
        return event

    async def set_status(self, request_id: int, status: VacationStatus) -> CalendarEvent:
        event = await self._get_request(request_id)
        current = VacationStatus(event.status or VacationStatus.PENDING.value)
        if status not in _TRANSITIONS[current]:
            raise InvalidTransition(
                f"Vacation request {request_id} cannot go from {current.value} to {status.value}"
            )

        absence = AbsenceType.VACATION if status is VacationStatus.APPROVED else AbsenceType.NONE
        async with self._store.transaction():
            event.status = status.value
            await self._store.mirror_absence(event.owner_id, event.date, absence)

        logger.info("Vacation request %d %s", request_id, status.value)
        return event

    async def delete_request(self, request_id: int) -> None:
        event = await self._get_request(request_id)
        owner_id, on = event.owner_id, event.date
        async with self._store.transaction():
            await self._store.delete_vacation_request(request_id)
            await self._store.mirror_absence(owner_id, on, AbsenceType.NONE)
        logger.info("Vacation request %d for user %d on %s deleted", request_id, owner_id, on.isoformat())
