"""Dashboard statistics.

``compute_stats`` is a pure reduction over a ``Snapshot`` of every watched
collection. ``StatsCache`` keeps the last result and drops it whenever one
of those collections changes.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

from greencare.errors import SnapshotError
from greencare.schemas import Stats

logger = logging.getLogger(__name__)

WATCHED = (
    "payments",
    "companies",
    "labor",
    "side_projects",
    "invoices",
    "labor_expenses",
    "project_expenses",
    "salary_payments",
)

WEEK = timedelta(days=7)
MONTH = timedelta(days=30)

# monthly-equivalent multiplier per salary type; weekly and daily rates both count four times
PAYROLL_FACTOR = {"monthly": 1, "weekly": 4, "daily": 4}


@dataclass
class Snapshot:
    payments: List[dict] = field(default_factory=list)
    companies: List[dict] = field(default_factory=list)
    labor: List[dict] = field(default_factory=list)
    side_projects: List[dict] = field(default_factory=list)
    invoices: List[dict] = field(default_factory=list)
    labor_expenses: List[dict] = field(default_factory=list)
    project_expenses: List[dict] = field(default_factory=list)
    salary_payments: List[dict] = field(default_factory=list)


async def fetch_snapshot(store) -> Snapshot:
    """Read every watched collection concurrently; any failure fails the whole read."""
    try:
        results = await asyncio.gather(*(store.query(c) for c in WATCHED))
    except Exception as exc:
        logger.exception("snapshot read failed")
        raise SnapshotError("could not read all collections") from exc
    return Snapshot(**dict(zip(WATCHED, results)))


def as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _sum(rows, key="amount_cents") -> int:
    return sum(int(r.get(key) or 0) for r in rows)


def paid_income(payments, since: Optional[date] = None) -> int:
    """Sum of paid amounts, restricted to dates strictly after ``since`` when given."""
    total = 0
    for p in payments:
        if p.get("status") != "paid":
            continue
        if since is not None:
            d = as_date(p.get("date"))
            if d is None or d <= since:
                continue
        total += int(p.get("amount_cents") or 0)
    return total


def monthly_salary(worker: dict) -> int:
    factor = PAYROLL_FACTOR.get(worker.get("salary_type"), 1)
    return int(worker.get("salary_amount_cents") or 0) * factor


def compute_stats(snapshot: Snapshot, now: Optional[datetime] = None) -> Stats:
    now = now or datetime.now()
    today = now.date()

    total_income = paid_income(snapshot.payments)
    weekly_income = paid_income(snapshot.payments, since=today - WEEK)
    monthly_income = paid_income(snapshot.payments, since=today - MONTH)

    projects = snapshot.side_projects
    active_projects = sum(1 for p in projects if p.get("status") == "active")
    completed_projects = sum(1 for p in projects if p.get("status") == "completed")

    pending_salaries = _sum(s for s in snapshot.salary_payments if s.get("status") == "pending")
    monthly_payroll = sum(monthly_salary(w) for w in snapshot.labor)

    total_expenses = _sum(snapshot.labor_expenses) + _sum(snapshot.project_expenses)

    paid_invoices = sum(1 for i in snapshot.invoices if i.get("status") == "paid")

    return Stats(
        total_income=total_income,
        weekly_income=weekly_income,
        monthly_income=monthly_income,
        active_projects=active_projects,
        completed_projects=completed_projects,
        one_time_projects=completed_projects,
        permanent_clients=len(snapshot.companies),
        active_workers=len(snapshot.labor),
        pending_salaries=pending_salaries,
        monthly_payroll=monthly_payroll,
        total_expenses=total_expenses,
        net_profit=total_income - total_expenses,
        paid_invoices=paid_invoices,
        unpaid_invoices=len(snapshot.invoices) - paid_invoices,
    )


class StatsCache:
    """One subscription per watched collection; recomputes lazily after a change."""

    def __init__(self, store, clock=datetime.now):
        self.store = store
        self.clock = clock
        self._stats: Optional[Stats] = None
        self._computed_on: Optional[date] = None
        self._subscriptions = []
        self._generation = 0
        self.refreshes = 0

    def start(self) -> None:
        if self._subscriptions:
            return
        self._subscriptions = [self.store.subscribe(c, self.invalidate) for c in WATCHED]

    def stop(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    def invalidate(self, event=None) -> None:
        if event is not None:
            logger.debug("stats invalidated by %s %s", event.collection, event.kind)
        self._generation += 1
        self._stats = None

    async def get(self) -> Stats:
        now = self.clock()
        # the trailing windows move with the date even without writes
        if self._stats is None or self._computed_on != now.date():
            generation = self._generation
            snapshot = await fetch_snapshot(self.store)
            stats = compute_stats(snapshot, now)
            self.refreshes += 1
            if generation != self._generation:
                # a write landed while reading; serve this result but do not keep it
                return stats
            self._stats = stats
            self._computed_on = now.date()
        return self._stats
