from datetime import date, datetime, timedelta

import pytest

from greencare.errors import SnapshotError
from greencare.events import INSERT, ChangeEvent, ChangeHub
from greencare.stats import Snapshot, StatsCache, compute_stats, fetch_snapshot, monthly_salary

NOW = datetime(2026, 3, 15, 10, 30)
TODAY = NOW.date()


def _payment(pid, amount, status="paid", days_ago=0):
    return {"id": pid, "company_id": 1, "amount_cents": amount, "status": status,
            "date": TODAY - timedelta(days=days_ago)}


def _snapshot(**kw):
    base = dict(
        payments=[
            _payment(1, 10_000, days_ago=1),
            _payment(2, 20_000, days_ago=10),
            _payment(3, 40_000, days_ago=60),
            _payment(4, 5_000, status="pending", days_ago=2),
            _payment(5, 7_000, status="overdue", days_ago=3),
        ],
        companies=[{"id": 1}, {"id": 2}],
        labor=[
            {"id": 1, "salary_type": "monthly", "salary_amount_cents": 300_000},
            {"id": 2, "salary_type": "weekly", "salary_amount_cents": 50_000},
            {"id": 3, "salary_type": "daily", "salary_amount_cents": 10_000},
        ],
        side_projects=[
            {"id": 1, "status": "active"},
            {"id": 2, "status": "completed"},
            {"id": 3, "status": "completed"},
            {"id": 4, "status": "cancelled"},
        ],
        invoices=[{"id": 1, "status": "paid"}, {"id": 2, "status": "sent"}, {"id": 3, "status": "draft"}],
        labor_expenses=[{"id": 1, "amount_cents": 1_500}, {"id": 2, "amount_cents": 500}],
        project_expenses=[{"id": 1, "amount_cents": 3_000}],
        salary_payments=[
            {"id": 1, "status": "pending", "amount_cents": 300_000},
            {"id": 2, "status": "paid", "amount_cents": 50_000},
            {"id": 3, "status": "pending", "amount_cents": 10_000},
        ],
    )
    base.update(kw)
    return Snapshot(**base)


def test_income_counts_only_paid_payments():
    stats = compute_stats(_snapshot(), NOW)
    assert stats.total_income == 70_000
    assert stats.weekly_income == 10_000
    assert stats.monthly_income == 30_000


def test_income_windows_are_nested():
    stats = compute_stats(_snapshot(), NOW)
    assert stats.weekly_income <= stats.monthly_income <= stats.total_income


def test_windows_span_exactly_seven_and_thirty_days():
    snap = _snapshot(payments=[
        _payment(1, 1, days_ago=0),
        _payment(2, 10, days_ago=6),
        _payment(3, 100, days_ago=7),
        _payment(4, 1_000, days_ago=29),
        _payment(5, 10_000, days_ago=30),
    ])
    stats = compute_stats(snap, NOW)
    assert stats.weekly_income == 11
    assert stats.monthly_income == 1_111
    assert stats.total_income == 11_111


def test_payment_dated_a_week_ago_is_outside_weekly_window():
    snap = _snapshot(payments=[{"id": 1, "amount_cents": 100, "status": "paid", "date": date(2026, 3, 8)}])
    assert compute_stats(snap, NOW).weekly_income == 0


def test_flipping_pending_to_paid_adds_exactly_its_amount():
    snap = _snapshot()
    before = compute_stats(snap, NOW).total_income
    snap.payments[3] = dict(snap.payments[3], status="paid")
    after = compute_stats(snap, NOW).total_income
    assert after - before == 5_000


def test_project_worker_and_client_counts():
    stats = compute_stats(_snapshot(), NOW)
    assert stats.active_projects == 1
    assert stats.completed_projects == 2
    assert stats.one_time_projects == stats.completed_projects
    assert stats.permanent_clients == 2
    assert stats.active_workers == 3


def test_pending_salaries_sum_pending_salary_payments():
    stats = compute_stats(_snapshot(), NOW)
    assert stats.pending_salaries == 310_000


def test_monthly_payroll_uses_salary_type_factor():
    assert monthly_salary({"salary_type": "monthly", "salary_amount_cents": 100}) == 100
    assert monthly_salary({"salary_type": "weekly", "salary_amount_cents": 100}) == 400
    assert monthly_salary({"salary_type": "daily", "salary_amount_cents": 100}) == 400
    stats = compute_stats(_snapshot(), NOW)
    assert stats.monthly_payroll == 300_000 + 200_000 + 40_000


def test_expenses_profit_and_invoices():
    stats = compute_stats(_snapshot(), NOW)
    assert stats.total_expenses == 5_000
    assert stats.net_profit == 70_000 - 5_000
    assert stats.paid_invoices == 1
    assert stats.unpaid_invoices == 2


def test_empty_snapshot_is_all_zero():
    stats = compute_stats(Snapshot(), NOW)
    assert all(v == 0 for v in stats.model_dump().values())


def test_string_dates_are_accepted():
    snap = _snapshot(payments=[{"id": 1, "amount_cents": 100, "status": "paid", "date": TODAY.isoformat()}])
    assert compute_stats(snap, NOW).weekly_income == 100


class FakeStore:
    def __init__(self, rows=None, fail=False):
        self.hub = ChangeHub()
        self.rows = rows or {}
        self.fail = fail
        self.reads = 0

    async def query(self, collection, *args, **kwargs):
        self.reads += 1
        if self.fail and collection == "invoices":
            raise RuntimeError("connection lost")
        return list(self.rows.get(collection, []))

    def subscribe(self, collection, callback):
        return self.hub.subscribe(collection, callback)


@pytest.mark.anyio
async def test_snapshot_failure_raises(anyio_backend):
    with pytest.raises(SnapshotError):
        await fetch_snapshot(FakeStore(fail=True))


@pytest.mark.anyio
async def test_cache_recomputes_only_after_change(anyio_backend):
    store = FakeStore({"payments": [_payment(1, 1_000)]})
    cache = StatsCache(store, clock=lambda: NOW)
    cache.start()

    assert (await cache.get()).total_income == 1_000
    assert (await cache.get()).total_income == 1_000
    assert cache.refreshes == 1

    store.rows["payments"].append(_payment(2, 2_000))
    await store.hub.publish(ChangeEvent("payments", INSERT, 2))
    assert (await cache.get()).total_income == 3_000
    assert cache.refreshes == 2

    # an unrelated collection does not invalidate
    await store.hub.publish(ChangeEvent("settings", INSERT, 1))
    await cache.get()
    assert cache.refreshes == 2

    cache.stop()
    assert store.hub.subscriber_count("payments") == 0


@pytest.mark.anyio
async def test_cache_recomputes_when_the_day_changes(anyio_backend):
    clock = {"now": NOW}
    store = FakeStore({"payments": [_payment(1, 1_000, days_ago=6)]})
    cache = StatsCache(store, clock=lambda: clock["now"])

    assert (await cache.get()).weekly_income == 1_000
    clock["now"] = NOW + timedelta(days=1)
    assert (await cache.get()).weekly_income == 0
    assert cache.refreshes == 2


@pytest.mark.anyio
async def test_stats_endpoint(client):
    cid = (await client.post("/companies/", json={"name": "Acme"})).json()["id"]
    await client.post("/payments/", json={"company_id": cid, "amount_cents": 12_000,
                                          "date": date.today().isoformat(), "status": "paid"})
    r = await client.get("/stats")
    assert r.status_code == 200, r.text
    assert r.json()["total_income"] == 12_000
    assert r.json()["permanent_clients"] == 1

    await client.post("/payments/", json={"company_id": cid, "amount_cents": 3_000,
                                          "date": date.today().isoformat(), "status": "paid"})
    assert (await client.get("/stats")).json()["total_income"] == 15_000

    r = await client.post("/stats/refresh")
    assert r.status_code == 202
