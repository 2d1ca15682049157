from collections import defaultdict
from datetime import date, datetime
from typing import List, Optional

from greencare import schemas
from greencare.schemas import MONTHS
from greencare.stats import Snapshot, as_date, monthly_salary, paid_income


def company_summaries(snapshot: Snapshot) -> List[schemas.CompanySummary]:
    by_company = defaultdict(list)
    for p in snapshot.payments:
        by_company[p["company_id"]].append(p)
    out = []
    for c in snapshot.companies:
        payments = sorted(
            by_company.get(c["id"], []),
            key=lambda p: (as_date(p.get("date")) or date.min, p["id"]),
            reverse=True,
        )
        out.append(schemas.CompanySummary(
            company_id=c["id"],
            name=c["name"],
            paid_total_cents=paid_income(payments),
            payments_count=len(payments),
            last_payment=payments[0] if payments else None,
        ))
    return out


def current_salary_status(labor_id: int, salary_payments, today: date) -> str:
    month = MONTHS[today.month - 1]
    for sp in salary_payments:
        if sp["labor_id"] == labor_id and sp["month"] == month and int(sp["year"]) == today.year:
            return sp["status"]
    return "pending"


def worker_summaries(snapshot: Snapshot, today: Optional[date] = None) -> List[schemas.WorkerSummary]:
    today = today or date.today()
    expenses = defaultdict(list)
    for e in snapshot.labor_expenses:
        expenses[e["labor_id"]].append(int(e["amount_cents"] or 0))
    return [
        schemas.WorkerSummary(
            labor_id=w["id"],
            name=w["name"],
            expenses_total_cents=sum(expenses.get(w["id"], [])),
            expenses_count=len(expenses.get(w["id"], [])),
            monthly_salary_cents=monthly_salary(w),
            current_salary_status=current_salary_status(w["id"], snapshot.salary_payments, today),
        )
        for w in snapshot.labor
    ]


def project_summaries(snapshot: Snapshot) -> List[schemas.ProjectSummary]:
    spent = defaultdict(int)
    for e in snapshot.project_expenses:
        spent[e["project_id"]] += int(e["amount_cents"] or 0)
    out = []
    for p in snapshot.side_projects:
        expenses = spent.get(p["id"], 0)
        out.append(schemas.ProjectSummary(
            project_id=p["id"],
            name=p["name"],
            status=p["status"],
            cost_cents=int(p["cost_cents"] or 0),
            profit_cents=int(p["profit_cents"] or 0),
            expenses_cents=expenses,
            net_profit_cents=int(p["profit_cents"] or 0) - expenses,
        ))
    return out


def invoice_summary(invoices) -> schemas.InvoiceSummary:
    return schemas.InvoiceSummary(
        total_value_cents=sum(int(i["amount_cents"] or 0) for i in invoices),
        count=len(invoices),
        paid_count=sum(1 for i in invoices if i["status"] == "paid"),
        overdue_count=sum(1 for i in invoices if i["status"] == "overdue"),
    )


def _month_keys(months: int, today: date) -> List[str]:
    keys = []
    y, m = today.year, today.month
    for _ in range(months):
        keys.append(f"{y:04d}-{m:02d}")
        m -= 1
        if m == 0:
            y, m = y - 1, 12
    return list(reversed(keys))


def monthly_series(snapshot: Snapshot, months: int = 12, today: Optional[date] = None) -> List[schemas.MonthlyPoint]:
    today = today or datetime.now().date()
    keys = _month_keys(months, today)
    income = dict.fromkeys(keys, 0)
    expenses = dict.fromkeys(keys, 0)

    for p in snapshot.payments:
        d = as_date(p.get("date"))
        if p.get("status") == "paid" and d and d.strftime("%Y-%m") in income:
            income[d.strftime("%Y-%m")] += int(p["amount_cents"] or 0)
    for e in list(snapshot.labor_expenses) + list(snapshot.project_expenses):
        d = as_date(e.get("date"))
        if d and d.strftime("%Y-%m") in expenses:
            expenses[d.strftime("%Y-%m")] += int(e["amount_cents"] or 0)

    return [
        schemas.MonthlyPoint(
            month=k, income_cents=income[k], expenses_cents=expenses[k], profit_cents=income[k] - expenses[k],
        )
        for k in keys
    ]


def expense_breakdown(snapshot: Snapshot) -> schemas.ExpenseBreakdown:
    salaries = sum(int(s["amount_cents"] or 0) for s in snapshot.salary_payments if s["status"] == "paid")
    labor = sum(int(e["amount_cents"] or 0) for e in snapshot.labor_expenses)
    projects = sum(int(e["amount_cents"] or 0) for e in snapshot.project_expenses)
    return schemas.ExpenseBreakdown(
        salaries_paid_cents=salaries,
        labor_expenses_cents=labor,
        project_expenses_cents=projects,
        total_cents=salaries + labor + projects,
    )
