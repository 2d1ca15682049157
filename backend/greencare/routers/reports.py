from fastapi import APIRouter, Depends, Query, Request

from greencare import reporting, schemas
from greencare.deps import get_current_user
from greencare.stats import fetch_snapshot
from greencare.store import Store, get_store

router = APIRouter(tags=["reports"], dependencies=[Depends(get_current_user)])


def _stats_cache(request: Request):
    return request.app.state.stats_cache


@router.get("/stats", response_model=schemas.Stats)
async def get_stats(cache=Depends(_stats_cache)):
    return await cache.get()


@router.post("/stats/refresh", status_code=202)
async def refresh_stats(cache=Depends(_stats_cache)):
    cache.invalidate()
    return {"refreshed": True}


@router.get("/reports/companies", response_model=list[schemas.CompanySummary])
async def report_companies(store: Store = Depends(get_store)):
    return reporting.company_summaries(await fetch_snapshot(store))


@router.get("/reports/workers", response_model=list[schemas.WorkerSummary])
async def report_workers(store: Store = Depends(get_store)):
    return reporting.worker_summaries(await fetch_snapshot(store))


@router.get("/reports/projects", response_model=list[schemas.ProjectSummary])
async def report_projects(store: Store = Depends(get_store)):
    return reporting.project_summaries(await fetch_snapshot(store))


@router.get("/reports/invoices", response_model=schemas.InvoiceSummary)
async def report_invoices(store: Store = Depends(get_store)):
    return reporting.invoice_summary(await store.query("invoices"))


@router.get("/reports/monthly", response_model=list[schemas.MonthlyPoint])
async def report_monthly(months: int = Query(12, ge=1, le=36), store: Store = Depends(get_store)):
    return reporting.monthly_series(await fetch_snapshot(store), months=months)


@router.get("/reports/expenses", response_model=schemas.ExpenseBreakdown)
async def report_expenses(store: Store = Depends(get_store)):
    return reporting.expense_breakdown(await fetch_snapshot(store))
