from typing import Optional

from fastapi import APIRouter, Depends, Query

from greencare import schemas
from greencare.deps import get_current_user
from greencare.payroll import record_salary_payment
from greencare.store import Store, get_store

router = APIRouter(prefix="/salary-payments", tags=["salary-payments"], dependencies=[Depends(get_current_user)])


@router.get("/", response_model=list[schemas.SalaryPaymentOut])
async def list_salary_payments(
    labor_id: Optional[int] = None,
    year: Optional[int] = None,
    status: Optional[schemas.SalaryStatus] = None,
    store: Store = Depends(get_store),
):
    filters = {k: v for k, v in {"labor_id": labor_id, "year": year, "status": status}.items() if v is not None}
    return await store.query("salary_payments", filters, order_by="created_at", descending=True)


@router.post("/", response_model=schemas.SalaryPaymentOut)
async def record_payment(payload: schemas.SalaryPaymentIn, store: Store = Depends(get_store)):
    return await record_salary_payment(store, payload)


@router.delete("/{payment_id:int}", status_code=204)
async def delete_salary_payment(payment_id: int, store: Store = Depends(get_store)):
    await store.delete_one("salary_payments", payment_id)
    return None
