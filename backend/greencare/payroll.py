import logging
from datetime import date
from typing import Optional

from greencare.errors import is_integrity_error
from greencare.schemas import MONTHS, SalaryPaymentIn

logger = logging.getLogger(__name__)

ATTEMPTS = 2


def current_month(today: date) -> str:
    return MONTHS[today.month - 1]


async def record_salary_payment(store, payload: SalaryPaymentIn, today: Optional[date] = None) -> dict:
    """Update the worker's record for (month, year) or create it; at most one per period."""
    today = today or date.today()
    worker = await store.get("labor", payload.labor_id)

    key = {
        "labor_id": worker["id"],
        "month": payload.month or current_month(today),
        "year": payload.year or today.year,
    }
    values = {
        "amount_cents": payload.amount_cents if payload.amount_cents is not None else worker["salary_amount_cents"],
        "status": payload.status,
        "payment_date": (payload.payment_date or today) if payload.status == "paid" else None,
    }

    for attempt in range(1, ATTEMPTS + 1):
        existing = await store.first("salary_payments", key)
        if existing:
            return await store.update_one("salary_payments", existing["id"], values)
        try:
            async with store.transaction():
                return await store.insert("salary_payments", dict(key, **values))
        except Exception as exc:
            if not is_integrity_error(exc) or attempt == ATTEMPTS:
                raise
            # lost the race against a concurrent insert for the same period
            logger.info("salary for labor #%s %s %s recorded concurrently, retrying",
                        key["labor_id"], key["month"], key["year"])
