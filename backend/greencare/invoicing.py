"""Invoice lines, totals and numbering."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import select

from greencare import models
from greencare.errors import InvoiceNumberConflict, is_integrity_error

logger = logging.getLogger(__name__)

NUMBER_ATTEMPTS = 3


class InvoiceLineError(ValueError):
    pass


@dataclass(frozen=True)
class LineItem:
    description: str = ""
    quantity: int = 1
    rate_cents: int = 0

    @property
    def amount_cents(self) -> int:
        return line_amount(self.quantity, self.rate_cents)

    def as_dict(self) -> dict:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "rate_cents": self.rate_cents,
            "amount_cents": self.amount_cents,
        }


def line_amount(quantity: int, rate_cents: int) -> int:
    return int(quantity) * int(rate_cents)


def invoice_total(items: Iterable) -> int:
    total = 0
    for item in items:
        if isinstance(item, dict):
            total += line_amount(item["quantity"], item["rate_cents"])
        else:
            total += line_amount(item.quantity, item.rate_cents)
    return total


@dataclass
class InvoiceDraft:
    """Editable set of invoice lines; never holds fewer than one line."""

    items: List[LineItem] = field(default_factory=lambda: [LineItem()])

    def __post_init__(self):
        if not self.items:
            raise InvoiceLineError("an invoice needs at least one line")

    @classmethod
    def from_items(cls, items: Iterable) -> "InvoiceDraft":
        lines = [
            LineItem(i["description"], i["quantity"], i["rate_cents"]) if isinstance(i, dict)
            else LineItem(i.description, i.quantity, i.rate_cents)
            for i in items
        ]
        return cls(lines)

    @property
    def amount_cents(self) -> int:
        return invoice_total(self.items)

    def add_line(self) -> LineItem:
        item = LineItem()
        self.items.append(item)
        return item

    def remove_line(self, index: int) -> None:
        if len(self.items) <= 1:
            raise InvoiceLineError("cannot remove the last remaining line")
        del self.items[index]

    def set_quantity(self, index: int, quantity: int) -> LineItem:
        self.items[index] = replace(self.items[index], quantity=quantity)
        return self.items[index]

    def set_rate(self, index: int, rate_cents: int) -> LineItem:
        self.items[index] = replace(self.items[index], rate_cents=rate_cents)
        return self.items[index]

    def set_description(self, index: int, description: str) -> LineItem:
        self.items[index] = replace(self.items[index], description=description)
        return self.items[index]

    def line_rows(self) -> List[dict]:
        return [dict(item.as_dict(), position=pos) for pos, item in enumerate(self.items)]


# ---- numbering ----
def make_invoice_number(prefix: str, seq: int, year: Optional[int] = None) -> str:
    y = year or date.today().year
    return f"{prefix}-{y}-{seq:04d}"


async def next_sequence(store, prefix: str) -> int:
    """Increment and return the store-owned counter for ``prefix``."""
    tbl = models.InvoiceCounter.__table__
    async with store.transaction():
        current = await store.database.fetch_val(
            select(tbl.c.last_value).where(tbl.c.prefix == prefix)
        )
        if current is None:
            await store.database.execute(tbl.insert().values(prefix=prefix, last_value=1))
            return 1
        await store.database.execute(
            tbl.update().where(tbl.c.prefix == prefix).values(last_value=tbl.c.last_value + 1)
        )
        return int(await store.database.fetch_val(
            select(tbl.c.last_value).where(tbl.c.prefix == prefix)
        ))


async def create_invoice_with_number(store, prefix: str, values: dict) -> dict:
    """Insert an invoice row under a freshly allocated number, retrying on a number clash."""
    last_exc = None
    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        number = None
        try:
            # both the counter row and the invoice number are unique
            async with store.transaction():
                number = make_invoice_number(prefix, await next_sequence(store, prefix))
                return await store.insert("invoices", dict(values, invoice_number=number))
        except Exception as exc:
            if not is_integrity_error(exc):
                raise
            logger.warning("invoice number %s already taken (attempt %d)", number or prefix, attempt)
            last_exc = exc
    raise InvoiceNumberConflict(f"could not allocate a free {prefix} invoice number") from last_exc
