"""Store access: query/insert/update/delete/subscribe over named collections.

Everything that reads or writes rows goes through a ``Store`` instance that
routers receive from the ``get_store`` dependency. Each successful mutation
is published on the store's ``ChangeHub``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterable, List, Optional

from databases import Database
from fastapi import Request
from sqlalchemy import and_, func, select

from greencare import models
from greencare.errors import DependentRecordsExist, RecordNotFound
from greencare.events import DELETE, INSERT, UPDATE, ChangeEvent, ChangeHub

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "companies": models.Company.__table__,
    "payments": models.Payment.__table__,
    "labor": models.Labor.__table__,
    "labor_expenses": models.LaborExpense.__table__,
    "salary_payments": models.SalaryPayment.__table__,
    "side_projects": models.SideProject.__table__,
    "project_expenses": models.ProjectExpense.__table__,
    "invoices": models.Invoice.__table__,
    "invoice_lines": models.InvoiceLine.__table__,
    "invoice_counters": models.InvoiceCounter.__table__,
    "settings": models.Settings.__table__,
}

# parent -> [(child collection, fk column)]; deleting a parent with children is refused unless cascading
DEPENDENTS = {
    "companies": [("payments", "company_id"), ("invoices", "company_id")],
    "labor": [("labor_expenses", "labor_id"), ("salary_payments", "labor_id")],
    "side_projects": [("project_expenses", "project_id")],
}

# children that always go with their parent
OWNED = {
    "invoices": [("invoice_lines", "invoice_id")],
}

# events raised inside the innermost open transaction; published only once the outermost one commits
_pending: ContextVar[Optional[list]] = ContextVar("greencare_pending_events", default=None)


def _row_to_dict(tbl, rec) -> dict:
    return {c.name: rec[c.name] for c in tbl.columns}


class Store:
    def __init__(self, database: Database, hub: Optional[ChangeHub] = None):
        self.database = database
        self.hub = hub or ChangeHub()

    def table(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"unknown collection {collection!r}")

    def _where(self, tbl, filters: Optional[Dict[str, Any]]):
        clauses = []
        for key, value in (filters or {}).items():
            col = tbl.c[key]
            if isinstance(value, (list, tuple, set)):
                clauses.append(col.in_(list(value)))
            else:
                clauses.append(col == value)
        return and_(*clauses) if clauses else None

    @asynccontextmanager
    async def transaction(self):
        parent = _pending.get()
        events: list = []
        token = _pending.set(events)
        try:
            async with self.database.transaction():
                yield
        finally:
            _pending.reset(token)
        # committed (a failure above skips this and drops the events)
        if parent is not None:
            parent.extend(events)
        else:
            for event in events:
                await self.hub.publish(event)

    # ---- reads ----
    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        tbl = self.table(collection)
        stmt = select(tbl)
        where = self._where(tbl, filters)
        if where is not None:
            stmt = stmt.where(where)
        if order_by:
            col = tbl.c[order_by]
            stmt = stmt.order_by(col.desc() if descending else col.asc(), *[
                c.desc() if descending else c.asc() for c in tbl.primary_key.columns
            ])
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = await self.database.fetch_all(stmt)
        return [_row_to_dict(tbl, r) for r in rows]

    async def first(self, collection: str, filters: Optional[Dict[str, Any]] = None, **kw) -> Optional[dict]:
        rows = await self.query(collection, filters, limit=1, **kw)
        return rows[0] if rows else None

    async def get(self, collection: str, record_id: int) -> dict:
        row = await self.first(collection, {"id": record_id})
        if row is None:
            raise RecordNotFound(collection, record_id)
        return row

    async def count(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> int:
        tbl = self.table(collection)
        stmt = select(func.count()).select_from(tbl)
        where = self._where(tbl, filters)
        if where is not None:
            stmt = stmt.where(where)
        return int(await self.database.fetch_val(stmt) or 0)

    # ---- writes ----
    async def insert(self, collection: str, values: Dict[str, Any]) -> dict:
        tbl = self.table(collection)
        new_id = await self.database.execute(tbl.insert().values(**values))
        if "id" not in tbl.c:
            row = dict(values)
        else:
            row = await self.get(collection, new_id)
        logger.info("inserted %s #%s", collection, row.get("id"))
        await self._publish(collection, INSERT, row.get("id"))
        return row

    async def insert_many(self, collection: str, rows: Iterable[Dict[str, Any]]) -> List[dict]:
        return [await self.insert(collection, values) for values in rows]

    async def update(self, collection: str, filters: Dict[str, Any], values: Dict[str, Any]) -> List[dict]:
        tbl = self.table(collection)
        where = self._where(tbl, filters)
        matched = await self.query(collection, filters)
        if not matched or not values:
            return matched
        await self.database.execute(tbl.update().where(where).values(**values))
        if "id" not in tbl.c:
            return await self.query(collection, filters)
        ids = [r["id"] for r in matched]
        for rid in ids:
            await self._publish(collection, UPDATE, rid)
        logger.info("updated %s %s", collection, ids)
        return await self.query(collection, {"id": ids}, order_by="id")

    async def update_one(self, collection: str, record_id: int, values: Dict[str, Any]) -> dict:
        rows = await self.update(collection, {"id": record_id}, values)
        if not rows:
            raise RecordNotFound(collection, record_id)
        return rows[0]

    async def delete(self, collection: str, filters: Dict[str, Any], cascade: bool = False) -> int:
        async with self.transaction():
            return await self._delete(collection, filters, cascade)

    async def _delete(self, collection: str, filters: Dict[str, Any], cascade: bool) -> int:
        tbl = self.table(collection)
        matched = await self.query(collection, filters)
        if not matched:
            return 0
        ids = [r["id"] for r in matched]

        for child, fk in DEPENDENTS.get(collection, []):
            n = await self.count(child, {fk: ids})
            if not n:
                continue
            if not cascade:
                logger.warning("refused delete of %s %s: %d %s row(s) depend on it", collection, ids, n, child)
                raise DependentRecordsExist(collection, child, n)
            await self._delete(child, {fk: ids}, cascade=True)

        for child, fk in OWNED.get(collection, []):
            await self._delete(child, {fk: ids}, cascade=True)

        await self.database.execute(tbl.delete().where(tbl.c.id.in_(ids)))
        logger.info("deleted %s %s", collection, ids)
        for rid in ids:
            await self._publish(collection, DELETE, rid)
        return len(ids)

    async def delete_one(self, collection: str, record_id: int, cascade: bool = False) -> None:
        if not await self.delete(collection, {"id": record_id}, cascade=cascade):
            raise RecordNotFound(collection, record_id)

    # ---- notifications ----
    def subscribe(self, collection: str, callback):
        self.table(collection)
        return self.hub.subscribe(collection, callback)

    async def _publish(self, collection: str, kind: str, record_id) -> None:
        event = ChangeEvent(collection, kind, record_id)
        pending = _pending.get()
        if pending is not None:
            pending.append(event)
        else:
            await self.hub.publish(event)


def get_store(request: Request) -> Store:
    return request.app.state.store
