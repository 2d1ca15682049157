"""CRUD routers built from one ResourceSpec per collection."""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Type

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from greencare import schemas, search
from greencare.deps import get_current_user
from greencare.store import Store, get_store

logger = logging.getLogger(__name__)


@dataclass
class ResourceSpec:
    collection: str
    prefix: str
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    out_schema: Type[BaseModel]
    search_fields: Tuple[str, ...] = ()
    filters: Tuple[str, ...] = ()              # equality filters accepted as query params
    parents: Dict[str, str] = field(default_factory=dict)   # fk field -> parent collection
    order_by: str = "created_at"
    label: Optional[str] = None


async def _ensure_parents(store: Store, spec: ResourceSpec, data: dict):
    for fk, parent in spec.parents.items():
        if fk in data and data[fk] is not None:
            if not await store.count(parent, {"id": data[fk]}):
                raise HTTPException(status_code=400, detail=f"{parent} #{data[fk]} does not exist")


def drop_required_nulls(store: Store, collection: str, data: dict) -> dict:
    # an explicit null on a NOT NULL column means "leave unchanged"
    tbl = store.table(collection)
    return {k: v for k, v in data.items() if v is not None or tbl.c[k].nullable}


def _parse_filters(spec: ResourceSpec, request: Request) -> dict:
    out = {}
    for name in spec.filters:
        raw = request.query_params.get(name)
        if raw is None or raw == "":
            continue
        if name.endswith("_id"):
            try:
                out[name] = int(raw)
            except ValueError:
                raise HTTPException(status_code=422, detail=f"{name} must be an integer")
        else:
            out[name] = raw
    return out


def build_router(spec: ResourceSpec) -> APIRouter:
    label = spec.label or spec.collection
    router = APIRouter(prefix=spec.prefix, tags=[label], dependencies=[Depends(get_current_user)])
    create_schema, update_schema, out_schema = spec.create_schema, spec.update_schema, spec.out_schema

    @router.post("/", response_model=out_schema, status_code=201)
    async def create(payload: create_schema, store: Store = Depends(get_store)):
        data = payload.model_dump()
        await _ensure_parents(store, spec, data)
        return await store.insert(spec.collection, data)

    @router.get("/", response_model=list[out_schema])
    async def list_records(
        request: Request,
        q: Optional[str] = Query(default=None, description="Case-insensitive substring search"),
        store: Store = Depends(get_store),
    ):
        rows = await store.query(
            spec.collection, _parse_filters(spec, request), order_by=spec.order_by, descending=True,
        )
        if spec.search_fields:
            rows = search.filter_records(rows, q, spec.search_fields)
        return rows

    @router.get("/{record_id:int}", response_model=out_schema)
    async def get_record(record_id: int, store: Store = Depends(get_store)):
        return await store.get(spec.collection, record_id)

    @router.patch("/{record_id:int}", response_model=out_schema)
    async def update_record(record_id: int, payload: update_schema, store: Store = Depends(get_store)):
        await store.get(spec.collection, record_id)
        data = drop_required_nulls(store, spec.collection, payload.model_dump(exclude_unset=True))
        await _ensure_parents(store, spec, data)
        return await store.update_one(spec.collection, record_id, data)

    @router.delete("/{record_id:int}", status_code=204)
    async def delete_record(
        record_id: int,
        cascade: bool = Query(default=False, description="Also delete dependent rows"),
        store: Store = Depends(get_store),
    ):
        await store.delete_one(spec.collection, record_id, cascade=cascade)
        return None

    return router


COMPANIES = ResourceSpec(
    collection="companies",
    prefix="/companies",
    create_schema=schemas.CompanyCreate,
    update_schema=schemas.CompanyUpdate,
    out_schema=schemas.CompanyOut,
    search_fields=search.COMPANY_FIELDS,
)

PAYMENTS = ResourceSpec(
    collection="payments",
    prefix="/payments",
    create_schema=schemas.PaymentCreate,
    update_schema=schemas.PaymentUpdate,
    out_schema=schemas.PaymentOut,
    filters=("company_id", "status"),
    parents={"company_id": "companies"},
    order_by="date",
)

LABOR = ResourceSpec(
    collection="labor",
    prefix="/labor",
    create_schema=schemas.LaborCreate,
    update_schema=schemas.LaborUpdate,
    out_schema=schemas.LaborOut,
    search_fields=search.LABOR_FIELDS,
)

LABOR_EXPENSES = ResourceSpec(
    collection="labor_expenses",
    prefix="/labor-expenses",
    create_schema=schemas.LaborExpenseCreate,
    update_schema=schemas.LaborExpenseUpdate,
    out_schema=schemas.LaborExpenseOut,
    filters=("labor_id",),
    parents={"labor_id": "labor"},
    order_by="date",
)

PROJECTS = ResourceSpec(
    collection="side_projects",
    prefix="/projects",
    create_schema=schemas.ProjectCreate,
    update_schema=schemas.ProjectUpdate,
    out_schema=schemas.ProjectOut,
    search_fields=search.PROJECT_FIELDS,
    filters=("status",),
    label="projects",
)

PROJECT_EXPENSES = ResourceSpec(
    collection="project_expenses",
    prefix="/project-expenses",
    create_schema=schemas.ProjectExpenseCreate,
    update_schema=schemas.ProjectExpenseUpdate,
    out_schema=schemas.ProjectExpenseOut,
    filters=("project_id",),
    parents={"project_id": "side_projects"},
    order_by="date",
)

RESOURCES = (COMPANIES, PAYMENTS, LABOR, LABOR_EXPENSES, PROJECTS, PROJECT_EXPENSES)
