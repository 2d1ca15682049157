from __future__ import annotations

import io
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, StreamingResponse

from greencare import schemas, search
from greencare.config import PUBLIC_BASE_URL, PUBLIC_LINK_TTL
from greencare.deps import create_signed_token, get_current_user, verify_signed_token
from greencare.documents import render_invoice_html, render_invoice_pdf
from greencare.invoicing import InvoiceDraft, create_invoice_with_number
from greencare.routers.resources import drop_required_nulls
from greencare.routers.settings import load_settings
from greencare.store import Store, get_store

logger = logging.getLogger(__name__)

# Router "privé" (auth)
router = APIRouter(prefix="/invoices", tags=["invoices"], dependencies=[Depends(get_current_user)])
# Router "public" (pas d'auth, accès tokenisé)
public_router = APIRouter(tags=["invoices-public"])


async def _ensure_company(store: Store, company_id: int) -> dict:
    row = await store.first("companies", {"id": company_id})
    if not row:
        raise HTTPException(status_code=400, detail="Company not found")
    return row


async def _load_invoice(store: Store, invoice_id: int) -> dict:
    inv = await store.get("invoices", invoice_id)
    lines = await store.query("invoice_lines", {"invoice_id": invoice_id}, order_by="position")
    company = await store.first("companies", {"id": inv["company_id"]})
    inv["items"] = lines
    inv["company_name"] = company["name"] if company else None
    return inv


async def _write_lines(store: Store, invoice_id: int, draft: InvoiceDraft):
    await store.delete("invoice_lines", {"invoice_id": invoice_id})
    await store.insert_many(
        "invoice_lines", [dict(row, invoice_id=invoice_id) for row in draft.line_rows()]
    )


@router.get("/_list", response_model=list[schemas.InvoiceOut])
async def list_invoices(
    q: Optional[str] = Query(default=None, description="Search by number or company name"),
    status: Optional[schemas.InvoiceStatus] = None,
    store: Store = Depends(get_store),
):
    filters = {"status": status} if status else None
    invoices = await store.query("invoices", filters, order_by="created_at", descending=True)
    names = {c["id"]: c["name"] for c in await store.query("companies")}
    for inv in invoices:
        inv["company_name"] = names.get(inv["company_id"])
    return search.filter_records(invoices, q, search.INVOICE_FIELDS)


@router.post("/", response_model=schemas.InvoiceOut, status_code=201)
async def create_invoice(payload: schemas.InvoiceCreate, store: Store = Depends(get_store)):
    await _ensure_company(store, payload.company_id)
    draft = InvoiceDraft.from_items(payload.items)
    settings = await load_settings(store)
    async with store.transaction():
        inv = await create_invoice_with_number(store, settings["invoice_prefix"], {
            "company_id": payload.company_id,
            "amount_cents": draft.amount_cents,
            "status": payload.status,
            "email_sent": False,
            "issue_date": payload.issue_date or date.today(),
            "due_date": payload.due_date,
        })
        await _write_lines(store, inv["id"], draft)
    logger.info("invoice %s created for company #%s", inv["invoice_number"], payload.company_id)
    return await _load_invoice(store, inv["id"])


@router.get("/by-id/{invoice_id:int}", response_model=schemas.InvoiceOut)
async def get_invoice_by_id(invoice_id: int, store: Store = Depends(get_store)):
    return await _load_invoice(store, invoice_id)


@router.patch("/by-id/{invoice_id:int}", response_model=schemas.InvoiceOut)
async def update_invoice(invoice_id: int, payload: schemas.InvoiceUpdate, store: Store = Depends(get_store)):
    await store.get("invoices", invoice_id)
    update = payload.model_dump(exclude_unset=True, exclude={"items"})
    update = drop_required_nulls(store, "invoices", update)
    if "company_id" in update:
        await _ensure_company(store, update["company_id"])
    async with store.transaction():
        # model objects, not the dump: unset item fields still carry their defaults
        if payload.items is not None:
            draft = InvoiceDraft.from_items(payload.items)
            await _write_lines(store, invoice_id, draft)
            update["amount_cents"] = draft.amount_cents
        if update:
            await store.update_one("invoices", invoice_id, update)
    return await _load_invoice(store, invoice_id)


@router.delete("/by-id/{invoice_id:int}", status_code=204)
async def delete_invoice(invoice_id: int, store: Store = Depends(get_store)):
    await store.delete_one("invoices", invoice_id)
    return None


@router.get("/by-id/{invoice_id:int}/public_url")
async def public_url_by_id(invoice_id: int, store: Store = Depends(get_store)):
    """Retourne une URL publique signée pour télécharger le PDF."""
    inv = await store.get("invoices", invoice_id)
    token = create_signed_token(
        kind="invoice_pdf",
        data={"invoice_id": int(inv["id"])},
        ttl_seconds=PUBLIC_LINK_TTL,
    )
    url = f"{PUBLIC_BASE_URL}/public/{int(inv['id'])}/download.pdf?token={token}"
    return {"url": url}


async def _document_parts(store: Store, invoice_id: int):
    inv = await _load_invoice(store, invoice_id)
    company = await store.first("companies", {"id": inv["company_id"]}) or {"name": inv["company_name"] or ""}
    settings = await load_settings(store)
    return inv, inv["items"], company, settings


def _pdf_response(fname: str, pdf_bytes: bytes) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{fname}"'},
    )


@router.get("/by-id/{invoice_id:int}/preview", response_class=HTMLResponse)
async def preview_invoice(invoice_id: int, store: Store = Depends(get_store)):
    return HTMLResponse(render_invoice_html(*await _document_parts(store, invoice_id)))


@router.get("/by-id/{invoice_id:int}/download.pdf")
async def download_invoice_pdf(invoice_id: int, store: Store = Depends(get_store)):
    fname, pdf_bytes = render_invoice_pdf(*await _document_parts(store, invoice_id))
    return _pdf_response(fname, pdf_bytes)


# --- PUBLIC : /public/{invoice_id}/download.pdf?token=... ---
@public_router.get("/public/{invoice_id:int}/download.pdf")
async def public_download_invoice_pdf(invoice_id: int, token: str, store: Store = Depends(get_store)):
    """Téléchargement PDF public via token signé (pas d'auth)."""
    try:
        data = verify_signed_token(token, expected_kind="invoice_pdf")
    except ValueError:
        raise HTTPException(status_code=401, detail="invalid or expired token")

    # Sécurité : cohérence token/id
    if int(data.get("invoice_id", -1)) != int(invoice_id):
        raise HTTPException(status_code=401, detail="token/invoice mismatch")

    fname, pdf_bytes = render_invoice_pdf(*await _document_parts(store, invoice_id))
    return _pdf_response(fname, pdf_bytes)
