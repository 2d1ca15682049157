import logging

from fastapi import APIRouter, Depends

from greencare import schemas
from greencare.deps import get_current_user
from greencare.store import Store, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"], dependencies=[Depends(get_current_user)])


async def load_settings(store: Store) -> dict:
    row = await store.first("settings", order_by="id")
    if row is None:
        return dict(schemas.DEFAULT_SETTINGS, id=None)
    return row


@router.get("/", response_model=schemas.SettingsOut)
async def get_settings(store: Store = Depends(get_store)):
    return await load_settings(store)


@router.put("/", response_model=schemas.SettingsOut)
async def save_settings(payload: schemas.SettingsIn, store: Store = Depends(get_store)):
    data = payload.model_dump()
    existing = await store.first("settings", order_by="id")
    if existing:
        row = await store.update_one("settings", existing["id"], data)
    else:
        row = await store.insert("settings", data)
    logger.info("settings saved (prefix=%s, currency=%s)", row["invoice_prefix"], row["currency"])
    return row
