"""Live change feed: ``/changes/ws?collections=payments,invoices&token=...``."""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, status

from greencare.deps import subject_of
from greencare.events import QueueSubscriber
from greencare.store import COLLECTIONS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/changes", tags=["changes"])


def _token_ok(token: Optional[str]) -> bool:
    if not token:
        return False
    try:
        subject_of(token)
    except ValueError:
        return False
    return True


def _parse_collections(raw: Optional[str]):
    names = [c.strip() for c in (raw or "").split(",") if c.strip()]
    if not names:
        return list(COLLECTIONS)
    unknown = [c for c in names if c not in COLLECTIONS]
    if unknown:
        raise ValueError(", ".join(unknown))
    return list(dict.fromkeys(names))


@router.websocket("/ws")
async def changes_ws(websocket: WebSocket, collections: Optional[str] = None, token: Optional[str] = None):
    if not _token_ok(token):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        names = _parse_collections(collections)
    except ValueError as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=f"unknown collection(s): {exc}")
        return

    await websocket.accept()
    subscriber = QueueSubscriber(websocket.app.state.hub, names)
    await websocket.send_json({"subscribed": names})
    logger.info("change feed opened for %s", names)

    pump = asyncio.create_task(_forward(websocket, subscriber))
    try:
        # clients send nothing; reading only detects the close
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        await stop_pump(pump)
        subscriber.close()
        logger.info("change feed closed for %s", names)


async def _forward(websocket: WebSocket, subscriber: QueueSubscriber):
    while True:
        event = await subscriber.get()
        await websocket.send_json(event.as_dict())


async def stop_pump(pump: "asyncio.Task"):
    pump.cancel()
    try:
        await pump
    except asyncio.CancelledError:
        pass
    except Exception:
        # the socket went away mid-send
        logger.warning("change feed send failed", exc_info=True)
