import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from greencare.config import CORS_ORIGINS, configure_logging
from greencare.db import Base, database, engine
from greencare.errors import DependentRecordsExist, InvoiceNumberConflict, RecordNotFound, SnapshotError
from greencare.events import ChangeHub
from greencare.invoicing import InvoiceLineError
from greencare.routers import changes, invoices, reports, salaries, settings
from greencare.routers.resources import RESOURCES, build_router
from greencare.stats import StatsCache
from greencare.store import Store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    Base.metadata.create_all(engine)
    await database.connect()
    logger.info("database connected")
    yield
    app.state.stats_cache.stop()
    await database.disconnect()
    logger.info("database disconnected")


def _error(status_code: int):
    async def handler(request: Request, exc: Exception):
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


def create_app() -> FastAPI:
    app = FastAPI(title="GreenCare Admin API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    hub = ChangeHub()
    app.state.hub = hub
    app.state.store = Store(database, hub)
    app.state.stats_cache = StatsCache(app.state.store)
    app.state.stats_cache.start()

    for spec in RESOURCES:
        app.include_router(build_router(spec))
    app.include_router(salaries.router)
    app.include_router(invoices.router)
    app.include_router(invoices.public_router)
    app.include_router(settings.router)
    app.include_router(reports.router)
    app.include_router(changes.router)

    app.add_exception_handler(RecordNotFound, _error(404))
    app.add_exception_handler(DependentRecordsExist, _error(409))
    app.add_exception_handler(InvoiceNumberConflict, _error(409))
    app.add_exception_handler(SnapshotError, _error(503))
    app.add_exception_handler(InvoiceLineError, _error(422))

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
