from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse

from chip_settle.api.errors import settlement_error_to_http
from chip_settle.api.games import router as games_router
from chip_settle.api.maintenance import router as maintenance_router
from chip_settle.api.settlements import router as settlements_router
from chip_settle.config import settings
from chip_settle.domain import SettlementError
from chip_settle.storage.database import init_db

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    init_db()
    logger.info("database ready")
    yield


app = FastAPI(title="Chip Settle API", lifespan=lifespan)
app.include_router(games_router)
app.include_router(settlements_router)
app.include_router(maintenance_router)


@app.exception_handler(SettlementError)
async def handle_settlement_error(request: Request, exc: SettlementError) -> JSONResponse:
    http_exc = settlement_error_to_http(exc)
    if http_exc.status_code >= 500:
        logger.error("request failed path=%s code=%s details=%s", request.url.path, exc.code, exc.details)
    return await http_exception_handler(request, http_exc)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
