"""FastAPI entrypoint for the stock audit engine."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockaudit.api.v1.api import api_router
from stockaudit.core.config import settings
from stockaudit.core.errors import AuditError
from stockaudit.core.logging import configure_logging
from stockaudit.db import session as db_session
from stockaudit.db.base import Base
from stockaudit.db.seed import ensure_default_admin

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(AuditError)
def handle_audit_error(request: Request, exc: AuditError) -> JSONResponse:
    logger.warning("[AUDIT] %s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    Base.metadata.create_all(bind=db_session.engine)
    with db_session.SessionLocal() as session:
        try:
            admin_present = ensure_default_admin(session)
            logger.info("[BOOTSTRAP] default admin present: %s", "yes" if admin_present else "no")
        except Exception:
            logger.exception("[BOOTSTRAP] Admin bootstrap failed; continuing startup.")


@app.get("/")
def root() -> dict[str, str]:
    return {"app": settings.app_name, "env": settings.app_env}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
