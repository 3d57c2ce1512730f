import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import Base, engine, SessionLocal
from app.core.errors import DispatchError
from app.core.logging import RequestIdMiddleware, setup_logging
from app.routers.auth import router as auth_router
from app.routers.fleet import router as fleet_router
from app.routers.pricing_zones import router as pricing_router
from app.routers.tow_requests import router as tow_requests_router
from app.services.seed import seed_users

# Import models so SQLAlchemy registers them before create_all()
import app.models.user  # noqa: F401
import app.models.fleet  # noqa: F401
import app.models.pricing_zone  # noqa: F401
import app.models.job_card  # noqa: F401
import app.models.tow_request  # noqa: F401
import app.models.location  # noqa: F401
import app.models.event  # noqa: F401

setup_logging()
log = structlog.get_logger(__name__)

app = FastAPI(title=settings.APP_NAME, version="0.1.0")
app.add_middleware(RequestIdMiddleware)

if settings.AUTO_CREATE_DB:
    Base.metadata.create_all(bind=engine)

if settings.SEED_USERS:
    with SessionLocal() as db:  # type: Session
        seed_users(db)


@app.exception_handler(DispatchError)
def handle_dispatch_error(request: Request, exc: DispatchError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(DBAPIError)
def handle_storage_error(request: Request, exc: DBAPIError):
    log.error("storage_error", path=request.url.path, error=str(exc.orig))
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable", "code": "storage_unavailable"})


app.include_router(auth_router)
app.include_router(tow_requests_router)
app.include_router(fleet_router)
app.include_router(pricing_router)


@app.get("/")
def root():
    return {"name": settings.APP_NAME, "docs": "/docs", "health": "/health"}


@app.get("/health")
def health():
    return {"ok": True}
