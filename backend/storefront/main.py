from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront.api.routes import inventory
from storefront.cache import redis_cache
from storefront.core.config import settings
from storefront.core.logging_config import setup_logging
from storefront.core.observability import ObservabilityMiddleware, metrics_registry
from storefront.db import session as db_session

setup_logging(settings.log_level)

app = FastAPI(title="Storefront Inventory")

allowed_origins = settings.cors_origin_list or [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)
app.add_middleware(
    ObservabilityMiddleware,
    registry=metrics_registry,
    exclude_paths={"/metrics", "/health"},
)

app.include_router(inventory.router)


@app.get("/health")
def health():
    details: dict[str, str] = {"api": "ok"}
    failures: list[str] = []

    try:
        with db_session.SessionLocal() as db:
            db.execute(text("SELECT 1"))
        details["db"] = "ok"
    except SQLAlchemyError as exc:
        details["db"] = "error"
        details["db_error"] = str(exc)
        failures.append("db")

    cache_ok = redis_cache.ping()
    if cache_ok is None:
        details["cache"] = "disabled"
    elif cache_ok:
        details["cache"] = "ok"
    else:
        # Sin redis se sirve sin cache; se informa pero no marca el servicio como caido.
        details["cache"] = "error"

    status = "ok" if not failures else "degraded"
    payload = {"status": status, "checks": details}
    status_code = 200 if not failures else 503
    return JSONResponse(payload, status_code=status_code)


@app.get("/metrics", response_class=PlainTextResponse)
def metrics():
    return PlainTextResponse(
        metrics_registry.render_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
