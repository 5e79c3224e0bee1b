"""FastAPI app for the storefront admin API."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


_load_env_file(ROOT / "app" / ".env")

import logging
import time

from app import entity_api
from app.auth import SupabaseAuthMiddleware, dev_user_from_env
from app.db import get_conn, fetch_one, get_db_query_log, get_db_stats, reset_db_stats
from app.pages import render_listing, render_setup
from app.stores import MemoryCatalogStore
from app.stores_db import DbCatalogStore, ensure_schema
from storekit.entity_schema import EntityKind, kind_for_segment
from storekit.errors import ApiError
from storekit.setup_modal import initial_modal_state


app = FastAPI(title="Storefront Admin")
logger = logging.getLogger("storefront")
logging.basicConfig(level=logging.INFO)

APP_ENV = os.getenv("APP_ENV", os.getenv("ENV", "dev")).strip().lower() or "dev"
IS_DEV = APP_ENV == "dev"
USE_DB = os.getenv("USE_DB", "").strip() == "1"
AUTO_SCHEMA = os.getenv("STOREFRONT_DB_AUTO_SCHEMA", "").strip() == "1"
SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip()
SUPABASE_AUD = os.getenv("SUPABASE_JWT_AUD", "").strip() or None
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "").strip() or None
DISABLE_AUTH = os.getenv("STOREFRONT_DISABLE_AUTH", "").strip().lower() in ("1", "true", "yes")
REQ_SLOW_MS = float(os.getenv("STOREFRONT_REQ_SLOW_MS", "250"))
logger.info(
    "storefront_config env=%s use_db=%s auth_disabled=%s supabase_url=%s supabase_aud=%s",
    APP_ENV,
    USE_DB,
    DISABLE_AUTH,
    SUPABASE_URL,
    SUPABASE_AUD,
)

_LOCAL_CORS_ORIGINS = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
}
_LOCAL_CORS_REGEX = re.compile(r"^http://(localhost|127\.0\.0\.1):\d+$")
_EXTRA_CORS_ORIGINS = {
    origin.strip().rstrip("/")
    for origin in os.getenv("STOREFRONT_CORS_ORIGINS", "").split(",")
    if origin.strip()
}
_CORS_ORIGINS = _LOCAL_CORS_ORIGINS | _EXTRA_CORS_ORIGINS

catalog = DbCatalogStore() if USE_DB else MemoryCatalogStore()
if USE_DB and AUTO_SCHEMA:
    ensure_schema()


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    reset_db_stats()
    start = time.perf_counter()
    response = await call_next(request)
    total_ms = (time.perf_counter() - start) * 1000
    auth_ms = getattr(request.state, "auth_ms", 0.0)
    db_stats = get_db_stats()
    db_ms = db_stats.get("total_ms", 0.0)
    route = request.scope.get("route")
    route_name = getattr(route, "name", None) or "unknown"
    logger.info(
        "%s %s %s route=%s total_ms=%.1f auth_ms=%.1f db_ms=%.1f db_q=%s db_acquire_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        route_name,
        total_ms,
        auth_ms,
        db_ms,
        db_stats.get("queries", 0),
        db_stats.get("acquire_ms", 0.0),
    )
    if total_ms >= REQ_SLOW_MS:
        logger.warning(
            "slow_request method=%s path=%s route=%s total_ms=%.1f db_ms=%.1f queries=%s",
            request.method,
            request.url.path,
            route_name,
            total_ms,
            db_ms,
            get_db_query_log(),
        )
    if IS_DEV:
        response.headers["X-Req-MS"] = f"{total_ms:.1f}"
        response.headers["X-DB-MS"] = f"{db_ms:.1f}"
        response.headers["X-Queries"] = str(db_stats.get("queries", 0))
    return response


class DevUserMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request.state.user = dev_user_from_env()
        return await call_next(request)


app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(_CORS_ORIGINS),
    allow_origin_regex=_LOCAL_CORS_REGEX.pattern,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
if DISABLE_AUTH:
    app.add_middleware(DevUserMiddleware)
else:
    if not SUPABASE_URL:
        raise RuntimeError("SUPABASE_URL is required for auth")
    app.add_middleware(
        SupabaseAuthMiddleware,
        supabase_url=SUPABASE_URL,
        audience=SUPABASE_AUD,
        jwt_secret=SUPABASE_JWT_SECRET,
    )


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    body = {
        "ok": False,
        "errors": [{"code": code, "message": message, "path": path, "detail": detail}],
        "warnings": [],
    }
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    body = {"ok": True, **payload, "errors": [], "warnings": warnings or []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    body = {"ok": False, "errors": exc.to_issues(), "warnings": []}
    return JSONResponse(jsonable_encoder(body), status_code=exc.status)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error method=%s path=%s", request.method, request.url.path)
    return _error_response("INTERNAL_ERROR", "Unexpected server error", status=500)


async def _safe_json(request: Request):
    try:
        return await request.json()
    except Exception:
        return {}


def _user(request: Request) -> dict | None:
    return getattr(request.state, "user", None)


def _kind_or_404(entity_type: str) -> EntityKind:
    kind = kind_for_segment(entity_type)
    if kind is None:
        raise ApiError("ENTITY_NOT_FOUND", f"Unknown entity type: {entity_type}", "entityType", status=404)
    return kind


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


@app.get("/ops/db_ping")
async def db_ping() -> dict:
    if not USE_DB:
        return {"ok": True, "backend": "memory"}
    start = time.perf_counter()
    with get_conn() as conn:
        fetch_one(conn, "select 1 as ok", query_name="ops.db_ping")
    elapsed_ms = (time.perf_counter() - start) * 1000
    return {"ok": True, "backend": "postgres", "ms": round(elapsed_ms, 2)}


# stores


@app.get("/api/stores")
async def list_stores(request: Request):
    return _ok_response({"records": entity_api.list_stores(catalog, _user(request))})


@app.post("/api/stores")
async def create_store(request: Request):
    body = await _safe_json(request)
    return _ok_response({"record": entity_api.create_store(catalog, _user(request), body)})


@app.get("/api/stores/{store_id}")
async def get_store(store_id: str, request: Request):
    return _ok_response({"record": entity_api.get_store(catalog, _user(request), store_id)})


@app.patch("/api/stores/{store_id}")
async def update_store(store_id: str, request: Request):
    body = await _safe_json(request)
    return _ok_response({"record": entity_api.update_store(catalog, _user(request), store_id, body)})


@app.delete("/api/stores/{store_id}")
async def delete_store(store_id: str, request: Request):
    return _ok_response({"record": entity_api.delete_store(catalog, _user(request), store_id)})


# catalog entities


@app.get("/api/{store_id}/{entity_type}")
async def list_entities(store_id: str, entity_type: str, request: Request):
    kind = _kind_or_404(entity_type)
    records = entity_api.list_entities(catalog, kind, store_id, dict(request.query_params))
    return _ok_response({"records": records})


@app.post("/api/{store_id}/{entity_type}")
async def create_entity(store_id: str, entity_type: str, request: Request):
    kind = _kind_or_404(entity_type)
    body = await _safe_json(request)
    return _ok_response({"record": entity_api.create_entity(catalog, _user(request), kind, store_id, body)})


@app.get("/api/{store_id}/{entity_type}/{entity_id}")
async def get_entity(store_id: str, entity_type: str, entity_id: str):
    kind = _kind_or_404(entity_type)
    return _ok_response({"record": entity_api.get_entity(catalog, kind, store_id, entity_id)})


@app.patch("/api/{store_id}/{entity_type}/{entity_id}")
async def update_entity(store_id: str, entity_type: str, entity_id: str, request: Request):
    kind = _kind_or_404(entity_type)
    body = await _safe_json(request)
    record = entity_api.update_entity(catalog, _user(request), kind, store_id, entity_id, body)
    return _ok_response({"record": record})


@app.delete("/api/{store_id}/{entity_type}/{entity_id}")
async def delete_entity(store_id: str, entity_type: str, entity_id: str, request: Request):
    kind = _kind_or_404(entity_type)
    return _ok_response({"record": entity_api.delete_entity(catalog, _user(request), kind, store_id, entity_id)})


# dashboard pages


@app.get("/")
async def root_page(request: Request):
    stores = entity_api.list_stores(catalog, _user(request))
    if stores:
        return RedirectResponse(f"/dashboard/{stores[0]['id']}/products", status_code=307)
    return HTMLResponse(render_setup(initial_modal_state(len(stores))))


@app.get("/dashboard/{store_id}/{entity_type}")
async def listing_page(store_id: str, entity_type: str, request: Request):
    kind = _kind_or_404(entity_type)
    user = _user(request)
    items = entity_api.list_dashboard_entities(catalog, user, kind, store_id)
    store = entity_api.get_store(catalog, user, store_id)
    return HTMLResponse(render_listing(kind, store, items))
