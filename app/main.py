"""FastAPI app for the Scholar Hub school administration dashboard."""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

import anyio
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.config import Settings, load_settings
from app.entities import ENTITIES, get_schema
from app.errors import PageError, RecordStoreError
from app.outcomes import Paging
from app.pages import PAGES, build_controllers, get_page
from app.record_client import RecordStoreClient
from app.seed import load_seed
from app.services import build_services
from app.stores import MemoryRecordStore
from app.stores_remote import RemoteRecordStore
from notifications import NotificationQueue
from scholar.listing import filter_records

settings = load_settings()
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger("scholar")


def build_store(cfg: Settings):
    if cfg.use_remote:
        client = RecordStoreClient(cfg.base_url, cfg.project_id, cfg.public_key, timeout=cfg.http_timeout)
        logger.info("record_store=remote base_url=%s project_id=%s", cfg.base_url, cfg.project_id)
        return RemoteRecordStore(client, ENTITIES.values())
    logger.info(
        "record_store=memory latency_ms=%.0f jitter_ms=%.0f seed_dir=%s",
        cfg.mock_latency_ms,
        cfg.mock_jitter_ms,
        cfg.seed_dir or "default",
    )
    return MemoryRecordStore(
        load_seed(cfg.seed_dir or None),
        latency_ms=cfg.mock_latency_ms,
        jitter_ms=cfg.mock_jitter_ms,
    )


record_store = build_store(settings)
services = build_services(ENTITIES.values(), record_store, Paging(limit=settings.page_limit))
notifications = NotificationQueue()
controllers = build_controllers(services, notifications)

app = FastAPI(title="Scholar Hub")
IS_DEV = settings.is_dev
REQ_SLOW_MS = settings.req_slow_ms
_LOCAL_CORS_ORIGINS = {
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
}
_CORS_ORIGINS = _LOCAL_CORS_ORIGINS | set(settings.cors_origins)


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    total_ms = (time.perf_counter() - start) * 1000
    route = request.scope.get("route")
    route_name = getattr(route, "name", None) or getattr(request.scope.get("endpoint"), "__name__", None) or "unknown"
    logger.info(
        "%s %s %s route=%s total_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        route_name,
        total_ms,
    )
    if total_ms >= REQ_SLOW_MS:
        logger.warning(
            "slow_request method=%s path=%s route=%s total_ms=%.1f status=%s",
            request.method,
            request.url.path,
            route_name,
            total_ms,
            response.status_code,
        )
    if IS_DEV:
        response.headers["X-Req-MS"] = f"{total_ms:.1f}"
        response.headers["X-Route"] = route_name
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(_CORS_ORIGINS),
    allow_origin_regex=r"http://localhost:\d+|http://127\.0\.0\.1:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    body = {
        "ok": False,
        "errors": [{"code": code, "message": message, "path": path, "detail": detail}],
        "warnings": [],
    }
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _issues_response(issues: list[dict], status: int = 400) -> JSONResponse:
    body = {"ok": False, "errors": issues, "warnings": []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    body = {"ok": True, **payload, "errors": [], "warnings": warnings or []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


@app.exception_handler(RecordStoreError)
async def record_store_error_handler(request: Request, exc: RecordStoreError):
    if exc.status >= 500:
        logger.error("record_store_error path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
    return _issues_response(exc.issues(), status=exc.status)


@app.exception_handler(PageError)
async def page_error_handler(request: Request, exc: PageError):
    return _issues_response(exc.issues(), status=exc.status)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error path=%s", request.url.path)
    return _error_response("INTERNAL_ERROR", "Unexpected server error", detail={"error": str(exc)}, status=500)


async def _safe_json(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _record_body(body: dict) -> dict:
    data = body.get("record") if "record" in body else body
    return data if isinstance(data, dict) else {}


def _entity_not_found() -> JSONResponse:
    return _error_response("ENTITY_NOT_FOUND", "Entity not found", "entity_id", status=404)


def _page_not_found() -> JSONResponse:
    return _error_response("PAGE_NOT_FOUND", "Page not found", "page_id", status=404)


def _page_payload(controller, view: dict) -> dict:
    return {"view": view, "notifications": notifications.pending(page=controller.meta.id)}


@app.get("/health")
async def health() -> dict:
    return {"ok": True, "store": "remote" if settings.use_remote else "memory"}


@app.get("/nav")
async def nav() -> JSONResponse:
    classes = controllers.get("classes")
    class_count = 0
    if classes is not None:
        # the badge needs the class list even before the classes page is opened
        if classes.tracker.latest == 0:
            await anyio.to_thread.run_sync(classes.load)
        class_count = len(classes.state.records)
    items = []
    for meta in PAGES.values():
        items.append(
            {
                "id": meta.id,
                "name": meta.id.capitalize(),
                "href": "/" if meta.id == "students" else f"/{meta.id}",
                "count": class_count if meta.id == "classes" else 0,
            }
        )
    return _ok_response({"app": {"name": "Scholar Hub", "tagline": "Student Management"}, "items": items})


@app.get("/records/{entity_id}")
async def list_records(entity_id: str, q: str | None = None) -> JSONResponse:
    schema = get_schema(entity_id)
    if schema is None:
        return _entity_not_found()
    records = await anyio.to_thread.run_sync(services[schema.id].get_all)
    total = len(records)
    if q:
        records = filter_records(records, q, schema.search_fields)
    return _ok_response({"records": records, "total": total, "count": len(records)})


@app.get("/records/{entity_id}/by/{value}")
async def list_records_by_category(entity_id: str, value: str) -> JSONResponse:
    schema = get_schema(entity_id)
    if schema is None:
        return _entity_not_found()
    records = await anyio.to_thread.run_sync(services[schema.id].get_by_category, value)
    return _ok_response({"records": records, "field": schema.category_field, "value": value})


@app.get("/records/{entity_id}/{record_id}")
async def get_record(entity_id: str, record_id: str) -> JSONResponse:
    schema = get_schema(entity_id)
    if schema is None:
        return _entity_not_found()
    record = await anyio.to_thread.run_sync(services[schema.id].get_by_id, record_id)
    return _ok_response({"record": record, "record_id": record.get("Id")})


@app.post("/records/{entity_id}")
async def create_record(request: Request, entity_id: str) -> JSONResponse:
    schema = get_schema(entity_id)
    if schema is None:
        return _entity_not_found()
    data = _record_body(await _safe_json(request))
    record = await anyio.to_thread.run_sync(services[schema.id].create, data)
    return _ok_response({"record": record, "record_id": record.get("Id")})


@app.put("/records/{entity_id}/{record_id}")
async def update_record(request: Request, entity_id: str, record_id: str) -> JSONResponse:
    schema = get_schema(entity_id)
    if schema is None:
        return _entity_not_found()
    data = _record_body(await _safe_json(request))
    record = await anyio.to_thread.run_sync(services[schema.id].update, record_id, data)
    return _ok_response({"record": record, "record_id": record.get("Id")})


@app.delete("/records/{entity_id}/{record_id}")
async def delete_record(entity_id: str, record_id: str) -> JSONResponse:
    schema = get_schema(entity_id)
    if schema is None:
        return _entity_not_found()
    await anyio.to_thread.run_sync(services[schema.id].delete, record_id)
    return _ok_response({"deleted": True, "record_id": record_id})


@app.get("/pages/{page_id}")
async def get_page_view(page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    if controller.tracker.latest == 0:
        view = await anyio.to_thread.run_sync(controller.load)
    else:
        view = controller.view()
    return _ok_response(_page_payload(controller, view))


@app.post("/pages/{page_id}/load")
async def load_page(page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    view = await anyio.to_thread.run_sync(controller.load)
    return _ok_response(_page_payload(controller, view))


@app.put("/pages/{page_id}/search")
async def search_page(request: Request, page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    body = await _safe_json(request)
    term = body.get("term")
    if term is not None and not isinstance(term, str):
        return _error_response("SEARCH_INVALID", "term must be a string", "term")
    return _ok_response(_page_payload(controller, controller.set_search(term)))


@app.post("/pages/{page_id}/sort")
async def sort_page(request: Request, page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    body = await _safe_json(request)
    key = body.get("key")
    if not isinstance(key, str) or not key.strip():
        return _error_response("SORT_KEY_REQUIRED", "key is required", "key")
    return _ok_response(_page_payload(controller, controller.select_sort(key.strip())))


@app.post("/pages/{page_id}/form/open")
async def open_page_form(request: Request, page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    body = await _safe_json(request)
    view = await anyio.to_thread.run_sync(controller.open_form, body.get("record_id"))
    return _ok_response(_page_payload(controller, view))


@app.patch("/pages/{page_id}/form")
async def edit_page_form(request: Request, page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    body = await _safe_json(request)
    changes = body.get("changes") if "changes" in body else body
    if not isinstance(changes, dict):
        return _error_response("FORM_CHANGES_INVALID", "changes must be an object", "changes")
    return _ok_response(_page_payload(controller, controller.edit_form(changes)))


@app.post("/pages/{page_id}/form/submit")
async def submit_page_form(page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    view = await anyio.to_thread.run_sync(controller.submit_form)
    return _ok_response(_page_payload(controller, view))


@app.post("/pages/{page_id}/form/cancel")
async def cancel_page_form(page_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    return _ok_response(_page_payload(controller, controller.cancel_form()))


@app.post("/pages/{page_id}/records/{record_id}/delete")
async def request_page_delete(page_id: str, record_id: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    return _ok_response({"confirmation": controller.request_delete(record_id)})


@app.post("/pages/{page_id}/deletes/{token}/confirm")
async def confirm_page_delete(page_id: str, token: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    deleted = await anyio.to_thread.run_sync(controller.confirm_delete, token)
    return _ok_response({"deleted": deleted, **_page_payload(controller, controller.view())})


@app.delete("/pages/{page_id}/deletes/{token}")
async def cancel_page_delete(page_id: str, token: str) -> JSONResponse:
    meta = get_page(page_id)
    controller = controllers.get(meta.id) if meta else None
    if controller is None:
        return _page_not_found()
    return _ok_response({"cancelled": controller.cancel_delete(token)})


@app.get("/notifications")
async def list_notifications(page: str | None = None) -> JSONResponse:
    return _ok_response({"notifications": notifications.pending(page=page)})


@app.post("/notifications/{notification_id}/ack")
async def ack_notification(notification_id: str) -> JSONResponse:
    if not notifications.ack(notification_id):
        return _error_response("NOTIFICATION_NOT_FOUND", "Notification not found", "notification_id", status=404)
    return _ok_response({"acked": True})
