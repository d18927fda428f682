"""
FastAPI application serving the metrics store.

1. Metrics REST API
   GET  /api/metrics                      → whole store document
   GET  /api/metrics/{owner}/{platform}   → one counters record
   POST /api/metrics/{owner}/{platform}   → upsert counters from the JSON body
   GET  /api/health                       → liveness (+ YouTube auth state)

2. YouTube (only when YOUTUBE_CLIENT_ID / YOUTUBE_CLIENT_SECRET are set)
   GET  /oauth/youtube/authorize          → redirect to Google consent screen
   GET  /oauth/youtube/callback           → store the token pair
   POST /api/youtube/sync/{owner}         → refresh one owner's youtube counters
   POST /api/youtube/sync                 → refresh every configured owner
   Optional scheduled sync via APScheduler (YOUTUBE_SYNC_CRON).

Run with `python main.py` or `uvicorn app:app --port 3001`.
"""

import html
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from metrics_api.config import cfg
from metrics_api.errors import MetricsApiError, NotFound
from metrics_api.models import MetricsUpdate
from metrics_api.store import MetricsStore, utc_now_iso
from metrics_api.youtube_client import YouTubeClient
from metrics_api.youtube_sync import scheduled_sync, sync_all, sync_owner

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"


def configure_logging() -> None:
    """Root logging for both `python main.py` and `uvicorn app:app`."""
    logging.basicConfig(
        level=cfg.LOG_LEVEL,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


configure_logging()
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _status_for(exc: Exception) -> int:
    return exc.status_code if isinstance(exc, MetricsApiError) else 500


def _oauth_page(title: str, message: str, status_code: int = 200) -> HTMLResponse:
    body = (
        "<!doctype html><html><head><title>{t}</title></head>"
        "<body><h1>{t}</h1><p>{m}</p></body></html>"
    ).format(t=html.escape(title), m=html.escape(message))
    return HTMLResponse(content=body, status_code=status_code)


def build_youtube_client() -> YouTubeClient | None:
    if not cfg.youtube_enabled:
        return None
    return YouTubeClient(
        client_id=cfg.YOUTUBE_CLIENT_ID,
        client_secret=cfg.YOUTUBE_CLIENT_SECRET,
        redirect_uri=cfg.YOUTUBE_REDIRECT_URI,
        token_file=cfg.YOUTUBE_AUTH_FILE,
        timeout=cfg.UPSTREAM_TIMEOUT,
    )


def create_app(
    store: MetricsStore,
    youtube: YouTubeClient | None = None,
    handles: dict[str, str] | None = None,
    sync_cron: str | None = None,
) -> FastAPI:
    handles = cfg.YOUTUBE_HANDLES if handles is None else handles

    # ── Lifespan (seed + scheduler) ───────────────────────────────────────────

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.ensure_seeded()
        scheduler = None
        if youtube is not None and sync_cron:
            scheduler = AsyncIOScheduler()
            scheduler.add_job(
                scheduled_sync,
                CronTrigger.from_crontab(sync_cron),
                args=[store, youtube, handles],
                id="youtube_sync",
                replace_existing=True,
            )
            scheduler.start()
            app.state.scheduler = scheduler
            logger.info("Scheduler started — YouTube sync on '%s'", sync_cron)
        yield
        if scheduler is not None:
            scheduler.shutdown()

    app = FastAPI(title="Social Metrics API", lifespan=lifespan)

    # ── Cross-origin headers on every response ────────────────────────────────

    @app.middleware("http")
    async def cors_headers(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    # ── Error bodies are always {"error": message} ────────────────────────────

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        problems = []
        for err in exc.errors():
            field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            problems.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
        return _error(400, "; ".join(problems) or "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    # ── Metrics ───────────────────────────────────────────────────────────────

    @app.get("/api/metrics")
    async def get_all_metrics():
        try:
            return store.load()
        except Exception as exc:
            logger.error("Failed to read metrics: %s", exc)
            return _error(500, "Failed to read metrics")

    @app.get("/api/metrics/{owner}/{platform}")
    async def get_metrics(owner: str, platform: str):
        try:
            return store.get_counters(owner, platform)
        except NotFound:
            return _error(404, "Metrics not found")
        except Exception as exc:
            logger.error("Failed to read metrics: %s", exc)
            return _error(500, "Failed to read metrics")

    @app.post("/api/metrics/{owner}/{platform}")
    async def update_metrics(owner: str, platform: str, payload: MetricsUpdate | None = None):
        fields = payload.fields() if payload is not None else {}
        try:
            data = store.upsert_counters(owner, platform, fields)
        except Exception as exc:
            status = _status_for(exc)
            if status == 400:
                return _error(400, str(exc))
            logger.error("Failed to update %s/%s: %s", owner, platform, exc)
            return _error(500, "Failed to update metrics")
        return {
            "success": True,
            "message": f"Updated {owner}/{platform}",
            "data": data,
        }

    @app.get("/api/health")
    async def health():
        body = {"status": "ok", "timestamp": utc_now_iso()}
        if youtube is not None:
            body["youtube"] = "authenticated" if youtube.is_authenticated() else "not authenticated"
        return body

    if youtube is None:
        return app

    # ── YouTube OAuth ─────────────────────────────────────────────────────────

    @app.get("/oauth/youtube/authorize")
    async def youtube_authorize():
        logger.info("Redirecting to Google OAuth consent")
        return RedirectResponse(youtube.authorization_url())

    @app.get("/oauth/youtube/callback")
    async def youtube_callback(code: str | None = None, error: str | None = None):
        if error:
            logger.error("YouTube authorization denied: %s", error)
            return _oauth_page("YouTube authorization failed", error, status_code=400)
        if not code:
            return _oauth_page("YouTube authorization failed", "Missing authorization code", status_code=400)
        try:
            await run_in_threadpool(youtube.exchange_code, code)
        except Exception as exc:
            logger.error("YouTube callback failed: %s", exc)
            return _oauth_page("YouTube authorization failed", str(exc), status_code=500)
        return _oauth_page("YouTube connected", "Authorization complete. You can close this window.")

    # ── YouTube sync ──────────────────────────────────────────────────────────

    @app.post("/api/youtube/sync/{owner}")
    async def youtube_sync_owner(owner: str):
        try:
            data = await run_in_threadpool(sync_owner, store, youtube, owner, handles)
        except Exception as exc:
            logger.error("YouTube sync for %s failed: %s", owner, exc)
            return _error(_status_for(exc), str(exc))
        return {"success": True, "message": f"Updated {owner}/youtube", "data": data}

    @app.post("/api/youtube/sync")
    async def youtube_sync_all():
        try:
            data = await run_in_threadpool(sync_all, store, youtube, handles)
        except Exception as exc:
            logger.error("YouTube sync failed: %s", exc)
            return _error(_status_for(exc), str(exc))
        return {
            "success": True,
            "message": f"Updated youtube for {', '.join(data) or 'no owners'}",
            "data": data,
        }

    return app


app = create_app(
    MetricsStore(cfg.METRICS_FILE),
    youtube=build_youtube_client(),
    handles=cfg.YOUTUBE_HANDLES,
    sync_cron=cfg.YOUTUBE_SYNC_CRON,
)
