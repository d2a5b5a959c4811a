from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from taskflow.config import settings
from taskflow.errors import TaskflowError
from taskflow.realtime.hub import hub
from taskflow.realtime.relay import RedisRelay
from taskflow.routers.activity import router as activity_router
from taskflow.routers.auth import router as auth_router
from taskflow.routers.boards import router as boards_router
from taskflow.routers.lists import router as lists_router
from taskflow.routers.realtime import router as realtime_router
from taskflow.routers.tasks import router as tasks_router

logger = logging.getLogger(__name__)

app = FastAPI(
  title="TaskFlow API",
  version=settings.app_version,
  docs_url="/docs" if settings.api_docs_enabled else None,
  redoc_url="/redoc" if settings.api_docs_enabled else None,
  openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)


@app.exception_handler(TaskflowError)
async def _taskflow_error_handler(_, exc: TaskflowError) -> JSONResponse:
  return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_origin_regex=settings.cors_origin_regex,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(auth_router)
app.include_router(boards_router)
app.include_router(lists_router)
app.include_router(tasks_router)
app.include_router(activity_router)
app.include_router(realtime_router)


@app.middleware("http")
async def _security_headers_middleware(request, call_next):
  response = await call_next(request)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True, "realtime": hub.stats()}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


_relay: RedisRelay | None = None


@app.on_event("startup")
async def _startup() -> None:
  global _relay
  logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
  logger.info("taskflow api %s starting", settings.app_version)
  if settings.redis_url and _relay is None:
    _relay = RedisRelay(settings.redis_url, hub)
    await _relay.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
  global _relay
  if _relay is not None:
    await _relay.stop()
    _relay = None
