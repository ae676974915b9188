from __future__ import annotations

from time import monotonic

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from kanban_api.config import settings
from kanban_api.deps import require_admin
from kanban_api.errors import install_error_handlers, internal_error_response
from kanban_api.log import configure_logging, logger
from kanban_api.metrics import runtime_metrics
from kanban_api.models import User
from kanban_api.routers.activity import router as activity_router
from kanban_api.routers.auth import router as auth_router
from kanban_api.routers.boards import router as boards_router
from kanban_api.routers.checklist import router as checklist_router
from kanban_api.routers.columns import router as columns_router
from kanban_api.routers.comments import router as comments_router
from kanban_api.routers.tasks import router as tasks_router
from kanban_api.routers.users import router as users_router
from kanban_api.security import secret_is_placeholder

app = FastAPI(
  title="Kanban API",
  version=settings.app_version,
  docs_url="/docs" if settings.api_docs_enabled else None,
  redoc_url="/redoc" if settings.api_docs_enabled else None,
  openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)

install_error_handlers(app)

app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(boards_router)
app.include_router(columns_router)
app.include_router(tasks_router)
app.include_router(comments_router)
app.include_router(checklist_router)
app.include_router(activity_router)


@app.middleware("http")
async def _request_metrics_middleware(request, call_next):
  start = monotonic()
  try:
    response = await call_next(request)
  except Exception as exc:
    # handlers registered for Exception run outside this middleware
    response = internal_error_response(request, exc)
  elapsed_ms = (monotonic() - start) * 1000.0
  runtime_metrics.observe_request(response.status_code, elapsed_ms)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


@app.get("/admin/metrics")
async def admin_metrics(_: User = Depends(require_admin)) -> dict:
  return runtime_metrics.snapshot()


@app.on_event("startup")
async def _startup() -> None:
  configure_logging()
  if settings.is_test_db():
    return
  if secret_is_placeholder(settings.jwt_secret):
    raise RuntimeError("JWT_SECRET is required and must not be a placeholder")
  logger.info("kanban api %s (%s) starting", settings.app_version, settings.build_sha)
