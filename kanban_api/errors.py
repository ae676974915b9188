from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kanban_api.log import logger

CODE_BY_STATUS = {
  status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
  status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
  status.HTTP_403_FORBIDDEN: "FORBIDDEN",
  status.HTTP_404_NOT_FOUND: "NOT_FOUND",
  status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
  status.HTTP_409_CONFLICT: "CONFLICT",
  status.HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMITED",
  status.HTTP_500_INTERNAL_SERVER_ERROR: "INTERNAL",
}


def error_body(code: str, message: str, details: Any = None) -> dict:
  err: dict[str, Any] = {"code": code, "message": message}
  if details is not None:
    err["details"] = details
  return {"error": err}


def format_validation_errors(errors: list[dict]) -> list[dict]:
  out: list[dict] = []
  for e in errors:
    loc = [str(p) for p in e.get("loc", ())]
    # drop the "body"/"query"/"path" prefix
    if loc and loc[0] in ("body", "query", "path", "header"):
      loc = loc[1:]
    out.append({"path": ".".join(loc), "issue": e.get("msg", "Invalid value")})
  return out


async def _http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
  code = CODE_BY_STATUS.get(exc.status_code, "ERROR")
  detail = exc.detail
  if isinstance(detail, dict):
    body = error_body(str(detail.get("code") or code), str(detail.get("message") or ""), detail.get("details"))
  else:
    body = error_body(code, str(detail))
  return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
  details = format_validation_errors(jsonable_encoder(exc.errors()))
  return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body("VALIDATION", "Invalid request", details))


def internal_error_response(request: Request, exc: BaseException) -> JSONResponse:
  logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
  return JSONResponse(
    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    content=error_body("INTERNAL", "Internal server error"),
  )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  return internal_error_response(request, exc)


def install_error_handlers(app: FastAPI) -> None:
  app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
  app.add_exception_handler(HTTPException, _http_exception_handler)
  app.add_exception_handler(RequestValidationError, _validation_exception_handler)
  app.add_exception_handler(Exception, _unhandled_exception_handler)
