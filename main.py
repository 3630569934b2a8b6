import os
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from env_loader import load_environment, is_production, env_flag
load_environment()

from database import Base, engine
import models  # noqa: F401  registers tables on Base.metadata
from routes.client import router as client_router
from routes.contacts import router as contacts_router
from routes.admin import router as admin_router
from routes.work import router as work_router
from routes.billing import router as billing_router
from routes.webhooks import router as webhooks_router
from routes.review import router as review_router
from api_errors import ApiError
from middleware import JSONCharsetMiddleware, RequestLoggingMiddleware

logger = logging.getLogger(__name__)
APP_VERSION = os.getenv("APP_VERSION", "2026.10.17")


app = FastAPI(title="Client Portal API")


def _parse_csv_env(env_name: str) -> list[str]:
    raw = os.getenv(env_name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


default_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

cors_origins = _parse_csv_env("CORS_ORIGINS") or default_cors_origins
cors_origin_regex = os.getenv("CORS_ORIGIN_REGEX", "").strip() or None
cors_allow_all = env_flag("CORS_ALLOW_ALL")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if cors_allow_all else cors_origins,
    allow_origin_regex=None if cors_allow_all else cors_origin_regex,
    allow_credentials=not cors_allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(JSONCharsetMiddleware)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors() if hasattr(exc, "errors") else []
    field = None
    message = "Invalid request"
    if errors:
        err = errors[0]
        loc = err.get("loc") or []
        parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
        if parts:
            field = ".".join(parts)
        message = err.get("msg") or message
    return JSONResponse(
        status_code=422,
        content={"success": False, "code": "validation_error", "message": message, "field": field},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        code = "not_found"
    elif exc.status_code == 405:
        code = "method_not_allowed"
    elif exc.status_code == 400:
        code = "bad_request"
    elif exc.status_code == 401:
        code = "auth_required"
    elif exc.status_code == 403:
        code = "forbidden"
    else:
        code = "http_error"

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "code": code, "message": str(exc.detail), "field": None},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unexpected API error on %s %s", request.method, request.url.path)
    content = {"success": False, "code": "server_error", "message": "Internal server error", "field": None}
    if not is_production():
        content["details"] = str(exc)
    return JSONResponse(status_code=500, content=content)


app.include_router(client_router)
app.include_router(contacts_router)
app.include_router(admin_router)
app.include_router(work_router)
app.include_router(billing_router)
app.include_router(webhooks_router)
app.include_router(review_router)


@app.on_event("startup")
def create_tables() -> None:
    # Alembic owns the schema in deployed environments.
    if env_flag("AUTO_CREATE_TABLES", default=not is_production()):
        Base.metadata.create_all(bind=engine)


@app.get("/")
def root():
    return {"status": "ok", "service": "Client Portal API"}


@app.get("/version")
def version():
    return {"service": "Client Portal API", "version": APP_VERSION}
