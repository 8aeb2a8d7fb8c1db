"""FastAPI application for Timeboard."""
import os
import sys
import time as _startup_time_module
from contextlib import asynccontextmanager
from dotenv import load_dotenv

_APP_START_TIME = _startup_time_module.time()

# Load .env file if present
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

# Add parent dir to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from slowapi import _rate_limit_exceeded_handler  # noqa: E402
from slowapi.errors import RateLimitExceeded  # noqa: E402
from tblib.entities import FieldValidationError  # noqa: E402
from tblib.reporting import InvalidDateError, NonFiniteAmountError  # noqa: E402
from tblib.store import StoreError  # noqa: E402

from .dependencies import get_db, _logger, limiter  # noqa: E402

# ── Config ──────────────────────────────────────────────────────
DB_PATH = os.environ.get(
    'TB_DB_PATH',
    os.path.join(os.path.dirname(__file__), '..', '..', 'data')
)
DB_PATH = os.path.normpath(DB_PATH)

# CORS origins from env
_raw_origins = os.environ.get('ALLOWED_ORIGINS', '')
ALLOWED_ORIGINS = (
    [o.strip() for o in _raw_origins.split(',') if o.strip()]
    or ['http://localhost:3000', 'http://localhost:8000']
)

_API_VERSION = "0.2.0"

_OPENAPI_TAGS = [
    {"name": "Health", "description": "System health and version info"},
    {"name": "Employees", "description": "Employee management (CRUD)"},
    {"name": "Projects", "description": "Project management (CRUD)"},
    {"name": "Activities", "description": "Time entries logged against projects"},
    {"name": "Reports", "description": "Chart datasets: cost, profitability, hours, weekly workload"},
    {"name": "Events", "description": "Server-sent refresh signals"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    _logger.info("Timeboard API starting, db=%s", DB_PATH)
    yield
    _logger.info("Timeboard API shutting down")


app = FastAPI(
    lifespan=lifespan,
    title="Timeboard API",
    description=(
        "REST API of the Timeboard dashboard: employees, projects, time-tracking "
        "activities and the charts computed from them.\n\n"
        "Deleting an employee or a project also deletes its activities."
    ),
    version=_API_VERSION,
    openapi_tags=_OPENAPI_TAGS,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cross-Origin-Resource-Policy"] = "same-origin"
    if os.environ.get('TB_HSTS', '').lower() in ('1', 'true', 'yes'):
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


_TYPE_MSGS = {
    "missing": "Campo requerido",
    "int_parsing": "Debe ser un número entero",
    "int_from_float": "Debe ser un número entero",
    "float_parsing": "Debe ser un número",
    "string_type": "Debe ser un texto",
    "value_error": "Valor inválido",
    "type_error": "Tipo de dato incorrecto",
}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Translate Pydantic validation errors into Spanish field messages."""
    fields = {}
    errors = []
    for e in exc.errors():
        field = ".".join(str(loc) for loc in e.get("loc", []) if loc not in ("body", "query", "path"))
        msg = _TYPE_MSGS.get(e.get("type", ""), e.get("msg", "Valor inválido"))
        if field:
            fields.setdefault(field, msg)
            errors.append(f"{field}: {msg}")
        else:
            errors.append(msg)
    detail = "; ".join(errors) if errors else "Entrada inválida"
    return JSONResponse(status_code=422, content={"detail": detail, "fields": fields})


@app.exception_handler(FieldValidationError)
async def field_validation_handler(request: Request, exc: FieldValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "fields": exc.errors})


@app.exception_handler(InvalidDateError)
async def invalid_date_handler(request: Request, exc: InvalidDateError):
    _logger.warning("Report aborted: %s", exc)
    return JSONResponse(
        status_code=422,
        content={"detail": f"Fecha inválida en la actividad {exc.activity_id}: {exc.value!r}"},
    )


@app.exception_handler(NonFiniteAmountError)
async def non_finite_amount_handler(request: Request, exc: NonFiniteAmountError):
    _logger.warning("Report aborted: %s", exc)
    return JSONResponse(
        status_code=422,
        content={"detail": "Los importes acumulados superan el rango representable"},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    _logger.error("Store error: %s %s | %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Almacén de datos no disponible"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions, log with details, return sanitized 500."""
    import traceback
    _logger.error(
        "Unhandled exception: %s %s | %s | %s",
        request.method, request.url.path,
        type(exc).__name__,
        traceback.format_exc().splitlines()[-1],
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Error interno del servidor. Por favor, inténtalo de nuevo."},
    )


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request as structured JSON with timing info and request-ID."""
    import time as _t
    import uuid as _uuid
    import json as _json_mod
    req_id = _uuid.uuid4().hex[:8]
    start = _t.time()
    response = await call_next(request)
    entry = {
        "req_id": req_id,
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "duration_ms": round((_t.time() - start) * 1000),
        "client": request.client.host if request.client else '-',
    }
    _logger.info(_json_mod.dumps(entry, ensure_ascii=False))
    response.headers["X-Request-ID"] = req_id
    return response


# ── Include routers ─────────────────────────────────────────────
from .routers import employees, projects, activities, reports, events  # noqa: E402

app.include_router(employees.router)
app.include_router(projects.router)
app.include_router(activities.router)
app.include_router(reports.router)
app.include_router(events.router)


# ── Routes ──────────────────────────────────────────────────────

@app.get(
    "/api/health",
    tags=["Health"],
    summary="Health check",
    description="Returns service status, API version, uptime in seconds and store state.",
)
def health():
    import time as _t
    db_status = "connected"
    try:
        get_db().get_stats()
    except StoreError:
        db_status = "error"

    return {
        "status": "ok",
        "version": _API_VERSION,
        "uptime_seconds": round(_t.time() - _APP_START_TIME, 1),
        "db": {"status": db_status},
    }


@app.get("/api/version", tags=["Health"], summary="API version")
def version():
    return {"version": _API_VERSION, "service": "Timeboard API"}


@app.get("/api/stats", tags=["Health"], summary="Record counts")
def stats():
    return get_db().get_stats()
