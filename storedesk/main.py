# Load environment variables FIRST, before any module imports that need them
from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .config import CORS_ORIGINS
from .db import init_db
from .logging_config import setup_logging
from .middleware import JsonBodyCacheMiddleware, RequestIDMiddleware
from .rate_limit import limiter
from .routes import (
    attendance_router,
    chat_router,
    compensation_policies_router,
    course_sessions_router,
    deals_router,
    enrollments_router,
    flows_router,
    housekeeping_router,
    invoices_router,
    laundry_router,
    machines_router,
    orders_router,
    patients_router,
    permits_router,
    pos_router,
    processing_router,
    programs_router,
    projects_router,
    students_router,
    units_router,
    vouchers_router,
)

# Configure logging at module load time
setup_logging()

logger = logging.getLogger(__name__)


# Schema changes are managed by Alembic (`alembic upgrade head`).
# init_db() only creates missing tables for fresh local databases.
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("StoreDesk API %s started", __version__)
    yield


app = FastAPI(title="StoreDesk API", version=__version__, lifespan=lifespan)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(JsonBodyCacheMiddleware)

# Add rate limit exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS configuration
# In production, set CORS_ORIGINS to restrict allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def format_validation_errors(errors) -> str:
    """Flatten pydantic errors into "field.path: message; ..." form."""
    parts = []
    for error in errors:
        loc = [str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {error.get('msg', 'Invalid value')}")
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = format_validation_errors(exc.errors())
    logger.debug("Validation failed for %s %s: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=400, content={"detail": detail})


# ---------- Health ----------


@app.get("/health", tags=["Health"])
def health() -> Dict[str, str]:
    """Health check endpoint. Returns ok if the service is running."""
    return {"status": "ok"}


# ---------- Routers ----------

# Public
app.include_router(chat_router)
app.include_router(orders_router)

# Owner dashboard
app.include_router(deals_router)
app.include_router(invoices_router)
app.include_router(units_router)
app.include_router(housekeeping_router)
app.include_router(machines_router)
app.include_router(laundry_router)
app.include_router(processing_router)
app.include_router(patients_router)
app.include_router(students_router)
app.include_router(programs_router)
app.include_router(course_sessions_router)
app.include_router(enrollments_router)
app.include_router(attendance_router)
app.include_router(projects_router)
app.include_router(permits_router)
app.include_router(pos_router)
app.include_router(flows_router)
app.include_router(vouchers_router)
app.include_router(compensation_policies_router)
