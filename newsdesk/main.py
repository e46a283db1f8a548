import logging
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import JSONResponse, Response

from newsdesk.api.routes import router as api_router
from newsdesk.core.config import get_settings
from newsdesk.core.errors import NewsdeskError
from newsdesk.core.logging_config import configure_logging, trace_id_var
from newsdesk.core.observability import REQUEST_COUNT, REQUEST_LATENCY
from newsdesk.core.responses import error_response
from newsdesk.db.init_db import init_db
from newsdesk.db.session import get_engine
from newsdesk.services.scheduler import build_scheduler

settings = get_settings()
configure_logging(json_format=settings.log_json, level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.observability_enabled:
        SQLAlchemyInstrumentor().instrument(engine=get_engine())

    scheduler = build_scheduler()
    app.state.scheduler = scheduler
    if settings.poll_mode == "inprocess":
        scheduler.start()
        logger.info(
            "Poll scheduler started for %s every %.0fs",
            ", ".join(scheduler.authors),
            scheduler.interval_seconds,
        )
    try:
        yield
    finally:
        await scheduler.stop()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)
if settings.observability_enabled:
    FastAPIInstrumentor.instrument_app(app)


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "missing-trace-id")


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    trace_id = request.headers.get("X-Trace-Id", str(uuid4()))
    request.state.trace_id = trace_id
    token = trace_id_var.set(trace_id)

    start = perf_counter()
    try:
        response = await call_next(request)
    finally:
        trace_id_var.reset(token)
    elapsed = perf_counter() - start

    path = request.url.path
    REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
    REQUEST_LATENCY.labels(request.method, path).observe(elapsed)
    response.headers["X-Trace-Id"] = trace_id
    return response


@app.exception_handler(NewsdeskError)
async def newsdesk_exception_handler(request: Request, exc: NewsdeskError):
    payload, status = error_response(
        code=exc.code,
        message=str(exc),
        trace_id=_trace_id(request),
        status=exc.status,
    )
    return JSONResponse(payload, status_code=status)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    payload, status = error_response(
        code="HTTP_ERROR",
        message=str(exc.detail),
        trace_id=_trace_id(request),
        status=exc.status_code,
    )
    return JSONResponse(payload, status_code=status)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    payload, status = error_response(
        code="INTERNAL_ERROR",
        message=str(exc),
        trace_id=_trace_id(request),
        status=500,
    )
    return JSONResponse(payload, status_code=status)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    payload, status = error_response(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        trace_id=_trace_id(request),
        status=422,
        details={"errors": [{key: err[key] for key in ("type", "loc", "msg") if key in err} for err in exc.errors()]},
    )
    return JSONResponse(payload, status_code=status)


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
