import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from milewise.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", settings.log_level).upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "milewise.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from milewise.database import engine
from milewise.dependencies import REQUEST_ID_HEADER
from milewise.routers import planner, share
from milewise.services.planner.errors import PlannerError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("MileWise planner started")
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="MileWise",
    description="Cache-gated award trip planner",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    """Thread one request id through logs, error bodies and the response header."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    started = time.perf_counter()

    response = await call_next(request)

    response.headers[REQUEST_ID_HEADER] = request_id
    duration_ms = int((time.perf_counter() - started) * 1000)
    log = logger.error if response.status_code >= 500 else logger.info
    log(
        f"http.request.completed request_id={request_id} method={request.method} "
        f"path={request.url.path} status={response.status_code} duration_ms={duration_ms}"
    )
    return response


@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    if exc.request_id is None:
        exc.request_id = getattr(request.state, "request_id", None)
    if exc.status_code >= 500:
        logger.error(f"planner.error request_id={exc.request_id} code={exc.error_code} path={request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "path": ".".join(str(part) for part in issue.get("loc", ())) or "root",
            "message": issue.get("msg", ""),
            "type": issue.get("type", ""),
        }
        for issue in exc.errors()
    ]
    body = {
        "errorCode": "VALIDATION_FAILED",
        "message": "Request validation failed",
        "requestId": getattr(request.state, "request_id", None),
        "errors": errors,
    }
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # Runs outside the request-id middleware, so the header is set here
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        f"http.request.failed request_id={request_id} method={request.method} "
        f"path={request.url.path} error={type(exc).__name__}"
    )
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return JSONResponse(
        status_code=500,
        content=PlannerError("Internal server error", request_id=request_id).to_body(),
        headers=headers,
    )


app.include_router(planner.router, prefix="/api/planner", tags=["planner"])
app.include_router(share.router, prefix="/api/share", tags=["share"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "milewise"}
