"""FastAPI application entrypoint for the netScope API."""
from __future__ import annotations

import os
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from netScope.api.models import err
from netScope.api.routes import analyze, health
from netScope.api.utils import deps
from netScope.logging_config import reset_request_id, sanitize_log_data, set_request_id, setup_logging

logger = setup_logging("api")

app = FastAPI(title="netScope-api", version="0.1.0")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "HEAD", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next: Callable) -> Response:
    """Log all HTTP requests with timing and outcome."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)
    start_time = time.time()

    logger.info(
        "Incoming request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "user_input": sanitize_log_data(dict(request.query_params)),
        },
    )

    try:
        response = await call_next(request)
        logger.info(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success" if response.status_code < 400 else "error",
            },
        )
        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as exc:
        logger.error(
            f"Request failed: {exc}",
            exc_info=True,
            extra={
                "method": request.method,
                "path": request.url.path,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "exception",
                "error_type": type(exc).__name__,
            },
        )
        raise
    finally:
        reset_request_id(token)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Ensure CORS and request-id headers are sent even on unhandled errors."""
    # Runs outside log_requests, after the request id context was reset
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception("Unhandled exception: %s", exc, extra={"request_id": request_id})
    headers = {**CORS_HEADERS, "X-Request-ID": request_id}
    return JSONResponse(status_code=500, content=err(str(exc)), headers=headers)


app.include_router(analyze.router)
app.include_router(health.router)


@app.on_event("startup")
async def startup_event() -> None:
    logger.info("Starting netScope API", extra={"state": "startup"})
    await deps.init_resources()
    logger.info("API startup complete", extra={"state": "ready"})


@app.on_event("shutdown")
async def shutdown_event() -> None:
    logger.info("Shutting down netScope API", extra={"state": "shutdown"})
    await deps.close_resources()
    logger.info("API shutdown complete", extra={"state": "stopped"})


@app.get("/")
async def root():
    return {"status": "ok", "service": "netScope-api"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "netScope.api.server:app",
        host=os.getenv("NETSCOPE_API_HOST", "0.0.0.0"),
        port=int(os.getenv("NETSCOPE_API_PORT", "8000")),
        reload=bool(os.getenv("NETSCOPE_API_RELOAD", "")),
    )
