"""
Validating admission webhook (HTTP adapter).

Thin FastAPI binding around `admission.pipeline.review`. TLS termination and the listener
belong to whatever hosts this app.

Status code contract:
- 200 for every decision, allowed or denied (the verdict travels in the body)
- 400 when the review document is malformed
- 500 for genuine engine faults (misconfiguration, unexpected errors)

Anything non-200 leaves the operation to the API server's failurePolicy.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from admission.core.config import AdmissionConfig, load_admission_config
from admission.core.errors import ConfigError, MalformedEnvelope
from admission.pipeline.review import review_bytes
from admission.rules.registry import get_default_registry

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@lru_cache(maxsize=1)
def _get_config() -> AdmissionConfig:
    return load_admission_config()


def configure_logging(level: str | None = None) -> None:
    log_level = (level or os.getenv("LOG_LEVEL", "info")).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format=LOG_FORMAT)
    logger.setLevel(getattr(logging, log_level, logging.INFO))


def _startup_validate_config() -> None:
    # Fail fast: unknown rule ids must surface at startup, not on the first review.
    cfg = _get_config()
    configure_logging(cfg.log_level)
    get_default_registry().select(cfg.rules)
    logger.info(
        "Admission config: rules=%s unsupported_kind=%s message_policy=%s max_sub_units=%d operations=%s",
        ",".join(cfg.rules),
        cfg.unsupported_kind_policy,
        cfg.message_policy,
        cfg.max_sub_units,
        ",".join(op.value for op in cfg.operations),
    )


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    _startup_validate_config()
    yield


app = FastAPI(title="Admission policy webhook", lifespan=_lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests."""
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise
    process_time = time.time() - start_time
    logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
    return response


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


def _review_sync(body: bytes) -> bytes:
    return review_bytes(body, config=_get_config())


async def _review(request: Request) -> Response:
    body = await request.body()
    try:
        # CPU-bound; keep it off the event loop.
        out = await run_in_threadpool(_review_sync, body)
    except MalformedEnvelope as e:
        logger.warning("Rejecting malformed admission review: %s", e.detail)
        raise HTTPException(status_code=400, detail=e.detail)
    except ConfigError as e:
        logger.error("Admission engine misconfigured: %s", str(e))
        raise HTTPException(status_code=500, detail=f"admission engine misconfigured: {e}")
    except Exception as e:
        logger.exception("Error reviewing admission request")
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")
    return Response(content=out, status_code=200, media_type="application/json")


@app.post("/validate")
async def validate(request: Request) -> Response:
    return await _review(request)


@app.post("/denyenv")
async def denyenv(request: Request) -> Response:
    """Legacy route name (single-rule deployments)."""
    return await _review(request)
