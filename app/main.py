import logging
import os
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.logging_config import configure_logging
from app.opencerts.api_models import (
    ChainRequest,
    ChainResponse,
    VerifyRequest,
    VerifyResponse,
)
from app.opencerts.certificate import parse_certificate
from app.opencerts.clients import build_orchestrator
from app.opencerts.exceptions import CertificateParseError
from app.opencerts.merkle import build_chain
from app.opencerts.reporting import LoggingReporter
from app.opencerts.verify import to_error_detail

configure_logging()
log = logging.getLogger("opencerts")

app = FastAPI(title="OpenCerts Verifier", version="0.1.0")


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.middleware("http")
async def req_log(request: Request, call_next):
    start = time.time()
    route = request.url.path
    remote = request.client.host if request.client else "-"
    resp = await call_next(request)
    duration_ms = int((time.time() - start) * 1000)
    log.info(f"request_complete status={resp.status_code} duration_ms={duration_ms}",
             extra={"request_id": "-", "route": route, "remote_addr": remote})
    return resp


@app.post("/verify")
async def verify(req: VerifyRequest, request: Request):
    """Verify a certificate and return one verdict event per check.

    Malformed certificates are rejected before any check runs and yield
    ``valid: false`` with a single error and no events.
    """
    request_id = str(uuid.uuid4())
    remote = request.client.host if request.client else "-"
    try:
        certificate = parse_certificate(req.certificate)
    except CertificateParseError as e:
        log.info(f"verify_rejected: {e.message}",
                 extra={"request_id": request_id, "route": "/verify", "remote_addr": remote})
        resp = VerifyResponse(request_id=request_id, valid=False, errors=[to_error_detail(e)])
        return JSONResponse(status_code=400, content=resp.model_dump())

    orchestrator = build_orchestrator(reporter=LoggingReporter())
    result = await orchestrator.verify_certificate(certificate)
    log.info(f"verify_called valid={result.valid}",
             extra={"request_id": request_id, "route": "/verify", "remote_addr": remote})
    resp = VerifyResponse(request_id=request_id, valid=result.valid, events=result.events)
    return JSONResponse(resp.model_dump())


@app.post("/chain")
def chain(req: ChainRequest):
    """Reconstruct the hash chain from a target hash and its proof."""
    try:
        hashes = build_chain(req.target_hash, req.proof)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"detail": f"Invalid hash: {e}"})
    return ChainResponse(chain=list(hashes)).model_dump()


@app.get("/version")
def version():
    # GIT_SHA is injected at deploy time
    return {"git_sha": os.getenv("GIT_SHA", "unknown")}


@app.get("/admin")
def admin():
    """Return all configurable items for operator visibility.

    Gated by ADMIN_ENDPOINT_ENABLED (default: True for dev, False for prod).
    """
    from app.core.config import (
        ADMIN_ENDPOINT_ENABLED,
        ANALYTICS_ENABLED,
        ENS_REGISTRY_ADDRESS,
        ENS_TEXT_KEY,
        ETH_RPC_URL,
        NETWORK,
        REGISTRY_TIMEOUT_SECONDS,
        REGISTRY_URL,
        RPC_TIMEOUT_SECONDS,
        SUPPORTED_SIGNATURE_TYPES,
    )

    if not ADMIN_ENDPOINT_ENABLED:
        return JSONResponse(
            status_code=404,
            content={"detail": "Admin endpoint disabled"}
        )

    return {
        "normative": {
            "supported_signature_types": sorted(SUPPORTED_SIGNATURE_TYPES),
        },
        "policy": {
            "rpc_timeout_seconds": RPC_TIMEOUT_SECONDS,
            "registry_timeout_seconds": REGISTRY_TIMEOUT_SECONDS,
            "ens_text_key": ENS_TEXT_KEY,
        },
        "chain": {
            "network": NETWORK,
            "eth_rpc_url": ETH_RPC_URL,
            "ens_registry_address": ENS_REGISTRY_ADDRESS,
            "registry_url": REGISTRY_URL,
        },
        "features": {
            "analytics_enabled": ANALYTICS_ENABLED,
            "admin_endpoint_enabled": ADMIN_ENDPOINT_ENABLED,
        },
        "environment": {
            "log_level": logging.getLogger().getEffectiveLevel(),
            "log_level_name": logging.getLevelName(logging.getLogger().getEffectiveLevel()),
        },
    }


class LogLevelRequest(BaseModel):
    level: str


@app.post("/admin/log-level")
def set_log_level(req: LogLevelRequest):
    """Change log level at runtime (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Gated by ADMIN_ENDPOINT_ENABLED.
    """
    from app.core.config import ADMIN_ENDPOINT_ENABLED

    if not ADMIN_ENDPOINT_ENABLED:
        return JSONResponse(
            status_code=404,
            content={"detail": "Admin endpoint disabled"}
        )

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    level_upper = req.level.upper()

    if level_upper not in valid_levels:
        return JSONResponse(
            status_code=400,
            content={"detail": f"Invalid log level. Must be one of: {valid_levels}"}
        )

    # Set level on root logger and the service logger
    logging.getLogger().setLevel(getattr(logging, level_upper))
    logging.getLogger("opencerts").setLevel(getattr(logging, level_upper))

    log.info(f"Log level changed to {level_upper}")

    return {
        "success": True,
        "log_level": level_upper,
        "message": f"Log level set to {level_upper}"
    }
