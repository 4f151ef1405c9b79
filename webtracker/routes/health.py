"""
Liveness, readiness and the public status probe.
"""

import time

from fastapi import APIRouter, Depends

from webtracker.infrastructure.observability.vitals import vitals
from webtracker.models.api.shipment_response import ServiceStatusResponse
from webtracker.routes.dependencies import get_runtime
from webtracker.runtime import Application

router = APIRouter()

SERVICE_NAME = "webtracker-api"


@router.get("/healthz", response_model=ServiceStatusResponse)
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/api/public/status", response_model=ServiceStatusResponse)
async def public_status():
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/readyz")
async def readyz(runtime: Application = Depends(get_runtime)):
    """
    Readiness check: database, bot connection and process vitals.
    The bot counts against readiness only when a transport is configured.
    """
    checks = {}
    overall_ok = True

    t0 = time.time()
    db_health = await runtime.store.db.health_check()
    is_healthy = db_health.get("healthy", False)
    checks["database"] = {
        "ok": is_healthy,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if not is_healthy:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    overall_ok = overall_ok and is_healthy

    bot = runtime.bot_state()
    checks["bot"] = {"ok": bot["connected"] or not bot["enabled"], **bot}
    overall_ok = overall_ok and checks["bot"]["ok"]

    return {
        "overall_ok": overall_ok,
        "checks": checks,
        "vitals": {**vitals.snapshot(), "uptime_seconds": round(vitals.uptime(), 1)},
        "timestamp": time.time(),
    }
