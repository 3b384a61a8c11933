"""
Health Check Endpoints

- /health        - Basic status
- /health/live   - Liveness check (is process running)
- /health/ready  - Readiness check: which endpoint identities and relays are
                   configured (flags only, never URLs or secrets)
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..config import settings
from ..edge_config import EdgeConfig, get_edge_config

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health():
    return {"status": "ok", "environment": settings.environment}


@router.get("/live")
async def liveness():
    """Liveness probe: the process is up and serving"""
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
async def readiness(config: EdgeConfig = Depends(get_edge_config)):
    """
    Readiness probe.

    Ready when at least one forwarding target (group endpoint or fallback)
    is configured; each component is reported individually.
    """
    components = config.readiness()
    forwarding = [name for name in config.routes.summary() if components.get(name)]
    ready = bool(forwarding)

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": components,
        }
    )
