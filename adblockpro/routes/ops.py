from datetime import datetime, timezone
from fastapi import APIRouter
from adblockpro.metrics import metrics_endpoint
from adblockpro.ratelimit import limiter

router = APIRouter(tags=["ops"])

start_time = datetime.now(timezone.utc)


@router.get("/health")
@limiter.exempt
def health():
    uptime = (datetime.now(timezone.utc) - start_time).total_seconds()
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat(), "uptime_seconds": uptime}


@router.get("/metrics")
@limiter.exempt
def metrics():
    return metrics_endpoint()
