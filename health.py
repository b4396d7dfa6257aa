from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter()

@router.get("/health")
def health_check():
    """
    Lightweight health check endpoint.
    Used by uptime monitors to confirm the app is alive.
    """
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}
