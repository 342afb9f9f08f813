from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "PayTR Callback Server is running"


@router.get("/health")
async def healthcheck(request: Request) -> dict[str, object]:
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "correlation_entries": len(request.app.state.correlation_store),
    }
