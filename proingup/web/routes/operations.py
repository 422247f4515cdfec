"""Operations endpoints (liveness for load balancers and uptime checks)."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

operations_router = APIRouter(tags=["Operations"])


@operations_router.get("/health")
async def health():
    """Liveness probe. Public; reveals nothing about configuration."""
    return JSONResponse({"status": "ok"}, headers={"Cache-Control": "no-store"})
