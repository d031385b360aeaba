from __future__ import annotations

from fastapi import APIRouter

from relay_service.api.deps import HubDep

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(hub: HubDep) -> dict[str, object]:
    return {
        "status": "ready",
        "connections": len(hub.manager),
        "sessions": len(hub.registry),
    }
