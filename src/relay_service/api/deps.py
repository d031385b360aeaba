"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from relay_service.infrastructure.ws.hub import RelayHub


def get_hub(conn: HTTPConnection) -> RelayHub:
    return conn.app.state.hub


HubDep = Annotated[RelayHub, Depends(get_hub)]
