"""
Dependency injection for FastAPI routes.
"""

from typing import Any, Protocol

from fastapi import HTTPException, Request


class StatusProvider(Protocol):
    """Anything that can report a health snapshot (normally MonitorService)."""

    def status(self) -> dict[str, Any]: ...


def get_monitor(request: Request) -> StatusProvider:
    """Get the monitor attached by create_app()."""
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None:
        raise HTTPException(status_code=503, detail="Monitor not attached")
    return monitor
