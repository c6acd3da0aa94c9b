from __future__ import annotations

from courier.api.routes.admin_queue import router as admin_queue_router
from courier.api.routes.health import router as health_router

__all__ = ["admin_queue_router", "health_router"]
