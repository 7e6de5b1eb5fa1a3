"""Loyalty Service routers."""

from services.loyalty_service.routers.admin import router as admin_router  # noqa: F401
from services.loyalty_service.routers.member import router as member_router  # noqa: F401
from services.loyalty_service.routers.webhooks import router as webhooks_router  # noqa: F401

__all__ = ["admin_router", "member_router", "webhooks_router"]
