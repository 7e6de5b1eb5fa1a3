"""FastAPI application for the Loyalty Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.loyalty_service.routers import (
    admin_router,
    member_router,
    webhooks_router,
)


def create_app() -> FastAPI:
    """Create and configure the Loyalty Service FastAPI app."""
    app = FastAPI(
        title="Clube Loyalty Service",
        version="0.1.0",
        description="Points ledger, referral commissions and payouts.",
    )

    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "loyalty"}

    # Member-facing routes
    app.include_router(member_router)

    # Admin routes
    app.include_router(admin_router)

    # Gateway callbacks (token-verified, no user auth)
    app.include_router(webhooks_router)

    return app


app = create_app()
