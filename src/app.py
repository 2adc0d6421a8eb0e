"""Storefront backend FastAPI application.

Hosts the payment functions the mobile client calls during checkout.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The payments domain is initialized at module level so uvicorn workers share
# it. Orders live in protean's in-memory provider unless a database URL is
# configured, in which case they go to the hosted ``orders``/``order_items``
# tables.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payments.domain import payments
from shared.config import Settings
from shared.logging import configure_logging

configure_logging()

_settings = Settings.from_env()
if _settings.database_url:
    payments.config["databases"]["default"] = {
        "provider": "postgresql",
        "database_uri": _settings.database_url,
    }
payments.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
from payments.api.routes import router as payments_router  # noqa: E402
from payments.settlement import PaymentSettlement, build_settlement, set_settlement  # noqa: E402


def create_app(settlement: PaymentSettlement | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app; without ``settlement`` one is wired from ``settings`` (or the environment)."""
    if settlement is None:
        settlement = build_settlement(settings or _settings)
    set_settlement(settlement)

    application = FastAPI(
        title="Storefront Payments API",
        description="Payment initialization and verification for storefront checkout",
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the payments domain context for the payment functions."""
        if request.url.path.startswith(payments_router.prefix):
            with payments.domain_context():
                response = await call_next(request)
            return response
        # Health check, docs, etc.
        return await call_next(request)

    application.include_router(payments_router)

    @application.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok"})

    return application


app = create_app()
