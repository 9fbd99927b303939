"""FastAPI application factory."""

import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration

from messenger.api import health
from messenger.client import Messenger
from messenger.logging_config import setup_logfire
from messenger.middleware.correlation_id import CorrelationIDMiddleware

VERSION = "0.1.0"


def create_app(messenger: Messenger | None = None) -> FastAPI:
    """Build the webhook application for ``messenger``.

    Register handlers on ``messenger`` before the application starts: the
    handler registry is frozen during startup.
    """
    messenger = messenger or Messenger()
    settings = messenger.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: observability setup and registry freeze."""
        setup_logfire(app, settings)

        # Initialize Sentry if DSN is provided
        if settings.sentry_dsn:
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=settings.sentry_traces_sample_rate,
                send_default_pii=False,
                integrations=[FastApiIntegration()],
            )

        messenger.registry.freeze()

        logfire.info(
            "Application startup complete",
            webhook_path=settings.webhook_path,
            verify_signature=settings.facebook_verify_signature,
            handlers=len(messenger.registry),
            environment=settings.env,
        )

        yield

        logfire.info("Application shutdown complete")

    app = FastAPI(
        title="Facebook Messenger Webhook",
        description="Messenger Platform webhook receiver and Send API client",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.messenger = messenger

    # Correlation ID middleware (must be first for request tracing)
    app.add_middleware(CorrelationIDMiddleware)

    app.include_router(health.router, tags=["health"])
    app.include_router(messenger.router(), tags=["webhook"])

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "messenger.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENV") == "local",
    )
