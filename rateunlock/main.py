"""
RateUnlock - mortgage lead scoring, lender matching and routing.
Main FastAPI application entry point.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from rateunlock.config import get_settings
from rateunlock.api.router import api_router
from rateunlock.utils.logging import (
    configure_structured_logging,
    generate_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger("rateunlock")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        set_correlation_id(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info("RateUnlock starting up (env=%s)", settings.app_env)

    if not settings.webhook_signing_key:
        logger.warning(
            "WEBHOOK_SIGNING_KEY not set - lender webhooks will be sent unsigned."
        )

    # Initialize Sentry if configured
    if settings.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=0.1,
                environment=settings.app_env,
            )
            logger.info("Sentry initialized")
        except Exception as e:
            logger.warning("Sentry initialization failed: %s", str(e))

    worker_tasks: list[asyncio.Task] = []

    from rateunlock.workers.delivery_worker import run_delivery_worker
    worker_tasks.append(asyncio.create_task(run_delivery_worker()))
    logger.info("Delivery worker started")

    yield

    # Graceful shutdown - give workers time to finish current work
    logger.info("RateUnlock shutting down - stopping %d workers...", len(worker_tasks))
    for task in worker_tasks:
        task.cancel()
    if worker_tasks:
        done, pending = await asyncio.wait(worker_tasks, timeout=10.0)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
    logger.info("RateUnlock shutdown complete")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    # Configure structured JSON logging with correlation IDs
    configure_structured_logging(settings.log_level)

    application = FastAPI(
        title="RateUnlock",
        description="Mortgage lead scoring, lender matching and routing",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS - calculators and partner widgets post from other origins
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Content-Type", "X-Correlation-ID",
            "Accept", "Origin", "X-Requested-With",
        ],
    )

    # Correlation ID middleware (must be added AFTER CORS so it runs on every request)
    application.add_middleware(CorrelationIdMiddleware)

    application.include_router(api_router)

    return application


app = create_app()
