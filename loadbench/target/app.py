"""Reference target: a small customer API with the same surface as the benchmarked service.

Useful for trying scenarios locally and for end-to-end tests of the engine.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from generators.customer_generator import CustomerDataFactory
from loadbench.config import settings
from loadbench.shared.logging import setup_logging
from loadbench.target.middleware import StructuredLoggingMiddleware, global_exception_handler
from loadbench.target.routes import health_router, router
from loadbench.target.store import CustomerStore

logger = structlog.get_logger()


def create_app(seed_customers: int | None = None, seed: int | None = 42) -> FastAPI:
    count = settings.target_seed_customers if seed_customers is None else seed_customers

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(settings.log_level, json_logs=settings.log_json)
        logger.info("target_starting", seeded_customers=len(app.state.store))
        yield
        logger.info("target_shutting_down")

    app = FastAPI(
        title="loadbench reference target",
        description="In-memory customer API for exercising load scenarios",
        version=settings.app_version,
        lifespan=lifespan,
    )

    store = CustomerStore()
    if count:
        store.seed(CustomerDataFactory(seed=seed).generate(num_customers=count))
    app.state.store = store
    app.state.healthy = True

    app.add_middleware(StructuredLoggingMiddleware)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(health_router)
    app.include_router(router)
    return app
