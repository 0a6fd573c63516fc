import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import optimize
from app.config import settings
from app.core.logging import RequestLoggingMiddleware, setup_logging
from app.services.dataset_store import load_dataset_store
from engine.expansion.solver import initialize_solver, reset_solver

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    setup_logging(json_format=settings.log_json)
    app.state.datasets = load_dataset_store()
    initialize_solver(settings.solver_time_limit)
    logger.info(
        "%s ready (regions: %s)", settings.app_name, ", ".join(app.state.datasets.regions) or "none"
    )
    yield
    reset_solver()


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware)

    application.include_router(optimize.router, prefix="/api/v1", tags=["optimize"])

    return application


app = create_app()
