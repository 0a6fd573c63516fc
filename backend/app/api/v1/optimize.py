import logging

from fastapi import APIRouter, HTTPException, Query, Request, status

from app.config import settings
from app.schemas.optimize import (
    HealthResponse,
    OptimizeRequest,
    OptimizeResponse,
    TechnologyResponse,
    WeekConfigResponse,
)
from app.services.dataset_store import DatasetStore
from engine.expansion.annualize import capacity_unit
from engine.expansion.catalog import TechnologyCatalog, apply_cost_projection, default_catalog
from engine.expansion.errors import CatalogError, SolverNotReadyError, SolverStatusError
from engine.expansion.optimizer import optimize_capacity
from engine.expansion.solver import get_solver

logger = logging.getLogger(__name__)

router = APIRouter()


def _dataset_store(request: Request) -> DatasetStore:
    store = getattr(request.app.state, "datasets", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Data not loaded",
        )
    return store


# Endpoints are sync so FastAPI runs each solve in its threadpool.


@router.post(
    "/optimize",
    response_model=OptimizeResponse,
    summary="Optimise capacity mix",
    description=(
        "Size every enabled technology and dispatch it hour by hour over the "
        "region's representative weeks at least total annualised cost."
    ),
)
def optimize(body: OptimizeRequest, request: Request):
    if body.techs is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing techs")
    if not get_solver().ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Solver not ready"
        )

    store = _dataset_store(request)

    try:
        catalog = TechnologyCatalog.from_dict(body.techs)
        if body.cost_year is not None:
            catalog = apply_cost_projection(catalog, body.cost_year)
        weeks = store.weeks_for(body.region, body.demand_profile)
        logger.info(
            "Optimising %d technologies for region %s (%d weeks, min renewables %.1f%%)",
            len(catalog.enabled()), store.resolve_region(body.region), len(weeks),
            body.min_renewables,
            extra={"region": body.region, "n_techs": len(catalog.enabled())},
        )
        result = optimize_capacity(
            catalog,
            weeks,
            min_renewables=body.min_renewables,
            options=settings.model_options(),
        )
    except CatalogError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    except SolverNotReadyError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Solver not ready"
        )
    except SolverStatusError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    except Exception:
        logger.exception("Optimization failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Optimization failed"
        )

    return result.to_dict()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health",
    description="Report whether regional data is loaded and the solver is initialised.",
)
def health(request: Request):
    store = getattr(request.app.state, "datasets", None)
    return {
        "status": "ok",
        "data_loaded": bool(store and store.data_loaded),
        "solver_ready": get_solver().ready,
        "regions": store.regions if store else [],
    }


@router.get(
    "/weeks",
    response_model=dict[str, list[WeekConfigResponse]],
    summary="Representative weeks",
    description="Return the representative-week configuration for each region.",
)
def list_weeks(request: Request):
    return _dataset_store(request).all_configs()


@router.get(
    "/technologies",
    response_model=list[TechnologyResponse],
    summary="Default technologies",
    description=(
        "Return the built-in technology catalog, optionally with solar, wind "
        "and battery costs projected to a year between 2025 and 2050."
    ),
)
def list_technologies(cost_year: float | None = Query(default=None, ge=2025, le=2050)):
    catalog = default_catalog()
    if cost_year is not None:
        catalog = apply_cost_projection(catalog, cost_year)
    return [{**t.to_dict(), "capacity_unit": capacity_unit(t)} for t in catalog.technologies]
