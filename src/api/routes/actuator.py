"""
Actuator endpoints.

Operational endpoints for orchestration and monitoring: health probes,
AI model information, build info and Prometheus metrics. None of them
require authentication.
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from api.dependencies import DB, AppSettings, PersistenceHealth, Transport
from models.schemas.actuator import (
    AIInfoResponse,
    ApplicationInfo,
    ComponentHealth,
    HealthResponse,
    InfoResponse,
    ModelInfo,
    ProbeResponse,
)
from utils.db_utils import check_pool_health
from utils.metrics import db_pool_connections

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Aggregate health of the database and message persistence. Answers 503 when any component is DOWN.",
    responses={
        200: {
            "description": "System health status",
            "content": {
                "application/json": {
                    "example": {
                        "status": "UP",
                        "components": {
                            "db": {"status": "UP", "details": {"poolSize": 5, "freeConnections": 4}},
                            "messagePersistence": {
                                "status": "UP",
                                "details": {"failures": 0, "lostMessages": 0, "status": "OK"},
                            },
                        },
                    }
                }
            },
        },
        503: {"description": "At least one component is DOWN"},
    },
)
async def health(db: DB, persistence_health: PersistenceHealth) -> HealthResponse | JSONResponse:
    pool_stats = await check_pool_health(db)
    db_pool_connections.labels(state="free").set(pool_stats["free_connections"])
    db_pool_connections.labels(state="used").set(pool_stats["used_connections"])

    db_component = ComponentHealth(
        status="UP" if pool_stats["healthy"] else "DOWN",
        details={
            "poolSize": pool_stats["pool_size"],
            "poolMinSize": pool_stats["pool_min_size"],
            "poolMaxSize": pool_stats["pool_max_size"],
            "freeConnections": pool_stats["free_connections"],
            "usedConnections": pool_stats["used_connections"],
        },
    )
    persistence = persistence_health.health()
    persistence_component = ComponentHealth(status=persistence["status"], details=persistence["details"])

    components = {"db": db_component, "messagePersistence": persistence_component}
    if any(c.status == "DOWN" for c in components.values()):
        overall = "DOWN"
    elif any(c.status == "WARNING" for c in components.values()):
        overall = "WARNING"
    else:
        overall = "UP"

    response = HealthResponse(status=overall, components=components)
    if overall == "DOWN":
        return JSONResponse(status_code=503, content=response.model_dump(mode="json", by_alias=True))
    return response


@router.get(
    "/health/liveness",
    response_model=ProbeResponse,
    summary="Liveness probe",
    description="Confirms the process is running.",
)
async def liveness() -> ProbeResponse:
    return ProbeResponse(status="UP")


@router.get(
    "/health/readiness",
    response_model=ProbeResponse,
    summary="Readiness probe",
    description="Ready when the database answers a trivial query.",
    responses={503: {"description": "Database unavailable"}},
)
async def readiness(db: DB) -> ProbeResponse | JSONResponse:
    try:
        async with db.acquire(timeout=5.0) as conn:
            await conn.fetchval("SELECT 1")
    except Exception as e:
        return JSONResponse(status_code=503, content={"status": "DOWN", "error": str(e)})
    return ProbeResponse(status="UP")


@router.get(
    "/aiinfo",
    response_model=AIInfoResponse,
    summary="AI model information",
    description="Configured model and the number of AI streams currently in flight.",
)
async def ai_info(transport: Transport, settings: AppSettings) -> AIInfoResponse:
    return AIInfoResponse(
        active_requests=transport.active_requests,
        model=ModelInfo(
            name=settings.ai_model,
            base_url=settings.ai_base_url,
            temperature=settings.ai_temperature,
        ),
        application_info=ApplicationInfo(name=settings.app_name, profiles=settings.active_profiles),
    )


@router.get("/info", response_model=InfoResponse, summary="Application info")
async def info(settings: AppSettings) -> InfoResponse:
    return InfoResponse(name=settings.app_name, version=settings.app_version, environment=settings.app_env)


@router.get(
    "/prometheus",
    summary="Prometheus metrics",
    response_class=Response,
    responses={200: {"content": {CONTENT_TYPE_LATEST: {}}}},
)
async def prometheus() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
