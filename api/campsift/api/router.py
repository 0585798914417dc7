from fastapi import APIRouter

from campsift.api.routes import alerts, health, maintenance, sessions, sources

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["ingest"])
api_router.include_router(sources.router, prefix="/sources", tags=["sources"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["data-quality"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["maintenance"])
