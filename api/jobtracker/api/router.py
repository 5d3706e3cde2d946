from fastapi import APIRouter

from jobtracker.api.routes import health, jobs

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
