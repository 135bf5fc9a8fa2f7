from fastapi import APIRouter

from vacancy_outreach.api.routes import health, stats, vacancies

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(stats.router, tags=["health"])
api_router.include_router(vacancies.router, prefix="/vacancies", tags=["vacancies"])
