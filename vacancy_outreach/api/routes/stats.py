from fastapi import APIRouter, Depends, HTTPException, Request, status as http_status

from vacancy_outreach.jobs.pipeline import PipelineStats
from vacancy_outreach.schemas.vacancies import StatsOut
from vacancy_outreach.services.repository import RepositoryUnavailableError
from vacancy_outreach.services.store import get_repository

router = APIRouter()


@router.get("/stats", response_model=StatsOut)
async def stats(request: Request, repository=Depends(get_repository)) -> StatsOut:
    runtime = getattr(request.app.state, "runtime", None)
    pipeline_stats = runtime.orchestrator.stats if runtime is not None else PipelineStats()
    try:
        by_status = await repository.count_by_status()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return StatsOut(pipeline=pipeline_stats.as_dict(), vacancies_by_status=by_status)
