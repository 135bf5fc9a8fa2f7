from fastapi import APIRouter, Depends, HTTPException, Query, Response, status as http_status

from vacancy_outreach.schemas.vacancies import SortDir, VacancyOut, VacancyPatchRequest, VacancyStatus
from vacancy_outreach.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
)
from vacancy_outreach.services.store import get_repository

router = APIRouter()


@router.get("", response_model=list[VacancyOut])
async def list_vacancies(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    q: str | None = Query(default=None, min_length=1),
    vacancy_status: VacancyStatus | None = Query(default=None, alias="status"),
    sort_dir: SortDir = Query(default="desc"),
    repository=Depends(get_repository),
) -> list[VacancyOut]:
    try:
        rows = await repository.list_vacancies(
            limit=limit,
            offset=offset,
            q=q,
            status=vacancy_status,
            sort_dir=sort_dir,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return [VacancyOut(**row) for row in rows]


@router.get("/{vacancy_id}", response_model=VacancyOut)
async def get_vacancy(vacancy_id: str, repository=Depends(get_repository)) -> VacancyOut:
    try:
        row = await repository.get_vacancy(vacancy_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return VacancyOut(**row)


@router.patch("/{vacancy_id}", response_model=VacancyOut)
async def patch_vacancy(
    vacancy_id: str,
    payload: VacancyPatchRequest,
    repository=Depends(get_repository),
) -> VacancyOut:
    try:
        row = await repository.update_status(vacancy_id, payload.status)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=http_status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return VacancyOut(**row)


@router.delete("/{vacancy_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_vacancy(vacancy_id: str, repository=Depends(get_repository)) -> Response:
    try:
        await repository.delete_vacancy(vacancy_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)
