from fastapi import APIRouter, Depends, HTTPException, status

from campsift.schemas.sources import ScrapeRunRequest, SourceOut, SourceQualityOut
from campsift.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    get_repository,
)

router = APIRouter()


@router.post("/{source_id}/runs", response_model=SourceOut)
async def record_scrape_run(
    source_id: str,
    payload: ScrapeRunRequest,
    repository=Depends(get_repository),
) -> SourceOut:
    try:
        row = await repository.record_scrape_run(
            source_id=source_id,
            success=payload.success,
            error=payload.error,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return SourceOut(**row)


@router.get("/{source_id}/quality", response_model=SourceQualityOut)
async def get_source_quality(source_id: str, repository=Depends(get_repository)) -> SourceQualityOut:
    try:
        row = await repository.get_source_quality(source_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return SourceQualityOut(**row)
