from fastapi import APIRouter, Depends, HTTPException, Query, status

from campsift.schemas.alerts import AlertOut
from campsift.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)

router = APIRouter()


@router.get("", response_model=list[AlertOut])
async def list_alerts(
    repository=Depends(get_repository),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    source_id: str | None = Query(default=None),
    open_only: bool = Query(default=True),
) -> list[AlertOut]:
    try:
        rows = await repository.list_alerts(limit=limit, offset=offset, source_id=source_id, open_only=open_only)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return [AlertOut(**row) for row in rows]


@router.post("/{alert_id}/acknowledge", response_model=AlertOut)
async def acknowledge_alert(alert_id: str, repository=Depends(get_repository)) -> AlertOut:
    try:
        row = await repository.acknowledge_alert(alert_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return AlertOut(**row)
