from fastapi import APIRouter, Depends, HTTPException, Query, status

from campsift.schemas.sessions import (
    CandidateIn,
    SessionIngestOut,
    SessionIngestRequest,
    SessionOut,
    SessionStatus,
    ValidationResultOut,
)
from campsift.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)
from campsift.services.status import determine_session_status
from campsift.services.validation import validate_session

router = APIRouter()


@router.post("/validate", response_model=ValidationResultOut)
async def validate_candidate(payload: CandidateIn) -> ValidationResultOut:
    result = validate_session(payload.model_dump())
    session_status = determine_session_status(
        result.completeness_score,
        price_in_cents=result.normalized_data.price_in_cents,
        price_raw=result.normalized_data.price_raw,
    )
    return ValidationResultOut(**result.to_dict(), status=session_status)


@router.post("", response_model=SessionIngestOut, status_code=status.HTTP_201_CREATED)
async def ingest_session(
    payload: SessionIngestRequest,
    repository=Depends(get_repository),
) -> SessionIngestOut:
    try:
        result = await repository.record_session(
            source_id=payload.source_id,
            candidate=payload.candidate.model_dump(),
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return SessionIngestOut(**result)


@router.get("", response_model=list[SessionOut])
async def list_sessions(
    repository=Depends(get_repository),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    session_status: SessionStatus | None = Query(default=None, alias="status"),
    source_id: str | None = Query(default=None),
    visible_only: bool = Query(default=False),
) -> list[SessionOut]:
    try:
        rows = await repository.list_sessions(
            limit=limit,
            offset=offset,
            status=session_status,
            source_id=source_id,
            visible_only=visible_only,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return [SessionOut(**row) for row in rows]
