import logging

from fastapi import APIRouter, Depends, HTTPException, status

from campsift.core.config import get_settings
from campsift.schemas.maintenance import BatchReportOut, MaintenanceRequest, MaintenanceTask
from campsift.services.batches import BatchOptions
from campsift.services.repository import (
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)

router = APIRouter()
logger = logging.getLogger(__name__)

_TASK_METHODS: dict[str, str] = {
    "within-source-dedupe": "run_within_source_dedupe",
    "cross-source-dedupe": "run_cross_source_dedupe",
    "source-quality": "run_source_quality",
    "data-quality": "run_data_quality",
}


@router.post("/{task}", response_model=BatchReportOut)
async def run_maintenance(
    task: MaintenanceTask,
    payload: MaintenanceRequest,
    repository=Depends(get_repository),
) -> BatchReportOut:
    settings = get_settings()
    options = BatchOptions(
        dry_run=payload.dry_run,
        batch_size=payload.batch_size or settings.maintenance_default_batch_size,
        cursor=payload.cursor,
    )
    runner = getattr(repository, _TASK_METHODS[task])
    try:
        report = await runner(options)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    logger.info(
        "maintenance task=%s dry_run=%s processed=%s failed=%s next_cursor=%s",
        task,
        report.dry_run,
        report.processed,
        report.failed,
        report.next_cursor,
    )
    return BatchReportOut(**report.to_dict())
