from typing import Any, Literal

from pydantic import BaseModel, Field

MaintenanceTask = Literal["within-source-dedupe", "cross-source-dedupe", "source-quality", "data-quality"]


class MaintenanceRequest(BaseModel):
    dry_run: bool = True
    batch_size: int | None = Field(default=None, ge=1)
    cursor: str | None = None


class BatchFailureOut(BaseModel):
    key: str
    error: str


class BatchReportOut(BaseModel):
    task: MaintenanceTask
    dry_run: bool
    processed: int
    succeeded: int
    failed: int
    errors: list[BatchFailureOut] = Field(default_factory=list)
    next_cursor: str | None = None
    is_done: bool
    details: dict[str, Any] = Field(default_factory=dict)
