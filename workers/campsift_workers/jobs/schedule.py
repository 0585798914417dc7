from __future__ import annotations

from dataclasses import dataclass

from campsift_workers.core.config import Settings

MAINTENANCE_TASKS: tuple[str, ...] = (
    "within-source-dedupe",
    "cross-source-dedupe",
    "source-quality",
    "data-quality",
)


@dataclass(slots=True)
class TaskState:
    task: str
    interval_seconds: float
    last_run_at: float | None = None
    cursor: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.cursor is not None


def is_due(state: TaskState, now: float) -> bool:
    if state.in_progress or state.last_run_at is None:
        return True
    return now - state.last_run_at >= state.interval_seconds


def build_schedule(settings: Settings) -> list[TaskState]:
    intervals = {
        "within-source-dedupe": settings.within_source_dedupe_interval_seconds,
        "cross-source-dedupe": settings.cross_source_dedupe_interval_seconds,
        "source-quality": settings.source_quality_interval_seconds,
        "data-quality": settings.data_quality_interval_seconds,
    }
    return [TaskState(task=task, interval_seconds=max(1.0, intervals[task])) for task in MAINTENANCE_TASKS]
