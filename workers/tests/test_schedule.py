from campsift_workers.core.config import Settings
from campsift_workers.jobs.schedule import MAINTENANCE_TASKS, TaskState, build_schedule, is_due


def test_never_run_task_is_due() -> None:
    assert is_due(TaskState(task="data-quality", interval_seconds=86400.0), now=10.0)


def test_task_waits_for_interval() -> None:
    state = TaskState(task="data-quality", interval_seconds=100.0, last_run_at=1000.0)

    assert not is_due(state, now=1099.0)
    assert is_due(state, now=1100.0)


def test_task_with_pending_cursor_is_due_immediately() -> None:
    state = TaskState(task="source-quality", interval_seconds=100.0, last_run_at=1000.0, cursor="source-9")
    assert is_due(state, now=1001.0)


def test_build_schedule_uses_configured_intervals() -> None:
    settings = Settings(cross_source_dedupe_interval_seconds=3600.0, data_quality_interval_seconds=0.0)
    schedule = {state.task: state for state in build_schedule(settings)}

    assert tuple(schedule) == MAINTENANCE_TASKS
    assert schedule["cross-source-dedupe"].interval_seconds == 3600.0
    assert schedule["within-source-dedupe"].interval_seconds == 86400.0
    assert schedule["data-quality"].interval_seconds == 1.0
