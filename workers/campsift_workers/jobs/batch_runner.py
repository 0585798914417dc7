from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from campsift_workers.jobs.schedule import TaskState

logger = logging.getLogger(__name__)


class MaintenanceRunner(Protocol):
    async def run_task(
        self,
        task: str,
        *,
        dry_run: bool,
        batch_size: int,
        cursor: str | None = None,
    ) -> dict[str, Any]: ...


@dataclass(slots=True)
class DrainOutcome:
    task: str
    batches: int = 0
    processed: int = 0
    failed: int = 0
    completed: bool = False
    errors: list[dict[str, Any]] = field(default_factory=list)


async def drain_task(
    client: MaintenanceRunner,
    state: TaskState,
    *,
    batch_size: int,
    max_batches: int,
    dry_run: bool,
    now: float,
) -> DrainOutcome:
    """Page through one maintenance task until it reports done or the page budget runs out.

    ``state.cursor`` advances after every committed page, so a failure part
    way through resumes from the last good page on the next cycle.
    """
    outcome = DrainOutcome(task=state.task)
    for _ in range(max(1, max_batches)):
        report = await client.run_task(
            state.task,
            dry_run=dry_run,
            batch_size=batch_size,
            cursor=state.cursor,
        )
        outcome.batches += 1
        outcome.processed += int(report.get("processed", 0))
        outcome.failed += int(report.get("failed", 0))
        errors = report.get("errors")
        if isinstance(errors, list):
            outcome.errors.extend(item for item in errors if isinstance(item, dict))

        if report.get("is_done", True):
            state.cursor = None
            state.last_run_at = now
            outcome.completed = True
            break
        next_cursor = report.get("next_cursor")
        if not next_cursor or next_cursor == state.cursor:
            logger.warning("maintenance task=%s returned no cursor progress; stopping run", state.task)
            state.cursor = None
            state.last_run_at = now
            break
        state.cursor = next_cursor

    if outcome.failed:
        logger.warning(
            "maintenance task=%s finished with failed=%s errors=%s",
            state.task,
            outcome.failed,
            outcome.errors[:5],
        )
    return outcome
