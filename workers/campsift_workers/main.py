from __future__ import annotations

import asyncio
import logging
import random
import time

from opentelemetry import trace

from campsift_workers.core.config import Settings, get_settings
from campsift_workers.core.telemetry import (
    configure_worker_logging,
    setup_worker_telemetry,
    shutdown_worker_telemetry,
)
from campsift_workers.jobs.batch_runner import MaintenanceRunner, drain_task
from campsift_workers.jobs.schedule import TaskState, build_schedule, is_due
from campsift_workers.services.maintenance_client import MaintenanceClient

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def run_due_tasks(
    client: MaintenanceRunner,
    schedule: list[TaskState],
    settings: Settings,
    *,
    now: float,
) -> int:
    ran = 0
    for state in schedule:
        if not is_due(state, now):
            continue
        with tracer.start_as_current_span("worker.maintenance_task") as task_span:
            task_span.set_attribute("maintenance.task", state.task)
            task_span.set_attribute("maintenance.resumed", state.cursor is not None)
            outcome = await drain_task(
                client,
                state,
                batch_size=settings.maintenance_batch_size,
                max_batches=settings.max_batches_per_run,
                dry_run=settings.maintenance_dry_run,
                now=now,
            )
            task_span.set_attribute("maintenance.batches", outcome.batches)
            task_span.set_attribute("maintenance.failed", outcome.failed)
        logger.info(
            "maintenance task=%s batches=%s processed=%s failed=%s completed=%s",
            state.task,
            outcome.batches,
            outcome.processed,
            outcome.failed,
            outcome.completed,
        )
        ran += 1
    return ran


async def run_worker() -> None:
    settings = get_settings()
    configure_worker_logging()
    telemetry_runtime = setup_worker_telemetry(settings)
    client = MaintenanceClient(settings.api_base_url, timeout_seconds=settings.request_timeout_seconds)
    schedule = build_schedule(settings)
    if not await client.healthz():
        logger.warning("maintenance api not reachable at %s; tasks retry with backoff", settings.api_base_url)

    backoff = settings.poll_interval_seconds

    try:
        while True:
            try:
                with tracer.start_as_current_span("worker.poll_cycle"):
                    await run_due_tasks(client, schedule, settings, now=time.monotonic())
                backoff = settings.poll_interval_seconds
                await asyncio.sleep(settings.poll_interval_seconds)
            except Exception as exc:  # pragma: no cover - bootstrap robustness
                jitter = random.uniform(0.0, 0.5)
                sleep_for = min(backoff * (2.0 + jitter), settings.max_backoff_seconds)
                logger.exception("worker iteration failed: %s; retry in %.1fs", exc, sleep_for)
                await asyncio.sleep(sleep_for)
                backoff = sleep_for
    finally:
        shutdown_worker_telemetry(telemetry_runtime)


if __name__ == "__main__":
    asyncio.run(run_worker())
