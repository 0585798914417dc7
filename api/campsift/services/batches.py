from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
MAX_BATCH_SIZE = 500


@dataclass(slots=True)
class BatchOptions:
    dry_run: bool = True
    batch_size: int = DEFAULT_BATCH_SIZE
    cursor: str | None = None

    def bounded(self, *, maximum: int = MAX_BATCH_SIZE) -> BatchOptions:
        cursor = self.cursor.strip() if isinstance(self.cursor, str) else None
        return BatchOptions(
            dry_run=self.dry_run,
            batch_size=max(1, min(self.batch_size, maximum)),
            cursor=cursor or None,
        )


@dataclass(slots=True)
class BatchFailure:
    key: str
    error: str


@dataclass(slots=True)
class BatchReport:
    task: str
    dry_run: bool
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[BatchFailure] = field(default_factory=list)
    next_cursor: str | None = None
    is_done: bool = True
    details: dict[str, Any] = field(default_factory=dict)

    def record_success(self) -> None:
        self.processed += 1
        self.succeeded += 1

    def record_failure(self, key: str, exc: BaseException) -> None:
        self.processed += 1
        self.failed += 1
        self.errors.append(BatchFailure(key=key, error=str(exc) or exc.__class__.__name__))

    def add_detail(self, name: str, amount: int = 1) -> None:
        self.details[name] = int(self.details.get(name, 0)) + amount

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def page_keys(keys: Sequence[str], batch_size: int) -> tuple[list[str], str | None, bool]:
    """Split a fetched key window into the page to process and the resume cursor.

    Callers fetch ``batch_size + 1`` keys past the cursor so that a full last
    page is not mistaken for an unfinished one.
    """
    page = list(keys[:batch_size])
    is_done = len(keys) <= batch_size
    next_cursor = None if is_done or not page else page[-1]
    return page, next_cursor, is_done


async def process_keys(
    keys: Sequence[str],
    handler: Callable[[str], Awaitable[None]],
    *,
    report: BatchReport,
    isolated_errors: tuple[type[BaseException], ...],
) -> BatchReport:
    for key in keys:
        try:
            await handler(key)
        except isolated_errors as exc:
            report.record_failure(key, exc)
            logger.exception("maintenance task=%s failed for key=%s", report.task, key)
            continue
        report.record_success()
    return report
