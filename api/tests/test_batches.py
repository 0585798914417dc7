from __future__ import annotations

import asyncio

import pytest

from campsift.services.batches import BatchOptions, BatchReport, page_keys, process_keys
from campsift.services.repository import BATCH_ISOLATED_ERRORS, RepositoryNotFoundError


def test_batch_options_default_to_dry_run_and_are_bounded() -> None:
    assert BatchOptions().dry_run is True
    assert BatchOptions(batch_size=10_000).bounded().batch_size == 500
    assert BatchOptions(batch_size=0).bounded().batch_size == 1
    assert BatchOptions(batch_size=80).bounded(maximum=25).batch_size == 25
    assert BatchOptions(cursor="   ").bounded().cursor is None
    assert BatchOptions(cursor=" abc ").bounded().cursor == "abc"


def test_page_keys_reports_resume_cursor() -> None:
    assert page_keys(["a", "b", "c"], 2) == (["a", "b"], "b", False)
    assert page_keys(["a", "b"], 2) == (["a", "b"], None, True)
    assert page_keys([], 2) == ([], None, True)


def test_process_keys_isolates_row_failures() -> None:
    seen: list[str] = []

    async def handler(key: str) -> None:
        if key == "b":
            raise RepositoryNotFoundError("source not found")
        seen.append(key)

    report = asyncio.run(
        process_keys(
            ["a", "b", "c"],
            handler,
            report=BatchReport(task="source-quality", dry_run=False),
            isolated_errors=BATCH_ISOLATED_ERRORS,
        )
    )

    assert seen == ["a", "c"]
    assert (report.processed, report.succeeded, report.failed) == (3, 2, 1)
    assert report.to_dict()["errors"] == [{"key": "b", "error": "source not found"}]


def test_process_keys_propagates_unexpected_errors() -> None:
    async def handler(key: str) -> None:
        raise ValueError(key)

    with pytest.raises(ValueError):
        asyncio.run(
            process_keys(
                ["a"],
                handler,
                report=BatchReport(task="data-quality", dry_run=True),
                isolated_errors=BATCH_ISOLATED_ERRORS,
            )
        )


def test_report_details_accumulate() -> None:
    report = BatchReport(task="data-quality", dry_run=True)
    report.add_detail("issues_found", 2)
    report.add_detail("issues_found")

    assert report.details == {"issues_found": 3}
