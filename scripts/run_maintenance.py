#!/usr/bin/env python3
"""Run one page of a campsift maintenance pass and print the JSON report.

Passes are dry runs unless ``--commit`` is given.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

import httpx

TASKS = ("within-source-dedupe", "cross-source-dedupe", "source-quality", "data-quality")


def build_payload(*, commit: bool, batch_size: int | None, cursor: str | None) -> dict[str, Any]:
    payload: dict[str, Any] = {"dry_run": not commit}
    if batch_size is not None:
        payload["batch_size"] = batch_size
    if cursor:
        payload["cursor"] = cursor
    return payload


def run_task(
    *,
    base_url: str,
    task: str,
    payload: dict[str, Any],
    timeout_seconds: float = 60.0,
    transport: httpx.BaseTransport | None = None,
) -> dict[str, Any]:
    with httpx.Client(timeout=timeout_seconds, transport=transport) as client:
        response = client.post(f"{base_url.rstrip('/')}/maintenance/{task}", json=payload)
        response.raise_for_status()
        return response.json()


def main(argv: list[str] | None = None, *, transport: httpx.BaseTransport | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run a campsift maintenance pass (dry run by default).")
    parser.add_argument("task", choices=TASKS, help="Maintenance pass to run")
    parser.add_argument(
        "--base-url",
        default=os.getenv("CS_API_BASE_URL", "http://localhost:8000"),
        help="campsift API base URL",
    )
    parser.add_argument("--commit", action="store_true", help="Apply changes instead of reporting them")
    parser.add_argument("--batch-size", type=int, default=None, help="Keys to process in this page")
    parser.add_argument("--cursor", default=None, help="Resume after this key")
    parser.add_argument(
        "--print-request",
        action="store_true",
        help="Print the request that would be sent and exit",
    )
    args = parser.parse_args(argv)

    payload = build_payload(commit=args.commit, batch_size=args.batch_size, cursor=args.cursor)
    if args.print_request:
        print(json.dumps({"task": args.task, "payload": payload}, sort_keys=True))
        return 0

    try:
        report = run_task(base_url=args.base_url, task=args.task, payload=payload, transport=transport)
    except httpx.HTTPStatusError as exc:
        print(f"maintenance request failed: {exc.response.status_code} {exc.response.text}", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"maintenance request failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(report, indent=2, sort_keys=True))
    return 0 if not report.get("failed") else 2


if __name__ == "__main__":
    sys.exit(main())
