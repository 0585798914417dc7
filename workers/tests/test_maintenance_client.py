from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from campsift_workers.services.maintenance_client import MaintenanceClient


def test_run_task_posts_batch_options() -> None:
    seen: list[tuple[str, dict[str, Any]]] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append((str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"processed": 3, "is_done": True}, request=request)

    client = MaintenanceClient("http://api.test/", transport=httpx.MockTransport(handler))
    report = asyncio.run(client.run_task("data-quality", dry_run=False, batch_size=25, cursor="abc"))

    assert report == {"processed": 3, "is_done": True}
    assert seen == [
        (
            "http://api.test/maintenance/data-quality",
            {"dry_run": False, "batch_size": 25, "cursor": "abc"},
        )
    ]


def test_run_task_raises_on_error_status() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "database unavailable"}, request=request)

    client = MaintenanceClient("http://api.test", transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.run_task("source-quality", dry_run=True, batch_size=10))


def test_healthz() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/healthz"
        return httpx.Response(200, json={"status": "ok"}, request=request)

    client = MaintenanceClient("http://api.test", transport=httpx.MockTransport(handler))
    assert asyncio.run(client.healthz()) is True


def test_healthz_is_false_when_api_is_unreachable() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = MaintenanceClient("http://api.test", transport=httpx.MockTransport(handler))
    assert asyncio.run(client.healthz()) is False
