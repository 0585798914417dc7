from __future__ import annotations

from typing import Any

import httpx


class MaintenanceClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def run_task(
        self,
        task: str,
        *,
        dry_run: bool,
        batch_size: int,
        cursor: str | None = None,
    ) -> dict[str, Any]:
        payload = {"dry_run": dry_run, "batch_size": batch_size, "cursor": cursor}
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            response = await client.post(f"{self.base_url}/maintenance/{task}", json=payload)
            response.raise_for_status()
            return response.json()

    async def healthz(self) -> bool:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            try:
                response = await client.get(f"{self.base_url}/healthz")
            except httpx.TransportError:
                return False
            return response.status_code == 200
