from __future__ import annotations

import importlib.util
import json
import subprocess
import sys
from pathlib import Path
from types import ModuleType

import httpx
import pytest

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "run_maintenance.py"


def _load_script() -> ModuleType:
    spec = importlib.util.spec_from_file_location("run_maintenance", SCRIPT_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _run_script(*args: str) -> str:
    completed = subprocess.run(
        [sys.executable, str(SCRIPT_PATH), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


def test_script_defaults_to_dry_run() -> None:
    output = json.loads(_run_script("data-quality", "--print-request"))

    assert output == {"payload": {"dry_run": True}, "task": "data-quality"}


def test_script_commit_flag_and_paging_options() -> None:
    output = json.loads(
        _run_script("within-source-dedupe", "--commit", "--batch-size", "25", "--cursor", "abc", "--print-request")
    )

    assert output["payload"] == {"dry_run": False, "batch_size": 25, "cursor": "abc"}


def test_script_posts_to_maintenance_endpoint(capsys: pytest.CaptureFixture[str]) -> None:
    module = _load_script()
    seen: list[tuple[str, dict[str, object]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(
            200,
            json={"task": "source-quality", "dry_run": True, "processed": 2, "failed": 0, "is_done": True},
            request=request,
        )

    exit_code = module.main(
        ["source-quality", "--base-url", "http://api.test/"],
        transport=httpx.MockTransport(handler),
    )

    assert exit_code == 0
    assert seen == [("/maintenance/source-quality", {"dry_run": True})]
    assert json.loads(capsys.readouterr().out)["processed"] == 2


def test_script_reports_http_errors(capsys: pytest.CaptureFixture[str]) -> None:
    module = _load_script()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "database unavailable"}, request=request)

    exit_code = module.main(["data-quality", "--base-url", "http://api.test"], transport=httpx.MockTransport(handler))

    assert exit_code == 1
    assert "503" in capsys.readouterr().err
