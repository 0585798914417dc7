from __future__ import annotations

import pytest

from campsift_workers.core.config import Settings
from campsift_workers.core.telemetry import setup_worker_telemetry, shutdown_worker_telemetry


def test_worker_resource_names_service_and_namespace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", raising=False)
    settings = Settings(otel_enabled=True, otel_service_name="campsift-workers-test", environment="test")

    runtime = setup_worker_telemetry(settings)
    try:
        assert runtime.enabled is True
        assert runtime.provider is not None
        attributes = runtime.provider.resource.attributes
        assert attributes["service.name"] == "campsift-workers-test"
        assert attributes["service.namespace"] == "campsift"
        assert attributes["deployment.environment"] == "test"
    finally:
        shutdown_worker_telemetry(runtime)


def test_disabled_telemetry_has_no_provider() -> None:
    runtime = setup_worker_telemetry(Settings(otel_enabled=False))

    assert runtime.enabled is False
    assert runtime.provider is None
    shutdown_worker_telemetry(runtime)
