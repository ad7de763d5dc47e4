"""Pytest configuration and shared fixtures for sidecar tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from sidecar.source import DirectorySource

from mocks import StubDelivery


@pytest.fixture
def watched_dir(tmp_path: Path) -> Path:
    """Create an empty watched directory."""
    directory = tmp_path / "telemetry"
    directory.mkdir()
    return directory


@pytest.fixture
def write_file(watched_dir: Path) -> Callable[[str, bytes | str], Path]:
    """Return a helper that writes a named record file into the watched directory."""

    def _write(name: str, content: bytes | str) -> Path:
        path = watched_dir / name
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_bytes(content)
        return path

    return _write


@pytest.fixture
def source(watched_dir: Path) -> DirectorySource:
    """Return a DirectorySource over the watched directory."""
    return DirectorySource(watched_dir)


@pytest.fixture
def delivery() -> StubDelivery:
    """Return a delivery double that accepts every batch."""
    return StubDelivery()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove SIDECAR_* variables so tests see a known environment."""
    for name in (
        "SIDECAR_DIRECTORY",
        "SIDECAR_ENDPOINT",
        "SIDECAR_FLUSH_INTERVAL",
        "SIDECAR_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def sample_record() -> dict:
    """Return a sample access-log telemetry record."""
    return {
        "contextReporterKind": "inbound",
        "destinationUID": "kubernetes://istio-policy-74d6c8b4d5-mmr49.istio-system",
        "requestID": "6e544e82-2a0c-4b83-abcc-0f62b89cdf3f",
        "requestMethod": "POST",
        "requestPath": "/istio.mixer.v1.Mixer/Check",
        "requestTotalSize": "2748",
        "responseCode": "200",
        "responseDurationNanoSec": "695653",
        "responseTotalSize": "199",
        "sourceUID": "kubernetes://pet-be--controller-deployment-6f6f5768dc-n9jf7.default",
        "spanID": "ae295f3a4bbbe537",
        "traceID": "b55a0f7f20d36e49f8612bac4311791d",
    }


@pytest.fixture
def sample_line(sample_record: dict) -> str:
    """Return the sample record serialized as one JSON line."""
    return json.dumps(sample_record)
