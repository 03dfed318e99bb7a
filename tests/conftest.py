"""Shared pytest fixtures and test markers.

Test tiers
----------
  unit        Fast, fully offline. Pure functions and single components.

  integration Full flow and soak runs against requests-mock. No real
              network calls; sleeps are replaced by a fake clock.

  quality     Property-based (Hypothesis) checks of masking and rubric
              invariants.

  live        Real staging target. Skipped unless AMBIENT_FLOW_BASE_URL and
              credentials are set. See tests/live/conftest.py.

Run specific tiers:
  pytest tests/unit tests/integration tests/quality   # offline only
  pytest tests/live -m live                           # live only
  pytest tests/ -v                                    # everything
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest
import requests_mock as req_mock

from ambient_flow.config import RunConfig
from ambient_flow.logging_config import LOGGER_NAME
from tests.fixtures.ambient_api import BASE_URL, TENANT_ID
from tests.fixtures.audio import generate_silence_wav
from tests.fixtures.clock import FakeClock


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast offline unit tests")
    config.addinivalue_line("markers", "integration: mock-based integration tests")
    config.addinivalue_line("markers", "quality: property-based invariants")
    config.addinivalue_line("markers", "live: requires a real staging target (skipped by default)")


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_ambient_env(monkeypatch: pytest.MonkeyPatch, request: pytest.FixtureRequest) -> None:
    """Keep developer shell variables out of offline tests."""
    if request.node.get_closest_marker("live"):
        return
    for key in list(os.environ):
        if key.startswith(("AMBIENT_FLOW_", "AMBIENT_SOAK_")) or key == "TENANT_HEADER":
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Audio + config
# ---------------------------------------------------------------------------

@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    return generate_silence_wav(tmp_path / "visit.wav")


@pytest.fixture
def run_config(audio_file: Path, tmp_path: Path) -> RunConfig:
    return RunConfig(
        base_url=BASE_URL,
        tenant_id=TENANT_ID,
        email="provider@example.com",
        password="s3cret-pass",
        audio_path=audio_file,
        duration_seconds=45,
        timeout_ms=10_000,
        poll_interval_ms=500,
        output_path=tmp_path / "evidence" / "run.json",
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_mock():
    with req_mock.Mocker() as m:
        yield m


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """CLI runs attach a handler bound to the captured stderr; drop it afterwards."""
    yield
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.handlers = []
    package_logger.setLevel(logging.NOTSET)
