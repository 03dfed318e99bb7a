"""Skip guards for live tests.

Live tests run the real flow against a staging deployment and write real
evidence files. They skip when credentials are absent; they never fail due to
missing config.

Required environment variables:
  AMBIENT_FLOW_BASE_URL    Staging API base URL
  AMBIENT_FLOW_TENANT_ID   Tenant to run in
  AMBIENT_FLOW_EMAIL       Provider or admin login
  AMBIENT_FLOW_PASSWORD    Password for that login
  AMBIENT_FLOW_AUDIO_PATH  Optional, defaults to the bundled silent WAV

Set them in your shell before running:
  export AMBIENT_FLOW_BASE_URL=https://staging.example.com
  pytest tests/live -v -m live
"""

from __future__ import annotations

import os

import pytest

from ambient_flow.config import RunConfig, resolve_run_config

REQUIRED_ENV = (
    "AMBIENT_FLOW_BASE_URL",
    "AMBIENT_FLOW_TENANT_ID",
    "AMBIENT_FLOW_EMAIL",
    "AMBIENT_FLOW_PASSWORD",
)

skip_no_staging = pytest.mark.skipif(
    not all(os.environ.get(name) for name in REQUIRED_ENV),
    reason="Set " + ", ".join(REQUIRED_ENV) + " to run live staging tests",
)


@pytest.fixture(scope="session")
def staging_config() -> RunConfig:
    missing = [name for name in REQUIRED_ENV if not os.environ.get(name)]
    if missing:
        pytest.skip(f"{', '.join(missing)} not set")
    return resolve_run_config({}, os.environ)
