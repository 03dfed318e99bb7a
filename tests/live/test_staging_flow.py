"""Live test: one real ambient flow against a staging deployment.

Requires AMBIENT_FLOW_BASE_URL, AMBIENT_FLOW_TENANT_ID, AMBIENT_FLOW_EMAIL and
AMBIENT_FLOW_PASSWORD. The note is approved but not applied to the encounter.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ambient_flow.config import RunConfig, validate_run_config
from ambient_flow.flow.orchestrator import FlowOrchestrator
from tests.fixtures.audio import generate_silence_wav
from tests.live.conftest import skip_no_staging

pytestmark = [pytest.mark.live, skip_no_staging]


@pytest.fixture
def live_config(staging_config: RunConfig, tmp_path: Path) -> RunConfig:
    audio = staging_config.audio_path
    if not Path(audio).is_file():
        audio = generate_silence_wav(tmp_path / "live.wav", duration_seconds=2.0)
    return staging_config.model_copy(
        update={"audio_path": audio, "skip_apply": True, "output_path": tmp_path / "live-evidence.json"}
    )


def test_flow_completes_and_writes_evidence(live_config: RunConfig) -> None:
    validate_run_config(live_config)

    result = FlowOrchestrator(live_config).run()

    document = json.loads(result.output_path.read_text(encoding="utf-8"))
    assert document["flow"]["transcriptStatus"] == "completed"
    assert document["flow"]["noteGenerationStatus"] == "completed"
    assert document["flow"]["noteAppliedToEncounter"] is False
    assert document["quality"]["score"]["total"] == 9
    assert live_config.password not in result.output_path.read_text(encoding="utf-8")
