"""Integration test: soak runs driven through the CLI against requests-mock."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ambient_flow import cli
from ambient_flow.config import RunConfig, SoakConfig
from ambient_flow.soak.harness import SoakHarness
from tests.fixtures.ambient_api import BASE_URL, TENANT_ID, make_note, register_happy_path
from tests.fixtures.clock import FakeClock

pytestmark = pytest.mark.integration

SOAK_DIR = Path("compliance") / "evidence" / "ambient-soak-runs"
FLOW_DIR = Path("compliance") / "evidence" / "ambient-flow-runs"


def _soak_argv(audio_file: Path, *extra: str) -> list[str]:
    return [
        "soak",
        "--base-url", BASE_URL,
        "--tenant-id", TENANT_ID,
        "--email", "provider@example.com",
        "--password", "s3cret-pass",
        "--audio-path", str(audio_file),
        "--delay-ms", "0",
        *extra,
    ]


def _only_summary(root: Path) -> dict:
    (summary_file,) = (root / SOAK_DIR).glob("ambient-soak-*.json")
    return json.loads(summary_file.read_text(encoding="utf-8"))


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestSoakCli:
    def test_login_failure_stops_after_first_iteration(self, api_mock, audio_file: Path, workdir: Path, capsys) -> None:
        api_mock.post(f"{BASE_URL}/api/auth/login", status_code=500, json={"error": "Login failed"})

        exit_code = cli.main(_soak_argv(audio_file, "--iterations", "3"), environ={})

        assert exit_code == 1
        summary = _only_summary(workdir)
        assert summary["totals"]["attempted"] == 1
        assert summary["totals"]["failed"] == 1
        assert summary["totals"]["allChecksPassed"] is False
        assert summary["iterations"][0]["failureReason"] == "500: Login failed"
        assert "All checks passed: false" in capsys.readouterr().out

    def test_all_iterations_pass(self, api_mock, audio_file: Path, workdir: Path, capsys) -> None:
        register_happy_path(api_mock)

        exit_code = cli.main(_soak_argv(audio_file, "--iterations", "2"), environ={})

        assert exit_code == 0
        summary = _only_summary(workdir)
        assert summary["totals"]["attempted"] == 2
        assert summary["totals"]["succeeded"] == 2
        assert summary["totals"]["rubricPassed"] == 2
        assert summary["totals"]["patientSummaryGenerated"] == 2
        assert summary["totals"]["allChecksPassed"] is True
        assert summary["config"]["iterations"] == 2
        assert "s3cret-pass" not in json.dumps(summary)
        assert len(list((workdir / FLOW_DIR).glob("ambient-flow-*.json"))) == 2
        for item in summary["iterations"]:
            assert Path(item["evidencePath"]).is_file()
        out = capsys.readouterr().out
        assert "All checks passed: true" in out
        assert "Summary file:" in out

    def test_rubric_failure_is_enforced_by_default(self, api_mock, audio_file: Path, workdir: Path) -> None:
        register_happy_path(api_mock, note=make_note(plan=""))

        exit_code = cli.main(_soak_argv(audio_file, "--iterations", "2"), environ={})

        assert exit_code == 1
        summary = _only_summary(workdir)
        assert summary["totals"]["attempted"] == 1
        assert summary["iterations"][0]["failureReason"] == "Rubric checks failed (8/9)"

    def test_rubric_enforcement_can_be_disabled(self, api_mock, audio_file: Path, workdir: Path) -> None:
        register_happy_path(api_mock, note=make_note(plan=""))

        exit_code = cli.main(_soak_argv(audio_file, "--iterations", "2", "--no-enforce-rubric"), environ={})

        assert exit_code == 0
        assert _only_summary(workdir)["totals"]["rubricPassed"] == 0

    def test_patient_summary_enforcement_from_env(self, api_mock, audio_file: Path, workdir: Path) -> None:
        register_happy_path(api_mock, summary_response={"status_code": 503, "json": {"error": "Unavailable"}})

        exit_code = cli.main(
            _soak_argv(audio_file, "--iterations", "1"),
            environ={"AMBIENT_SOAK_ENFORCE_PATIENT_SUMMARY": "true"},
        )

        assert exit_code == 1
        assert _only_summary(workdir)["iterations"][0]["failureReason"] == "Patient summary was not generated"

    def test_continue_on_failure(self, api_mock, audio_file: Path, workdir: Path) -> None:
        register_happy_path(api_mock)
        api_mock.post(
            f"{BASE_URL}/api/auth/login",
            [
                {"status_code": 500, "json": {"error": "Login failed"}},
                {"json": {"tokens": {"accessToken": "t"}, "user": {"id": "u-1", "role": "provider"}}},
            ],
        )

        exit_code = cli.main(_soak_argv(audio_file, "--iterations", "3", "--continue-on-failure"), environ={})

        assert exit_code == 1
        totals = _only_summary(workdir)["totals"]
        assert (totals["attempted"], totals["succeeded"], totals["failed"]) == (3, 2, 1)

    def test_summary_output_path(self, api_mock, audio_file: Path, workdir: Path) -> None:
        register_happy_path(api_mock)
        target = workdir / "reports" / "soak.json"

        exit_code = cli.main(
            _soak_argv(audio_file, "--iterations", "1", "--summary-output-path", str(target)), environ={}
        )

        assert exit_code == 0
        assert json.loads(target.read_text())["totals"]["succeeded"] == 1
        assert not (workdir / SOAK_DIR).exists()


class TestSoakHarnessWithMockApi:
    def test_averages_and_delay(self, api_mock, run_config: RunConfig, fake_clock: FakeClock, tmp_path: Path) -> None:
        register_happy_path(api_mock)
        config = SoakConfig(
            run=run_config.model_copy(update={"output_path": None}),
            iterations=2,
            delay_ms=1500,
            summary_output_path=tmp_path / "summary.json",
        )

        result = SoakHarness(
            config,
            evidence_dir=tmp_path / "runs",
            clock=fake_clock,
            sleep=fake_clock.sleep,
        ).run()

        assert fake_clock.sleeps == [1.5]
        assert len(list((tmp_path / "runs").glob("*.json"))) == 2
        totals = result.summary.totals
        assert totals.all_checks_passed is True
        # Nothing was waited on inside the runs, so there is nothing to average.
        assert totals.average_total_ms == 0
        assert totals.average_transcription_wait_ms == 0
