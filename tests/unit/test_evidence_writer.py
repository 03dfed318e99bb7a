"""Unit tests for evidence file naming and atomic writes."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ambient_flow.evidence.schema import CamelModel
from ambient_flow.evidence.writer import (
    FLOW_FILE_PREFIX,
    SOAK_FILE_PREFIX,
    evidence_path,
    file_safe_timestamp,
    write_evidence,
)
from ambient_flow.exceptions import EvidenceWriteError

RUN_ID = "0f1e2d3c-4b5a-6978-8a9b-0c1d2e3f4a5b"
MOMENT = datetime(2026, 3, 14, 9, 26, 53, 589000, tzinfo=timezone.utc)


class _Record(CamelModel):
    run_id: str
    patient_summary_generated: bool


class TestNaming:
    def test_file_safe_timestamp(self) -> None:
        assert file_safe_timestamp(MOMENT) == "2026-03-14T09-26-53-589Z"

    def test_auto_named_flow_file(self, tmp_path: Path) -> None:
        path = evidence_path(RUN_ID, prefix=FLOW_FILE_PREFIX, base_dir=tmp_path, moment=MOMENT)
        assert path == (tmp_path / "ambient-flow-2026-03-14T09-26-53-589Z-0f1e2d3c.json").resolve()

    def test_auto_named_soak_file(self, tmp_path: Path) -> None:
        path = evidence_path(RUN_ID, prefix=SOAK_FILE_PREFIX, base_dir=tmp_path)
        assert re.fullmatch(
            r"ambient-soak-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z-0f1e2d3c\.json", path.name
        )

    def test_override_path_wins(self, tmp_path: Path) -> None:
        override = tmp_path / "custom" / "mine.json"
        assert evidence_path(RUN_ID, output_path=override, base_dir=tmp_path / "ignored") == override.resolve()

    def test_relative_default_resolves_against_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        path = evidence_path(RUN_ID, moment=MOMENT)
        assert path.parent == (tmp_path / "compliance" / "evidence" / "ambient-flow-runs").resolve()


class TestWriteEvidence:
    def test_writes_camel_case_json_with_trailing_newline(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "dir" / "run.json"
        written = write_evidence(_Record(run_id=RUN_ID, patient_summary_generated=False), target)

        assert written == target
        text = target.read_text(encoding="utf-8")
        assert text.endswith("}\n")
        assert text.startswith("{\n  ")
        assert json.loads(text) == {"runId": RUN_ID, "patientSummaryGenerated": False}

    def test_accepts_plain_dict(self, tmp_path: Path) -> None:
        target = write_evidence({"ok": True}, tmp_path / "plain.json")
        assert json.loads(target.read_text()) == {"ok": True}

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "run.json"
        target.write_text("stale")
        write_evidence({"fresh": 1}, target)
        assert json.loads(target.read_text()) == {"fresh": 1}

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        write_evidence({"a": 1}, tmp_path / "run.json")
        assert [p.name for p in tmp_path.iterdir()] == ["run.json"]

    def test_unserializable_record_leaves_nothing(self, tmp_path: Path) -> None:
        with pytest.raises(TypeError):
            write_evidence({"bad": object()}, tmp_path / "run.json")
        assert list(tmp_path.iterdir()) == []

    def test_directory_at_target_raises_and_cleans_up(self, tmp_path: Path) -> None:
        target = tmp_path / "run.json"
        target.mkdir()

        with pytest.raises(EvidenceWriteError, match="Could not write evidence to"):
            write_evidence({"a": 1}, target)
        assert [p.name for p in tmp_path.iterdir()] == ["run.json"]
        assert target.is_dir()

    def test_file_in_place_of_parent_directory_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "runs"
        blocker.write_text("not a directory")

        with pytest.raises(EvidenceWriteError):
            write_evidence({"a": 1}, blocker / "run.json")
        assert blocker.read_text() == "not a directory"
