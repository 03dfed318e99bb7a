"""Models for soak runs."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from ..evidence.schema import CamelModel
from ..flow.models import EnvironmentInfo, FlowTimings, RubricScore


class SoakIteration(CamelModel):
    """One attempt of the flow inside a soak.

    Evidence-derived fields are only set when the flow itself completed.
    """

    iteration: int
    started_at: str
    finished_at: str
    elapsed_ms: int
    success: bool
    failure_reason: str | None = None
    evidence_path: str | None = None
    rubric_passed: bool | None = None
    patient_summary_generated: bool | None = None
    rubric_score: RubricScore | None = None
    timings_ms: FlowTimings | None = None


class SoakTotals(CamelModel):
    attempted: int
    succeeded: int
    failed: int
    rubric_passed: int
    patient_summary_generated: int
    average_total_ms: int
    average_transcription_wait_ms: int
    average_note_generation_wait_ms: int
    all_checks_passed: bool


class SoakSummary(CamelModel):
    run_id: str
    generated_at: str
    environment: EnvironmentInfo
    config: dict
    iterations: list[SoakIteration]
    totals: SoakTotals


class SoakResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: SoakSummary
    output_path: Path
