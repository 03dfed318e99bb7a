"""Models for a single ambient flow run."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from ..evidence.schema import CamelModel
from ..quality.rubric import NoteSignals, RubricCheck


class FlowStage(str, Enum):
    """Stages of a run, in the order they are reached."""

    AUTHENTICATED = "authenticated"
    ENTITIES_RESOLVED = "entities_resolved"
    RECORDING_STARTED = "recording_started"
    AUDIO_UPLOADED = "audio_uploaded"
    TRANSCRIPT_READY = "transcript_ready"
    NOTE_GENERATED = "note_generated"
    NOTE_READY = "note_ready"
    RUBRIC_EVALUATED = "rubric_evaluated"
    NOTE_APPROVED = "note_approved"
    NOTE_APPLIED = "note_applied"
    PATIENT_SUMMARY_GENERATED = "patient_summary_generated"
    EVIDENCE_WRITTEN = "evidence_written"


class FlowContext(BaseModel):
    """Ids collected while a run advances. Owned by one run, never persisted as-is."""

    provider_id: str = ""
    patient_id: str = ""
    encounter_id: str = ""
    recording_id: str = ""
    transcript_id: str = ""
    note_id: str = ""


class PatientSummaryResult(BaseModel):
    """Outcome of the best-effort patient summary step."""

    model_config = ConfigDict(frozen=True)

    generated: bool
    summary_id: str | None = None
    failure_reason: str | None = None


# ---------------------------------------------------------------------------
# Evidence record
# ---------------------------------------------------------------------------

class EnvironmentInfo(CamelModel):
    base_url: str
    tenant_header: str
    tenant_id_masked: str


class ActorInfo(CamelModel):
    role: str | None = None
    user_id_masked: str | None = None


class EntityInfo(CamelModel):
    provider_id_masked: str
    patient_id_masked: str
    encounter_id_masked: str


class FlowInfo(CamelModel):
    recording_id_masked: str
    transcript_id_masked: str
    note_id_masked: str
    transcript_status: str
    note_generation_status: str
    note_review_status_after_approval: str | None = None
    note_applied_to_encounter: bool
    patient_summary_generated: bool
    patient_summary_id_masked: str | None = None


class RubricScore(CamelModel):
    passed: int
    total: int


class QualityInfo(CamelModel):
    rubric_passed: bool
    checks: list[RubricCheck]
    score: RubricScore
    note_signals: NoteSignals


class FlowTimings(CamelModel):
    total: int
    transcription_wait: int
    note_generation_wait: int


class FlowEvidence(CamelModel):
    """Complete, identifier-masked record of one run."""

    run_id: str
    generated_at: str
    environment: EnvironmentInfo
    actor: ActorInfo
    entities: EntityInfo
    flow: FlowInfo
    quality: QualityInfo
    timings_ms: FlowTimings


class FlowResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    evidence: FlowEvidence
    output_path: Path
