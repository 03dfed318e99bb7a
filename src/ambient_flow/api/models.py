"""Pydantic models for ambient transcript and note payloads returned by the API.

Note content is model output, so its shape is not guaranteed. Fields that the
rubric inspects keep whatever the service sent when the type is wrong
(``probabilityPercent: "85"``) or fall back to empty, instead of failing
validation; the rubric then scores the bad value as a failed check.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    """Base for API payloads: camelCase on the wire, unknown fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


def _text_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _id_or_none(value: object) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return str(value) or None
    return None


def _number_or_none(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _list_or_empty(value: object) -> list:
    return value if isinstance(value, list) else []


def _records(value: object) -> list:
    # Non-object entries still count towards list sizes; they validate as empty records.
    return [item if isinstance(item, (dict, BaseModel)) else {} for item in _list_or_empty(value)]


def _record_or_none(value: object) -> object:
    return value if isinstance(value, (dict, BaseModel)) else None


class LoginResult(_ApiModel):
    """Outcome of POST /api/auth/login."""

    access_token: str
    role: str | None = None
    user_id: str | None = None


class AmbientTranscript(_ApiModel):
    """A transcript row for an ambient recording."""

    id: str | None = None
    transcription_status: str = Field(default="", description="pending, processing, completed or failed")
    speaker_count: int | None = None
    word_count: int | None = None
    phi_masked: bool | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str | None:
        return _id_or_none(value)

    @field_validator("transcription_status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> str:
        return _text_or_none(value) or ""

    @field_validator("speaker_count", "word_count", mode="before")
    @classmethod
    def _coerce_counts(cls, value: object) -> int | None:
        return value if isinstance(value, int) and not isinstance(value, bool) else None

    @field_validator("phi_masked", mode="before")
    @classmethod
    def _coerce_flag(cls, value: object) -> bool | None:
        return value if isinstance(value, bool) else None

    @classmethod
    def from_api_response(cls, body: object) -> "AmbientTranscript | None":
        """Parse the ``{"transcript": {...}}`` envelope; returns None when no transcript is present."""
        if not isinstance(body, dict) or not isinstance(body.get("transcript"), dict):
            return None
        return cls.model_validate(_drop_nulls(body["transcript"]))


class ProbableDiagnosis(_ApiModel):
    condition: str | None = None
    probability_percent: Any = None
    reasoning: str | None = None
    icd10_code: str | None = None

    @field_validator("condition", "reasoning", "icd10_code", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str | None:
        return _text_or_none(value)


class SuggestedTest(_ApiModel):
    test_name: str | None = None
    urgency: str | None = None
    rationale: str | None = None
    cpt_code: str | None = None

    @field_validator("test_name", "urgency", "rationale", "cpt_code", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str | None:
        return _text_or_none(value)


class FormalAppointmentSummary(_ApiModel):
    symptoms: list[Any] = Field(default_factory=list)
    probable_diagnoses: list[ProbableDiagnosis] = Field(default_factory=list)
    suggested_tests: list[SuggestedTest] = Field(default_factory=list)

    @field_validator("symptoms", mode="before")
    @classmethod
    def _coerce_symptoms(cls, value: object) -> list:
        return _list_or_empty(value)

    @field_validator("probable_diagnoses", "suggested_tests", mode="before")
    @classmethod
    def _coerce_records(cls, value: object) -> list:
        return _records(value)


class PatientSummary(_ApiModel):
    what_we_discussed: str | None = None
    your_concerns: list[Any] = Field(default_factory=list)
    diagnosis: str | None = None
    treatment_plan: str | None = None
    follow_up: str | None = None

    @field_validator("what_we_discussed", "diagnosis", "treatment_plan", "follow_up", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str | None:
        return _text_or_none(value)

    @field_validator("your_concerns", mode="before")
    @classmethod
    def _coerce_concerns(cls, value: object) -> list:
        return _list_or_empty(value)


class NoteContent(_ApiModel):
    formal_appointment_summary: FormalAppointmentSummary | None = None
    patient_summary: PatientSummary | None = None

    @field_validator("formal_appointment_summary", "patient_summary", mode="before")
    @classmethod
    def _coerce_section(cls, value: object) -> object:
        return _record_or_none(value)


class AmbientNote(_ApiModel):
    """An AI-generated clinical note."""

    id: str | None = None
    generation_status: str = Field(default="", description="processing, completed or failed")
    review_status: str | None = None
    overall_confidence: float | None = None
    chief_complaint: str | None = None
    assessment: str | None = None
    plan: str | None = None
    note_content: NoteContent | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str | None:
        return _id_or_none(value)

    @field_validator("generation_status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> str:
        return _text_or_none(value) or ""

    @field_validator("review_status", "chief_complaint", "assessment", "plan", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str | None:
        return _text_or_none(value)

    @field_validator("overall_confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: object) -> float | None:
        return _number_or_none(value)

    @field_validator("note_content", mode="before")
    @classmethod
    def _coerce_content(cls, value: object) -> object:
        return _record_or_none(value)

    @property
    def formal_summary(self) -> FormalAppointmentSummary:
        content = self.note_content
        if content is None or content.formal_appointment_summary is None:
            return FormalAppointmentSummary()
        return content.formal_appointment_summary

    @property
    def patient_summary(self) -> PatientSummary | None:
        return self.note_content.patient_summary if self.note_content else None

    @classmethod
    def from_api_response(cls, body: object) -> "AmbientNote | None":
        """Parse the ``{"note": {...}}`` envelope; returns None when no note is present."""
        if not isinstance(body, dict) or not isinstance(body.get("note"), dict):
            return None
        return cls.model_validate(_drop_nulls(body["note"]))


def _drop_nulls(value: object) -> object:
    # Database rows come back with explicit nulls for empty JSON columns.
    if isinstance(value, dict):
        return {key: _drop_nulls(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_drop_nulls(item) for item in value if item is not None]
    return value
