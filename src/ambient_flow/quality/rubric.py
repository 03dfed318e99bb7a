"""Deterministic quality rubric for AI-generated ambient notes.

Every check is independent and pure: the same note always yields the same
checks in the same order. The rubric passes only when all checks pass.

Checks
------
  chief_complaint_present       chiefComplaint is non-blank
  assessment_present            assessment is non-blank
  plan_present                  plan is non-blank
  summary_symptoms_present      at least one symptom
  summary_differential_present  at least one probable diagnosis
  summary_differential_fields   every diagnosis has a condition and 0 < probability <= 100
  summary_tests_present         at least one suggested test
  summary_tests_fields          every test has a name and a rationale
  patient_summary_present       patient-facing "what we discussed" is non-blank
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ..api.models import AmbientNote, ProbableDiagnosis, SuggestedTest
from ..evidence.schema import CamelModel


class RubricCheck(CamelModel):
    """One rubric line item."""

    id: str
    label: str
    passed: bool
    detail: str


class RubricOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    rubric_passed: bool
    checks: list[RubricCheck]

    @property
    def score(self) -> tuple[int, int]:
        """(passed, total)."""
        return sum(1 for check in self.checks if check.passed), len(self.checks)

    @property
    def failed_check_ids(self) -> list[str]:
        return [check.id for check in self.checks if not check.passed]


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def _text_check(check_id: str, label: str, value: str | None, field_name: str) -> RubricCheck:
    return RubricCheck(
        id=check_id,
        label=label,
        passed=_has_text(value),
        detail=f"Length={len(value.strip())}" if value else f"Missing {field_name}",
    )


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _diagnosis_is_complete(diagnosis: ProbableDiagnosis) -> bool:
    probability = diagnosis.probability_percent
    return (
        _has_text(diagnosis.condition)
        and _is_number(probability)
        and 0 < probability <= 100
    )


def _test_is_complete(test: SuggestedTest) -> bool:
    return _has_text(test.test_name) and _has_text(test.rationale)


def evaluate_rubric(note: AmbientNote) -> RubricOutcome:
    """Score a generated note against the fixed rubric."""
    summary = note.formal_summary
    diagnoses = summary.probable_diagnoses
    tests = summary.suggested_tests
    symptoms = summary.symptoms
    patient_summary = note.patient_summary
    discussed = patient_summary.what_we_discussed if patient_summary else None

    complete_diagnoses = sum(1 for d in diagnoses if _diagnosis_is_complete(d))
    complete_tests = sum(1 for t in tests if _test_is_complete(t))

    checks = [
        _text_check("chief_complaint_present", "Chief complaint is present", note.chief_complaint, "chiefComplaint"),
        _text_check("assessment_present", "Assessment is present", note.assessment, "assessment"),
        _text_check("plan_present", "Plan is present", note.plan, "plan"),
        RubricCheck(
            id="summary_symptoms_present",
            label="Formal summary contains symptoms",
            passed=len(symptoms) > 0,
            detail=f"symptoms={len(symptoms)}",
        ),
        RubricCheck(
            id="summary_differential_present",
            label="Formal summary contains probable diagnoses",
            passed=len(diagnoses) > 0,
            detail=f"probableDiagnoses={len(diagnoses)}",
        ),
        RubricCheck(
            id="summary_differential_fields",
            label="Probable diagnoses include condition + probability",
            passed=len(diagnoses) > 0 and complete_diagnoses == len(diagnoses),
            detail=f"validated={complete_diagnoses}/{len(diagnoses)}" if diagnoses else "No probable diagnoses",
        ),
        RubricCheck(
            id="summary_tests_present",
            label="Formal summary contains suggested tests",
            passed=len(tests) > 0,
            detail=f"suggestedTests={len(tests)}",
        ),
        RubricCheck(
            id="summary_tests_fields",
            label="Suggested tests include name + rationale",
            passed=len(tests) > 0 and complete_tests == len(tests),
            detail=f"validated={complete_tests}/{len(tests)}" if tests else "No suggested tests",
        ),
        RubricCheck(
            id="patient_summary_present",
            label="Patient-facing summary exists",
            passed=_has_text(discussed),
            detail=f"whatWeDiscussedLength={len(discussed.strip())}" if discussed else "Missing patient summary",
        ),
    ]

    return RubricOutcome(rubric_passed=all(check.passed for check in checks), checks=checks)


class NoteSignals(CamelModel):
    has_chief_complaint: bool
    has_assessment: bool
    has_plan: bool
    overall_confidence: float | None = None
    symptom_count: int
    probable_diagnosis_count: int
    suggested_test_count: int


def note_signals(note: AmbientNote) -> NoteSignals:
    """Presence flags and list sizes surfaced in the evidence record."""
    summary = note.formal_summary
    return NoteSignals(
        has_chief_complaint=bool(note.chief_complaint),
        has_assessment=bool(note.assessment),
        has_plan=bool(note.plan),
        overall_confidence=note.overall_confidence,
        symptom_count=len(summary.symptoms),
        probable_diagnosis_count=len(summary.probable_diagnoses),
        suggested_test_count=len(summary.suggested_tests),
    )
