"""Drive one ambient documentation run against a deployed API.

login -> resolve entities -> start recording -> upload audio -> wait for transcript
      -> generate note -> wait for note -> rubric -> approve -> [apply] -> [patient summary]
      -> write evidence

Each stage starts only after the previous one returned successfully. Approval
always precedes apply, so an unreviewed note is never written to the chart.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import requests

from ..api.client import REVIEW_ACTION_APPROVE, AmbientApiClient
from ..api.entities import EntityResolver
from ..api.models import AmbientNote, AmbientTranscript, LoginResult
from ..config import RunConfig
from ..evidence.masking import mask_identifier
from ..evidence.writer import DEFAULT_FLOW_EVIDENCE_DIR, FLOW_FILE_PREFIX, evidence_path, write_evidence
from ..exceptions import ApiError
from ..quality.rubric import RubricOutcome, evaluate_rubric, note_signals
from .models import (
    ActorInfo,
    EntityInfo,
    EnvironmentInfo,
    FlowContext,
    FlowEvidence,
    FlowInfo,
    FlowResult,
    FlowStage,
    FlowTimings,
    PatientSummaryResult,
    QualityInfo,
    RubricScore,
)
from .polling import PollResult, poll_until_ready

logger = logging.getLogger(__name__)

APPROVAL_REASON = "Automated staging ambient validation"
REVIEW_STATUS_APPROVED = "approved"


class FlowOrchestrator:
    """Runs the ambient pipeline once and records the evidence."""

    def __init__(
        self,
        config: RunConfig,
        session: requests.Session | None = None,
        evidence_dir: str | Path = DEFAULT_FLOW_EVIDENCE_DIR,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._session = session
        self._evidence_dir = evidence_dir
        self._clock = clock
        self._sleep = sleep

    def run(self) -> FlowResult:
        """Execute every stage and persist the evidence file.

        Raises:
            AmbientFlowError subclasses for any fatal stage failure. Patient
            summary failures are not fatal and are reported in the evidence.
        """
        config = self._config
        run_id = str(uuid.uuid4())
        started = self._clock()
        context = FlowContext()

        client = AmbientApiClient(
            base_url=config.base_url,
            tenant_header=config.tenant_header,
            tenant_id=config.tenant_id,
            timeout_ms=config.timeout_ms,
            session=self._session,
        )

        login = client.authenticate(config.email, config.password)
        self._advance(FlowStage.AUTHENTICATED, role=login.role or "unknown")

        resolver = EntityResolver(
            client,
            provider_id=config.provider_id,
            patient_id=config.patient_id,
            encounter_id=config.encounter_id,
        )
        context.provider_id = resolver.resolve_provider()
        context.patient_id = resolver.resolve_patient()
        context.encounter_id = resolver.resolve_encounter(context.patient_id, context.provider_id)
        self._advance(FlowStage.ENTITIES_RESOLVED, encounter=mask_identifier(context.encounter_id))

        started_recording = client.start_recording(context.encounter_id, context.patient_id, context.provider_id)
        context.recording_id = _required_id(
            started_recording, "recordingId", "Ambient recording start did not return a recordingId"
        )
        self._advance(FlowStage.RECORDING_STARTED, recording=mask_identifier(context.recording_id))

        client.upload_audio(context.recording_id, config.audio_path, config.duration_seconds)
        self._advance(FlowStage.AUDIO_UPLOADED, duration_seconds=config.duration_seconds)

        transcript_poll = self._wait_for_transcript(client, context.recording_id)
        transcript = transcript_poll.resource
        context.transcript_id = transcript.id
        self._advance(FlowStage.TRANSCRIPT_READY, waited_ms=transcript_poll.elapsed_ms)

        generated = client.generate_note(context.transcript_id)
        context.note_id = _required_id(generated, "noteId", "Generate-note endpoint did not return noteId")
        self._advance(FlowStage.NOTE_GENERATED, note=mask_identifier(context.note_id))

        note_poll = self._wait_for_note(client, context.note_id)
        note = note_poll.resource
        self._advance(FlowStage.NOTE_READY, waited_ms=note_poll.elapsed_ms)

        rubric = evaluate_rubric(note)
        passed, total = rubric.score
        self._advance(FlowStage.RUBRIC_EVALUATED, score=f"{passed}/{total}")

        client.review_note(context.note_id, REVIEW_ACTION_APPROVE, APPROVAL_REASON)
        self._advance(FlowStage.NOTE_APPROVED)

        applied = False
        if config.skip_apply:
            logger.info("Skipping apply-to-encounter (skip_apply is set)")
        else:
            client.apply_note_to_encounter(context.note_id)
            applied = True
            self._advance(FlowStage.NOTE_APPLIED)

        summary = self._generate_patient_summary(client, context.note_id)
        if summary.generated:
            self._advance(FlowStage.PATIENT_SUMMARY_GENERATED)

        evidence = self.build_evidence(
            run_id=run_id,
            login=login,
            context=context,
            transcript=transcript,
            note=note,
            rubric=rubric,
            applied=applied,
            summary=summary,
            timings=FlowTimings(
                total=int(round((self._clock() - started) * 1000)),
                transcription_wait=transcript_poll.elapsed_ms,
                note_generation_wait=note_poll.elapsed_ms,
            ),
        )

        path = evidence_path(
            run_id,
            prefix=FLOW_FILE_PREFIX,
            output_path=config.output_path,
            base_dir=self._evidence_dir,
        )
        write_evidence(evidence, path)
        self._advance(FlowStage.EVIDENCE_WRITTEN)
        return FlowResult(evidence=evidence, output_path=path)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _wait_for_transcript(self, client: AmbientApiClient, recording_id: str) -> PollResult[AmbientTranscript]:
        return poll_until_ready(
            fetch=lambda: _with_id(AmbientTranscript.from_api_response(client.get_transcript(recording_id))),
            status_of=lambda transcript: transcript.transcription_status,
            resource_name="transcript",
            timeout_ms=self._config.timeout_ms,
            poll_interval_ms=self._config.poll_interval_ms,
            failure_message="Transcript processing failed",
            clock=self._clock,
            sleep=self._sleep,
        )

    def _wait_for_note(self, client: AmbientApiClient, note_id: str) -> PollResult[AmbientNote]:
        return poll_until_ready(
            fetch=lambda: _with_id(AmbientNote.from_api_response(client.get_note(note_id))),
            status_of=lambda note: note.generation_status,
            resource_name="note generation",
            timeout_ms=self._config.timeout_ms,
            poll_interval_ms=self._config.poll_interval_ms,
            failure_message="Note generation failed",
            clock=self._clock,
            sleep=self._sleep,
        )

    def _generate_patient_summary(self, client: AmbientApiClient, note_id: str) -> PatientSummaryResult:
        # Some target environments disable patient summaries; the run continues either way.
        try:
            body = client.generate_patient_summary(note_id)
        except ApiError as exc:
            logger.warning("Patient summary generation skipped: %s", exc)
            return PatientSummaryResult(generated=False, failure_reason=str(exc))
        summary_id = body.get("summaryId") if isinstance(body, dict) else None
        return PatientSummaryResult(generated=True, summary_id=summary_id)

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def build_evidence(
        self,
        run_id: str,
        login: LoginResult,
        context: FlowContext,
        transcript: AmbientTranscript,
        note: AmbientNote,
        rubric: RubricOutcome,
        applied: bool,
        summary: PatientSummaryResult,
        timings: FlowTimings,
    ) -> FlowEvidence:
        """Assemble the masked evidence record for a finished run."""
        config = self._config
        passed, total = rubric.score
        return FlowEvidence(
            run_id=run_id,
            generated_at=datetime.now(timezone.utc).isoformat(),
            environment=EnvironmentInfo(
                base_url=config.base_url,
                tenant_header=config.tenant_header,
                tenant_id_masked=mask_identifier(config.tenant_id),
            ),
            actor=ActorInfo(role=login.role, user_id_masked=mask_identifier(login.user_id)),
            entities=EntityInfo(
                provider_id_masked=mask_identifier(context.provider_id),
                patient_id_masked=mask_identifier(context.patient_id),
                encounter_id_masked=mask_identifier(context.encounter_id),
            ),
            flow=FlowInfo(
                recording_id_masked=mask_identifier(context.recording_id),
                transcript_id_masked=mask_identifier(context.transcript_id),
                note_id_masked=mask_identifier(context.note_id),
                transcript_status=transcript.transcription_status,
                note_generation_status=note.generation_status,
                note_review_status_after_approval=REVIEW_STATUS_APPROVED,
                note_applied_to_encounter=applied,
                patient_summary_generated=summary.generated,
                patient_summary_id_masked=mask_identifier(summary.summary_id),
            ),
            quality=QualityInfo(
                rubric_passed=rubric.rubric_passed,
                checks=rubric.checks,
                score=RubricScore(passed=passed, total=total),
                note_signals=note_signals(note),
            ),
            timings_ms=timings,
        )

    @staticmethod
    def _advance(stage: FlowStage, **details: object) -> None:
        if not details:
            logger.info("Stage %s", stage.value)
            return
        logger.info("Stage %s (%s)", stage.value, ", ".join(f"{key}={value}" for key, value in details.items()))


def _with_id(resource):
    """Treat a payload without an id as not yet available."""
    return resource if resource is not None and resource.id else None


def _required_id(body: object, key: str, message: str) -> str:
    value = body.get(key) if isinstance(body, dict) else None
    if not value:
        raise ApiError(message)
    return value
