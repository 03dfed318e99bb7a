"""Reliability soak: run the ambient flow repeatedly and aggregate the results.

Iterations run strictly one after another. Each iteration is a multi-minute,
network-bound workflow; running them in parallel would mix load effects on the
remote service into the reliability numbers being measured.

A KeyboardInterrupt during an iteration propagates: the unfinished iteration
is not recorded and no summary file is written.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

import requests

from ..config import RunConfig, SoakConfig
from ..evidence.masking import mask_identifier
from ..evidence.writer import (
    DEFAULT_FLOW_EVIDENCE_DIR,
    DEFAULT_SOAK_EVIDENCE_DIR,
    SOAK_FILE_PREFIX,
    evidence_path,
    write_evidence,
)
from ..flow.models import EnvironmentInfo, FlowResult, RubricScore
from ..flow.orchestrator import FlowOrchestrator
from .models import SoakIteration, SoakResult, SoakSummary, SoakTotals

logger = logging.getLogger(__name__)

FlowRunner = Callable[[RunConfig], FlowResult]


class SoakHarness:
    """Run N flow iterations under a pass/fail policy and write a summary."""

    def __init__(
        self,
        config: SoakConfig,
        flow_runner: FlowRunner | None = None,
        session: requests.Session | None = None,
        evidence_dir: str | Path = DEFAULT_FLOW_EVIDENCE_DIR,
        summary_dir: str | Path = DEFAULT_SOAK_EVIDENCE_DIR,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self._summary_dir = summary_dir
        self._flow_runner = flow_runner or (
            lambda run_config: FlowOrchestrator(
                run_config,
                session=session,
                evidence_dir=evidence_dir,
                clock=clock,
                sleep=sleep,
            ).run()
        )

    def run(self) -> SoakResult:
        config = self._config
        run_id = str(uuid.uuid4())
        iterations: list[SoakIteration] = []

        logger.info(
            "Starting soak: %d iterations, delay=%dms, continue_on_failure=%s",
            config.iterations,
            config.delay_ms,
            config.continue_on_failure,
        )

        for index in range(1, config.iterations + 1):
            record = self._run_iteration(index)
            iterations.append(record)

            if not record.success and not config.continue_on_failure:
                logger.error("Stopping soak after failed iteration %d", index)
                break
            if index < config.iterations and config.delay_ms > 0:
                self._sleep(config.delay_ms / 1000)

        totals = aggregate_iterations(iterations, config.iterations)
        summary = SoakSummary(
            run_id=run_id,
            generated_at=_utc_now(),
            environment=EnvironmentInfo(
                base_url=config.run.base_url,
                tenant_header=config.run.tenant_header,
                tenant_id_masked=mask_identifier(config.run.tenant_id),
            ),
            config=config.masked_view(),
            iterations=iterations,
            totals=totals,
        )

        path = evidence_path(
            run_id,
            prefix=SOAK_FILE_PREFIX,
            output_path=config.summary_output_path,
            base_dir=self._summary_dir,
        )
        write_evidence(summary, path)
        logger.info(
            "Soak finished: %d/%d succeeded, all checks passed=%s",
            totals.succeeded,
            totals.attempted,
            totals.all_checks_passed,
        )
        return SoakResult(summary=summary, output_path=path)

    def _run_iteration(self, index: int) -> SoakIteration:
        config = self._config
        started_at = _utc_now()
        started = self._clock()
        logger.info("Soak iteration %d/%d started", index, config.iterations)

        try:
            result = self._flow_runner(config.run)
        except Exception as exc:
            logger.error("Soak iteration %d failed: %s", index, exc)
            return SoakIteration(
                iteration=index,
                started_at=started_at,
                finished_at=_utc_now(),
                elapsed_ms=self._elapsed_ms(started),
                success=False,
                failure_reason=str(exc) or type(exc).__name__,
            )

        evidence = result.evidence
        failure_reason = self._policy_failure(result)
        if failure_reason:
            logger.warning("Soak iteration %d failed policy: %s", index, failure_reason)
        else:
            logger.info("Soak iteration %d passed", index)

        return SoakIteration(
            iteration=index,
            started_at=started_at,
            finished_at=_utc_now(),
            elapsed_ms=self._elapsed_ms(started),
            success=failure_reason is None,
            failure_reason=failure_reason,
            evidence_path=str(result.output_path),
            rubric_passed=evidence.quality.rubric_passed,
            patient_summary_generated=evidence.flow.patient_summary_generated,
            rubric_score=RubricScore(passed=evidence.quality.score.passed, total=evidence.quality.score.total),
            timings_ms=evidence.timings_ms,
        )

    def _policy_failure(self, result: FlowResult) -> str | None:
        evidence = result.evidence
        if self._config.enforce_rubric and not evidence.quality.rubric_passed:
            score = evidence.quality.score
            return f"Rubric checks failed ({score.passed}/{score.total})"
        if self._config.enforce_patient_summary and not evidence.flow.patient_summary_generated:
            return "Patient summary was not generated"
        return None

    def _elapsed_ms(self, started: float) -> int:
        return int(round((self._clock() - started) * 1000))


def aggregate_iterations(iterations: Sequence[SoakIteration], configured_iterations: int) -> SoakTotals:
    """Roll iteration records into soak totals.

    Averages only consider iterations that succeeded and produced a nonzero
    measurement; with no such iteration the average is 0.
    """
    successful = [item for item in iterations if item.success]

    def average(pick: Callable[[SoakIteration], int]) -> int:
        values = [pick(item) for item in successful if item.timings_ms is not None and pick(item) > 0]
        return int(round(sum(values) / len(values))) if values else 0

    failed = len(iterations) - len(successful)
    return SoakTotals(
        attempted=len(iterations),
        succeeded=len(successful),
        failed=failed,
        rubric_passed=sum(1 for item in iterations if item.rubric_passed),
        patient_summary_generated=sum(1 for item in iterations if item.patient_summary_generated),
        average_total_ms=average(lambda item: item.timings_ms.total),
        average_transcription_wait_ms=average(lambda item: item.timings_ms.transcription_wait),
        average_note_generation_wait_ms=average(lambda item: item.timings_ms.note_generation_wait),
        all_checks_passed=failed == 0 and len(iterations) == configured_iterations,
    )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
