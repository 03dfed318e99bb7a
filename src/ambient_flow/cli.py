"""Command-line entry point: ``ambient-flow run`` and ``ambient-flow soak``.

Every flag has an environment-variable equivalent (see ambient_flow.config);
the flag wins when both are set. Exit code is 0 when all required checks
passed, 1 otherwise.

Example:
    ambient-flow run \\
        --base-url https://staging.example.com \\
        --tenant-id tenant-123 \\
        --email provider@example.com \\
        --password '***'

    ambient-flow soak --iterations 10 --delay-ms 15000 --continue-on-failure
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Mapping
from typing import Optional

from .config import resolve_run_config, resolve_soak_config, validate_run_config
from .evidence.masking import mask_identifier
from .exceptions import AmbientFlowError
from .flow.orchestrator import FlowOrchestrator
from .logging_config import configure_logging
from .soak.harness import SoakHarness

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name)
    configure_logging(level if isinstance(level, int) else logging.INFO)


def _print_json(obj: object) -> None:
    sys.stdout.write(json.dumps(obj, ensure_ascii=False, indent=2) + "\n")


def cmd_run(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> int:
    config = resolve_run_config(vars(args), environ)
    _configure_logging(config.log_level)
    validate_run_config(config)

    if config.dry_run:
        print("Ambient flow dry-run configuration")
        _print_json(config.masked_view())
        return EXIT_OK

    print("Starting ambient staging flow...")
    print(f"Target: {config.base_url}")
    print(f"Tenant: {mask_identifier(config.tenant_id)}")

    result = FlowOrchestrator(config).run()
    quality = result.evidence.quality

    print("Ambient staging flow completed")
    print(f"Rubric: {quality.score.passed}/{quality.score.total} checks passed")
    print(f"Rubric overall pass: {str(quality.rubric_passed).lower()}")
    print(f"Evidence file: {result.output_path}")

    return EXIT_OK if quality.rubric_passed else EXIT_FAILED


def cmd_soak(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> int:
    config = resolve_soak_config(vars(args), environ)
    _configure_logging(config.run.log_level)
    validate_run_config(config.run)

    if config.run.dry_run:
        print("Ambient soak dry-run configuration")
        _print_json(config.masked_view())
        return EXIT_OK

    print(f"Starting ambient soak: {config.iterations} iterations against {config.run.base_url}")

    result = SoakHarness(config).run()
    totals = result.summary.totals

    print("Ambient soak completed")
    print(f"Iterations: {totals.succeeded}/{totals.attempted} succeeded ({totals.failed} failed)")
    print(f"Rubric passed: {totals.rubric_passed}, patient summaries: {totals.patient_summary_generated}")
    print(
        "Average timings (ms): "
        f"total={totals.average_total_ms} "
        f"transcription={totals.average_transcription_wait_ms} "
        f"noteGeneration={totals.average_note_generation_wait_ms}"
    )
    print(f"All checks passed: {str(totals.all_checks_passed).lower()}")
    print(f"Summary file: {result.output_path}")

    return EXIT_OK if totals.all_checks_passed else EXIT_FAILED


def _add_run_args(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--base-url", help="API base URL (AMBIENT_FLOW_BASE_URL)")
    sp.add_argument("--tenant-id", help="Tenant id (AMBIENT_FLOW_TENANT_ID)")
    sp.add_argument("--tenant-header", help="Tenant header name (default: x-tenant-id)")
    sp.add_argument("--email", help="Login email (AMBIENT_FLOW_EMAIL)")
    sp.add_argument("--password", help="Login password (AMBIENT_FLOW_PASSWORD)")
    sp.add_argument("--provider-id", help="Use this provider instead of the first listed")
    sp.add_argument("--patient-id", help="Use this patient instead of the first listed")
    sp.add_argument("--encounter-id", help="Use this encounter instead of reusing/creating one")
    sp.add_argument("--audio-path", help="Audio file to upload (default: bundled short silent WAV)")
    sp.add_argument("--duration-seconds", type=int, help="Reported recording duration (default: 90)")
    sp.add_argument("--timeout-ms", type=int, help="Per-request and per-poll budget (default: 180000)")
    sp.add_argument("--poll-interval-ms", type=int, help="Delay between polls (default: 2000)")
    sp.add_argument("--skip-apply", action="store_true", help="Do not apply the note to the encounter")
    sp.add_argument("--dry-run", action="store_true", help="Print the resolved configuration and exit")
    sp.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR (default: INFO)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ambient-flow",
        description=(
            "Runs a non-mock ambient appointment flow against an API target: "
            "login -> start recording -> upload -> transcribe -> generate note "
            "-> review -> apply -> summary"
        ),
    )
    sub = parser.add_subparsers(dest="cmd")
    sub.required = True

    # ---- run ----
    sp = sub.add_parser("run", help="Run the ambient flow once and write an evidence file")
    _add_run_args(sp)
    sp.add_argument("--output-path", help="Evidence file path (default: auto-named under compliance/evidence)")
    sp.set_defaults(func=cmd_run)

    # ---- soak ----
    sp = sub.add_parser("soak", help="Run the ambient flow repeatedly and write a summary")
    _add_run_args(sp)
    sp.add_argument("--iterations", type=int, help="Number of runs (default: 5)")
    sp.add_argument("--delay-ms", type=int, help="Pause between runs (default: 5000)")
    sp.add_argument("--continue-on-failure", action="store_true", help="Keep going after a failed iteration")
    sp.add_argument(
        "--enforce-rubric",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Count a failed rubric as a failed iteration (default: on)",
    )
    sp.add_argument(
        "--enforce-patient-summary",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Count a missing patient summary as a failed iteration (default: off)",
    )
    sp.add_argument("--summary-output-path", help="Summary file path (default: auto-named)")
    sp.set_defaults(func=cmd_soak)

    return parser


def main(argv: Optional[list[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args, environ)
    except (AmbientFlowError, OSError, ValueError) as exc:
        logger.debug("Ambient flow failed", exc_info=True)
        print(f"Ambient flow failed: {exc}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
