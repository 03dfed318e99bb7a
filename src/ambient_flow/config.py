"""Run and soak configuration.

Each option resolves from the command line first, then the environment, then
a built-in default. Configuration is built once at program entry and passed
down explicitly; nothing deeper in the call graph reads argv or os.environ.

Environment variables:
  AMBIENT_FLOW_BASE_URL            required, http:// or https://
  AMBIENT_FLOW_TENANT_ID           required
  AMBIENT_FLOW_EMAIL               required
  AMBIENT_FLOW_PASSWORD            required
  AMBIENT_FLOW_TENANT_HEADER       default x-tenant-id (TENANT_HEADER also honoured)
  AMBIENT_FLOW_PROVIDER_ID / _PATIENT_ID / _ENCOUNTER_ID
  AMBIENT_FLOW_AUDIO_PATH          default: the bundled ambient_flow/fixtures/test-audio.wav
  AMBIENT_FLOW_DURATION_SECONDS    default 90
  AMBIENT_FLOW_TIMEOUT_MS          default 180000
  AMBIENT_FLOW_POLL_INTERVAL_MS    default 2000
  AMBIENT_FLOW_SKIP_APPLY          default false
  AMBIENT_FLOW_OUTPUT_PATH
  AMBIENT_FLOW_DRY_RUN             default false
  AMBIENT_FLOW_LOG_LEVEL           default INFO

  AMBIENT_SOAK_ITERATIONS               default 5
  AMBIENT_SOAK_DELAY_MS                 default 5000
  AMBIENT_SOAK_CONTINUE_ON_FAILURE      default false
  AMBIENT_SOAK_ENFORCE_RUBRIC           default true
  AMBIENT_SOAK_ENFORCE_PATIENT_SUMMARY  default false
  AMBIENT_SOAK_SUMMARY_OUTPUT_PATH
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .evidence.masking import mask_identifier
from .exceptions import ConfigurationError

DEFAULT_TENANT_HEADER = "x-tenant-id"
DEFAULT_AUDIO_PATH = Path(__file__).resolve().parent / "fixtures" / "test-audio.wav"
DEFAULT_DURATION_SECONDS = 90
DEFAULT_TIMEOUT_MS = 180_000
DEFAULT_POLL_INTERVAL_MS = 2_000
DEFAULT_SOAK_ITERATIONS = 5
DEFAULT_SOAK_DELAY_MS = 5_000
DEFAULT_LOG_LEVEL = "INFO"

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


class RunConfig(BaseModel):
    """Immutable configuration for one flow run."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    tenant_id: str
    tenant_header: str = DEFAULT_TENANT_HEADER
    email: str
    password: str
    provider_id: str | None = None
    patient_id: str | None = None
    encounter_id: str | None = None
    audio_path: Path = DEFAULT_AUDIO_PATH
    duration_seconds: int = DEFAULT_DURATION_SECONDS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    skip_apply: bool = False
    output_path: Path | None = None
    dry_run: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    def masked_view(self) -> dict:
        """Printable view for dry runs and logs: identifiers masked, password omitted."""
        return {
            "baseUrl": self.base_url,
            "tenantHeader": self.tenant_header,
            "tenantIdMasked": mask_identifier(self.tenant_id),
            "emailMasked": mask_identifier(self.email),
            "providerIdMasked": mask_identifier(self.provider_id),
            "patientIdMasked": mask_identifier(self.patient_id),
            "encounterIdMasked": mask_identifier(self.encounter_id),
            "audioPath": str(self.audio_path),
            "durationSeconds": self.duration_seconds,
            "timeoutMs": self.timeout_ms,
            "pollIntervalMs": self.poll_interval_ms,
            "skipApply": self.skip_apply,
            "outputPath": str(self.output_path) if self.output_path else "(auto)",
        }


class SoakConfig(BaseModel):
    """Immutable configuration for a soak: a run template plus iteration policy."""

    model_config = ConfigDict(frozen=True)

    run: RunConfig
    iterations: int = DEFAULT_SOAK_ITERATIONS
    delay_ms: int = DEFAULT_SOAK_DELAY_MS
    continue_on_failure: bool = False
    enforce_rubric: bool = True
    enforce_patient_summary: bool = False
    summary_output_path: Path | None = None

    def masked_view(self) -> dict:
        view = self.run.masked_view()
        view.pop("outputPath")
        view.update(
            {
                "iterations": self.iterations,
                "delayMs": self.delay_ms,
                "continueOnFailure": self.continue_on_failure,
                "enforceRubric": self.enforce_rubric,
                "enforcePatientSummary": self.enforce_patient_summary,
                "summaryOutputPath": str(self.summary_output_path) if self.summary_output_path else "(auto)",
            }
        )
        return view


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _first_text(*candidates: object) -> str | None:
    """First candidate that is a non-blank string once trimmed."""
    for candidate in candidates:
        if candidate is None:
            continue
        text = str(candidate).strip()
        if text:
            return text
    return None


def parse_positive_int(value: object, fallback: int, allow_zero: bool = False) -> int:
    """Floor a numeric value; fall back on missing, non-numeric or out-of-range input."""
    if value is None or value == "":
        return fallback
    try:
        number = float(str(value).strip())
    except ValueError:
        return fallback
    if not math.isfinite(number):
        return fallback
    whole = math.floor(number)
    if whole < 0 or (whole == 0 and not allow_zero):
        return fallback
    return whole


def parse_bool(value: object, fallback: bool) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return fallback


def _cli_get(cli: Mapping[str, object] | None, key: str) -> object:
    return cli.get(key) if cli else None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve_run_config(
    cli: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> RunConfig:
    """Build a RunConfig from CLI values (argparse dest names) and the environment.

    Boolean flags (skip_apply, dry_run) are additive: a set CLI flag wins,
    otherwise the environment value applies.
    """
    env = os.environ if environ is None else environ

    def pick(key: str, env_key: str) -> str | None:
        return _first_text(_cli_get(cli, key), env.get(env_key))

    audio = pick("audio_path", "AMBIENT_FLOW_AUDIO_PATH")
    output = pick("output_path", "AMBIENT_FLOW_OUTPUT_PATH")

    return RunConfig(
        base_url=pick("base_url", "AMBIENT_FLOW_BASE_URL") or "",
        tenant_id=pick("tenant_id", "AMBIENT_FLOW_TENANT_ID") or "",
        tenant_header=_first_text(
            _cli_get(cli, "tenant_header"),
            env.get("AMBIENT_FLOW_TENANT_HEADER"),
            env.get("TENANT_HEADER"),
        )
        or DEFAULT_TENANT_HEADER,
        email=pick("email", "AMBIENT_FLOW_EMAIL") or "",
        password=pick("password", "AMBIENT_FLOW_PASSWORD") or "",
        provider_id=pick("provider_id", "AMBIENT_FLOW_PROVIDER_ID"),
        patient_id=pick("patient_id", "AMBIENT_FLOW_PATIENT_ID"),
        encounter_id=pick("encounter_id", "AMBIENT_FLOW_ENCOUNTER_ID"),
        audio_path=Path(audio).resolve() if audio else DEFAULT_AUDIO_PATH,
        duration_seconds=parse_positive_int(
            pick("duration_seconds", "AMBIENT_FLOW_DURATION_SECONDS"), DEFAULT_DURATION_SECONDS
        ),
        timeout_ms=parse_positive_int(pick("timeout_ms", "AMBIENT_FLOW_TIMEOUT_MS"), DEFAULT_TIMEOUT_MS),
        poll_interval_ms=parse_positive_int(
            pick("poll_interval_ms", "AMBIENT_FLOW_POLL_INTERVAL_MS"), DEFAULT_POLL_INTERVAL_MS
        ),
        skip_apply=bool(_cli_get(cli, "skip_apply")) or parse_bool(env.get("AMBIENT_FLOW_SKIP_APPLY"), False),
        output_path=Path(output) if output else None,
        dry_run=bool(_cli_get(cli, "dry_run")) or parse_bool(env.get("AMBIENT_FLOW_DRY_RUN"), False),
        log_level=(pick("log_level", "AMBIENT_FLOW_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


def resolve_soak_config(
    cli: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> SoakConfig:
    """Build a SoakConfig. The per-run output path is always cleared: each
    iteration writes its own auto-named evidence file.

    The enforcement flags are tri-state on the CLI (True / False / None); None
    defers to the environment and then the default.
    """
    env = os.environ if environ is None else environ
    run = resolve_run_config(cli, env).model_copy(update={"output_path": None})

    def pick(key: str, env_key: str) -> object:
        cli_value = _cli_get(cli, key)
        return cli_value if cli_value is not None else env.get(env_key)

    summary_output = _first_text(
        _cli_get(cli, "summary_output_path"), env.get("AMBIENT_SOAK_SUMMARY_OUTPUT_PATH")
    )

    return SoakConfig(
        run=run,
        iterations=parse_positive_int(pick("iterations", "AMBIENT_SOAK_ITERATIONS"), DEFAULT_SOAK_ITERATIONS),
        delay_ms=parse_positive_int(pick("delay_ms", "AMBIENT_SOAK_DELAY_MS"), DEFAULT_SOAK_DELAY_MS, allow_zero=True),
        continue_on_failure=bool(_cli_get(cli, "continue_on_failure"))
        or parse_bool(env.get("AMBIENT_SOAK_CONTINUE_ON_FAILURE"), False),
        enforce_rubric=parse_bool(pick("enforce_rubric", "AMBIENT_SOAK_ENFORCE_RUBRIC"), True),
        enforce_patient_summary=parse_bool(
            pick("enforce_patient_summary", "AMBIENT_SOAK_ENFORCE_PATIENT_SUMMARY"), False
        ),
        summary_output_path=Path(summary_output) if summary_output else None,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_run_config(config: RunConfig, check_audio: bool = True) -> None:
    """Raise ConfigurationError when the config cannot drive a run.

    Reports every missing required field at once.
    """
    missing = [
        name
        for name, value in (
            ("baseUrl", config.base_url),
            ("tenantId", config.tenant_id),
            ("email", config.email),
            ("password", config.password),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing required options: {', '.join(missing)}")

    if not config.base_url.startswith(("http://", "https://")):
        raise ConfigurationError("baseUrl must start with http:// or https://")

    if check_audio and not Path(config.audio_path).is_file():
        raise ConfigurationError(f"Audio file not found: {config.audio_path}")
