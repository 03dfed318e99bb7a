"""Persist evidence records as pretty-printed JSON files.

Files are named ``<prefix>-<timestamp>-<runId[:8]>.json`` so that two runs
never collide and every file traces back to its run id. The full document is
serialized before anything touches the disk, then written to a temp file in
the target directory and renamed into place.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from ..exceptions import EvidenceWriteError
from .schema import CamelModel

logger = logging.getLogger(__name__)

DEFAULT_FLOW_EVIDENCE_DIR = Path("compliance") / "evidence" / "ambient-flow-runs"
DEFAULT_SOAK_EVIDENCE_DIR = Path("compliance") / "evidence" / "ambient-soak-runs"

FLOW_FILE_PREFIX = "ambient-flow"
SOAK_FILE_PREFIX = "ambient-soak"


def file_safe_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with ``:`` and ``.`` replaced by ``-``."""
    moment = moment or datetime.now(timezone.utc)
    iso = moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return iso.replace(":", "-").replace(".", "-")


def evidence_path(
    run_id: str,
    prefix: str = FLOW_FILE_PREFIX,
    output_path: str | Path | None = None,
    base_dir: str | Path = DEFAULT_FLOW_EVIDENCE_DIR,
    moment: datetime | None = None,
) -> Path:
    """Resolve where a record should be written.

    Args:
        run_id: UUID of the run; its first segment goes into the filename.
        prefix: Filename prefix (``ambient-flow`` or ``ambient-soak``).
        output_path: Explicit override. Used verbatim when given.
        base_dir: Directory for auto-named files.
        moment: Timestamp for the filename (defaults to now, UTC).
    """
    if output_path:
        return Path(output_path).resolve()
    filename = f"{prefix}-{file_safe_timestamp(moment)}-{run_id[:8]}.json"
    return (Path(base_dir) / filename).resolve()


def write_evidence(record: CamelModel | dict, path: str | Path) -> Path:
    """Write ``record`` to ``path`` atomically and return the final path.

    Raises:
        EvidenceWriteError: the directory or file could not be created.
    """
    payload = record.to_json_dict() if isinstance(record, CamelModel) else record
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as exc:
        raise EvidenceWriteError(f"Could not write evidence to {path}: {exc}") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise EvidenceWriteError(f"Could not write evidence to {path}: {exc}") from exc
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Evidence written to %s", path)
    return path
