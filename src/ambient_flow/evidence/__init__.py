from .masking import MASK_SENTINEL, mask_identifier
from .schema import CamelModel
from .writer import DEFAULT_FLOW_EVIDENCE_DIR, DEFAULT_SOAK_EVIDENCE_DIR, evidence_path, write_evidence

__all__ = [
    "MASK_SENTINEL",
    "mask_identifier",
    "CamelModel",
    "DEFAULT_FLOW_EVIDENCE_DIR",
    "DEFAULT_SOAK_EVIDENCE_DIR",
    "evidence_path",
    "write_evidence",
]
