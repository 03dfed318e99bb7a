"""Error hierarchy for the ambient flow runner."""

from __future__ import annotations


class AmbientFlowError(Exception):
    """Base class for every error raised by the ambient flow runner."""


class ConfigurationError(AmbientFlowError, ValueError):
    """Raised when required options are missing or invalid. Always raised before any network call."""


class ApiError(AmbientFlowError):
    """Raised when the remote service returns a non-2xx response or cannot be reached.

    Attributes:
        status_code: HTTP status of the failed response, or None for transport failures
                     (connection refused, DNS, timeouts).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class EntityResolutionError(AmbientFlowError):
    """Raised when a provider, patient, or encounter cannot be resolved or created."""


class FlowTimeoutError(AmbientFlowError):
    """Raised when a polling stage exceeds its time budget."""


class RemoteProcessingError(AmbientFlowError):
    """Raised when the service marks a transcript or note as failed."""


class EvidenceWriteError(AmbientFlowError):
    """Raised when an evidence or summary file cannot be written."""
