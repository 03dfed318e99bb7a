"""Provider / patient / encounter resolution for a flow run."""

from __future__ import annotations

import logging

from ..evidence.masking import mask_identifier
from ..exceptions import EntityResolutionError
from .client import AmbientApiClient

logger = logging.getLogger(__name__)

CLOSED_ENCOUNTER_STATUSES = frozenset({"signed", "completed", "closed", "locked", "finalized"})

PLACEHOLDER_ENCOUNTER = {
    "chiefComplaint": "Staging ambient flow validation appointment",
    "hpi": "Scripted non-mock staging validation flow",
    "ros": "See generated ambient transcript",
    "exam": "Deferred",
    "assessmentPlan": "Pending ambient AI note",
}


class EntityResolver:
    """Pick existing entities where possible, create an encounter only when needed."""

    def __init__(
        self,
        client: AmbientApiClient,
        provider_id: str | None = None,
        patient_id: str | None = None,
        encounter_id: str | None = None,
    ) -> None:
        self._client = client
        self._provider_id = provider_id
        self._patient_id = patient_id
        self._encounter_id = encounter_id

    def resolve_provider(self) -> str:
        if self._provider_id:
            return self._provider_id

        provider_id = _first_id(self._client.list_providers())
        if not provider_id:
            raise EntityResolutionError(
                "No providerId supplied and no providers available via /api/providers"
            )
        logger.info("Using provider %s", mask_identifier(provider_id))
        return provider_id

    def resolve_patient(self) -> str:
        if self._patient_id:
            return self._patient_id

        patient_id = _first_id(self._client.list_patients(limit=20, page=1))
        if not patient_id:
            raise EntityResolutionError(
                "No patientId supplied and no patients available via /api/patients"
            )
        logger.info("Using patient %s", mask_identifier(patient_id))
        return patient_id

    def resolve_encounter(self, patient_id: str, provider_id: str) -> str:
        """Return the configured encounter, reuse an open one, or create a new one.

        An encounter is reusable when it belongs to the same patient and provider
        and its status is not one of CLOSED_ENCOUNTER_STATUSES.
        """
        if self._encounter_id:
            return self._encounter_id

        for encounter in self._client.list_encounters():
            if (
                encounter.get("id")
                and encounter.get("patientId") == patient_id
                and encounter.get("providerId") == provider_id
                and str(encounter.get("status") or "").lower() not in CLOSED_ENCOUNTER_STATUSES
            ):
                logger.info("Reusing open encounter %s", mask_identifier(encounter["id"]))
                return encounter["id"]

        created = self._client.create_encounter(
            {"patientId": patient_id, "providerId": provider_id, **PLACEHOLDER_ENCOUNTER}
        )
        encounter_id = created.get("id") if isinstance(created, dict) else None
        if not encounter_id:
            raise EntityResolutionError("Failed to create encounter for ambient flow")
        logger.info("Created encounter %s", mask_identifier(encounter_id))
        return encounter_id


def _first_id(items: list[dict]) -> str | None:
    return next((item["id"] for item in items if item.get("id")), None)
