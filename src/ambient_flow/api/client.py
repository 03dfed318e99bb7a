"""HTTP client for the ambient scribe API.

One method per endpoint the flow touches. Every call after ``authenticate()``
carries the bearer token and the tenant header. The client never retries;
polling and backoff belong to the orchestrator.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import requests

from ..exceptions import ApiError
from .models import LoginResult

logger = logging.getLogger(__name__)

REVIEW_ACTION_APPROVE = "approve"


class AmbientApiClient:
    """Thin wrapper over a requests.Session bound to one base URL and tenant."""

    def __init__(
        self,
        base_url: str,
        tenant_header: str,
        tenant_id: str,
        timeout_ms: int = 180_000,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.tenant_header = tenant_header
        self._tenant_id = tenant_id
        self._timeout = timeout_ms / 1000
        self._session = session or requests.Session()
        self._access_token: str | None = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, email: str, password: str) -> LoginResult:
        """Log in and keep the access token for subsequent calls.

        Args:
            email: Login email of a provider/admin account in the target tenant.
            password: Account password.

        Returns:
            LoginResult with the token and the actor's role and user id.

        Raises:
            ApiError: on a non-2xx response or when no access token is returned.
        """
        body = self._request(
            "POST",
            "/api/auth/login",
            json={"email": email, "password": password},
            headers=self._tenant_headers(),
        )
        tokens = body.get("tokens") if isinstance(body, dict) else None
        access_token = tokens.get("accessToken") if isinstance(tokens, dict) else None
        if not access_token:
            raise ApiError("Login did not return an access token")

        user = body.get("user") or {}
        self._access_token = access_token
        return LoginResult(access_token=access_token, role=user.get("role"), user_id=user.get("id"))

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def list_providers(self) -> list[dict]:
        body = self._request("GET", "/api/providers", headers=self._auth_headers())
        return _list_field(body, "providers")

    def list_patients(self, limit: int = 20, page: int = 1) -> list[dict]:
        body = self._request(
            "GET",
            "/api/patients",
            params={"limit": limit, "page": page},
            headers=self._auth_headers(),
        )
        return _list_field(body, "data")

    def list_encounters(self) -> list[dict]:
        body = self._request("GET", "/api/encounters", headers=self._auth_headers())
        return _list_field(body, "encounters")

    def create_encounter(self, payload: dict) -> dict:
        return self._request("POST", "/api/encounters", json=payload, headers=self._auth_headers())

    # ------------------------------------------------------------------
    # Ambient pipeline
    # ------------------------------------------------------------------

    def start_recording(self, encounter_id: str, patient_id: str, provider_id: str) -> dict:
        return self._request(
            "POST",
            "/api/ambient/recordings/start",
            json={
                "encounterId": encounter_id,
                "patientId": patient_id,
                "providerId": provider_id,
                "consentObtained": True,
                "consentMethod": "verbal",
            },
            headers=self._auth_headers(),
        )

    def upload_audio(self, recording_id: str, audio_path: str | Path, duration_seconds: int) -> dict:
        """Upload the recording as multipart form data (``audio`` file + ``durationSeconds``)."""
        path = Path(audio_path)
        with open(path, "rb") as audio:
            return self._request(
                "POST",
                f"/api/ambient/recordings/{recording_id}/upload",
                files={"audio": (path.name, audio, mimetype_for(path))},
                data={"durationSeconds": str(duration_seconds)},
                headers=self._auth_headers(),
            )

    def get_transcript(self, recording_id: str) -> dict:
        return self._request(
            "GET",
            f"/api/ambient/recordings/{recording_id}/transcript",
            headers=self._auth_headers(),
        )

    def generate_note(self, transcript_id: str) -> dict:
        return self._request(
            "POST",
            f"/api/ambient/transcripts/{transcript_id}/generate-note",
            json={},
            headers=self._auth_headers(),
        )

    def get_note(self, note_id: str) -> dict:
        return self._request("GET", f"/api/ambient/notes/{note_id}", headers=self._auth_headers())

    def review_note(self, note_id: str, action: str, reason: str) -> dict:
        return self._request(
            "POST",
            f"/api/ambient/notes/{note_id}/review",
            json={"action": action, "reason": reason},
            headers=self._auth_headers(),
        )

    def apply_note_to_encounter(self, note_id: str) -> dict:
        return self._request(
            "POST",
            f"/api/ambient/notes/{note_id}/apply-to-encounter",
            json={},
            headers=self._auth_headers(),
        )

    def generate_patient_summary(self, note_id: str) -> dict:
        return self._request(
            "POST",
            f"/api/ambient/notes/{note_id}/generate-patient-summary",
            json={},
            headers=self._auth_headers(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _tenant_headers(self) -> dict[str, str]:
        return {self.tenant_header: self._tenant_id}

    def _auth_headers(self) -> dict[str, str]:
        if not self._access_token:
            raise RuntimeError("Not authenticated. Call authenticate() first.")
        headers = self._tenant_headers()
        headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, path)
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(str(exc)) from exc

        if not response.ok:
            raise ApiError(_error_message(response), status_code=response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"{response.status_code}: response from {path} is not valid JSON",
                status_code=response.status_code,
            ) from exc


def _error_message(response: requests.Response) -> str:
    """Prefer the API's ``{"error": "..."}`` text; fall back to the HTTP reason."""
    payload = response.reason or "request failed"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        payload = body["error"]
    return f"{response.status_code}: {payload}"


def _list_field(body: Any, key: str) -> list[dict]:
    items = body.get(key) if isinstance(body, dict) else None
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def mimetype_for(path: Path) -> str:
    """Return the MIME type for common audio file extensions."""
    suffix = path.suffix.lower()
    mapping = {
        ".wav": "audio/wav",
        ".mp3": "audio/mpeg",
        ".mp4": "audio/mp4",
        ".m4a": "audio/mp4",
        ".flac": "audio/flac",
        ".ogg": "audio/ogg",
        ".webm": "audio/webm",
    }
    return mapping.get(suffix, "audio/wav")
