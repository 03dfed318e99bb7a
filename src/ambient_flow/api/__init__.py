from .client import AmbientApiClient
from .entities import EntityResolver
from .models import AmbientNote, AmbientTranscript, LoginResult

__all__ = [
    "AmbientApiClient",
    "EntityResolver",
    "AmbientNote",
    "AmbientTranscript",
    "LoginResult",
]
