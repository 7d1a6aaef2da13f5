"""Collaborators around the engine: service client, dictionary, documents, settings."""

from .client import ClientSettings, CorrectionClient, parse_revision_response
from .dictionary import CustomDictionary
from .documents import FileDocumentProvider, InclusionPolicy, InMemoryDocumentProvider
from .errors import CorrectionError, FormatError, ServiceError
from .settings import Settings, SettingsStore

__all__ = [
    "ClientSettings",
    "CorrectionClient",
    "CorrectionError",
    "CustomDictionary",
    "FileDocumentProvider",
    "FormatError",
    "InMemoryDocumentProvider",
    "InclusionPolicy",
    "ServiceError",
    "Settings",
    "SettingsStore",
    "parse_revision_response",
]
