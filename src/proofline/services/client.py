"""Async client for the Bareun revision (correction) service."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..diagnostics.models import RawIssue, Severity
from .errors import FormatError, ServiceError

LOGGER = logging.getLogger(__name__)

DEFAULT_REVISION_ENDPOINT = "https://api.bareun.ai/bareun.RevisionService/CorrectError"
DEFAULT_CUSTOM_DICTIONARY_ENDPOINT = (
    "https://api.bareun.ai/bareun.CustomDictionaryService/UpdateCustomDictionary"
)
_USER_AGENT = "proofline/0.1"
_UNKNOWN_CATEGORY = "UNKNOWN"


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the correction client."""

    api_key: str
    endpoint: str = DEFAULT_REVISION_ENDPOINT
    custom_dict_endpoint: str = DEFAULT_CUSTOM_DICTIONARY_ENDPOINT
    language: str = "ko-KR"
    request_timeout: float = 8.0
    max_retries: int = 1
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 4.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key.strip())


class CorrectionClient:
    """Posts documents to the revision service and parses reported issues.

    Failures surface as :class:`ServiceError` or :class:`FormatError`.
    """

    def __init__(self, settings: ClientSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def has_credentials(self) -> bool:
        return self._settings.has_credentials

    async def analyze(self, text: str) -> list[RawIssue]:
        endpoint = (self._settings.endpoint or "").strip()
        api_key = self._settings.api_key.strip()
        if not endpoint:
            LOGGER.warning("Revision endpoint is empty; skipping request")
            return []
        if not api_key:
            LOGGER.warning("Revision API key missing; skipping request")
            return []
        payload = {
            "document": {"content": text, "language": self._settings.language},
            "encoding_type": "UTF32",
        }
        body = await self._post_json(endpoint, payload)
        issues = parse_revision_response(body)
        LOGGER.debug("Revision service reported %d issue(s) for %d chars", len(issues), len(text))
        return issues

    async def update_custom_dictionary(self, payload: Mapping[str, Any]) -> bool:
        """Upload the custom dictionary; returns ``False`` instead of raising."""

        endpoint = (self._settings.custom_dict_endpoint or "").strip()
        if not endpoint or not self.has_credentials:
            LOGGER.warning("Custom dictionary sync skipped: endpoint or API key missing")
            return False
        try:
            await self._post_json(endpoint, payload, expect_body=False)
        except (ServiceError, FormatError) as exc:
            LOGGER.warning("Custom dictionary sync failed: %s", exc)
            return False
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "CorrectionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        expect_body: bool = True,
    ) -> Any:
        headers = {
            "Content-Type": "application/json",
            "api-key": self._settings.api_key.strip(),
            "User-Agent": _USER_AGENT,
        }
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._client.post(endpoint, json=dict(payload), headers=headers)
        except httpx.TimeoutException as exc:
            raise ServiceError(f"Request to {endpoint} timed out") from exc
        except httpx.HTTPError as exc:
            raise ServiceError(f"Request to {endpoint} failed: {exc}") from exc

        if not response.is_success:
            raise ServiceError(
                f"Correction service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not expect_body:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise FormatError("Correction service returned invalid JSON") from exc

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(httpx.TransportError),
        )


def parse_revision_response(payload: Any) -> list[RawIssue]:
    """Convert a revision response body into raw issues.

    Both ``revisedBlocks`` (JSON mapping of the service) and ``revised_blocks``
    spellings are accepted. Blocks without revisions are skipped.
    """

    if not isinstance(payload, Mapping):
        raise FormatError(f"Expected a JSON object, got {type(payload).__name__}")
    blocks = _field(payload, "revisedBlocks", "revised_blocks")
    if blocks is None:
        return []
    if not isinstance(blocks, Sequence) or isinstance(blocks, (str, bytes)):
        raise FormatError("revisedBlocks must be a list")

    issues: list[RawIssue] = []
    for block in blocks:
        if not isinstance(block, Mapping):
            continue
        revisions = _field(block, "revisions")
        if not isinstance(revisions, Sequence) or isinstance(revisions, (str, bytes)) or not revisions:
            continue
        first = revisions[0] if isinstance(revisions[0], Mapping) else {}
        origin = _field(block, "origin")
        origin = origin if isinstance(origin, Mapping) else {}
        offset = _as_int(_field(origin, "beginOffset", "begin_offset"), "beginOffset")
        length = _as_int(_field(origin, "length"), "length")
        category = str(first.get("category") or _UNKNOWN_CATEGORY)
        message = str(first.get("description") or category)
        suggestion = _field(block, "revised")
        issues.append(
            RawIssue(
                start=offset,
                end=offset + length,
                message=message,
                suggestion=str(suggestion) if suggestion is not None else None,
                severity=Severity.ERROR if category == "TYPO" else Severity.WARNING,
                category_tag=category,
            )
        )
    return issues


def _field(mapping: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in mapping:
            return mapping[name]
    return None


def _as_int(value: Any, label: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise FormatError(f"{label} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"{label} must be an integer") from exc


__all__ = [
    "ClientSettings",
    "CorrectionClient",
    "DEFAULT_CUSTOM_DICTIONARY_ENDPOINT",
    "DEFAULT_REVISION_ENDPOINT",
    "parse_revision_response",
]
