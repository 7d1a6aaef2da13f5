"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from cryptography.fernet import Fernet

from ..engine.state import MANUAL_TRIGGER, REALTIME_TRIGGER, EngineSettings
from .client import DEFAULT_CUSTOM_DICTIONARY_ENDPOINT, DEFAULT_REVISION_ENDPOINT, ClientSettings

__all__ = [
    "FernetSecretVault",
    "Settings",
    "SettingsStore",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".proofline"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_API_KEY_FIELD = "api_key_ciphertext"
_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_API_KEY": "api_key",
    "PROOFLINE_ENDPOINT": "endpoint",
    "PROOFLINE_ANALYSIS_TRIGGER": "analysis_trigger",
    "PROOFLINE_CUSTOM_DICT_DOMAIN": "custom_dict_domain",
    "PROOFLINE_LOG_LEVEL": "log_level",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_ENABLED": "enabled",
    "PROOFLINE_IGNORE_ENGLISH": "ignore_english",
    "PROOFLINE_CUSTOM_DICT_ENABLED": "custom_dict_enabled",
    "PROOFLINE_SUPPRESS_DICT_ISSUES": "suppress_dict_issues",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_DEBOUNCE_MS": "debounce_ms",
    "PROOFLINE_COOLDOWN_MS": "cooldown_ms",
    "PROOFLINE_MAX_RETRIES": "max_retries",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_REQUEST_TIMEOUT": "request_timeout",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_TRIGGERS = {REALTIME_TRIGGER, MANUAL_TRIGGER}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    enabled: bool = True
    api_key: str = ""
    endpoint: str = ""
    include_globs: list[str] = field(default_factory=lambda: ["**/*.md"])
    ignore_english: bool = True
    debounce_ms: int = 1200
    cooldown_ms: int = 5000
    analysis_trigger: str = REALTIME_TRIGGER
    custom_dict_enabled: bool = False
    custom_dict_endpoint: str = ""
    custom_dict_domain: str = ""
    suppress_dict_issues: bool = True
    request_timeout: float = 8.0
    max_retries: int = 1
    language: str = "ko-KR"
    custom_dictionary: dict[str, list[str]] = field(default_factory=dict)
    log_level: str = "INFO"
    log_dir: str = ""

    def snapshot(self) -> EngineSettings:
        """Return the read-only view consumed by the diagnostics engine."""

        trigger = self.analysis_trigger if self.analysis_trigger in _TRIGGERS else REALTIME_TRIGGER
        return EngineSettings(
            enabled=self.enabled,
            has_credentials=bool(self.api_key.strip()),
            debounce_ms=max(0, int(self.debounce_ms)),
            cooldown_ms=max(0, int(self.cooldown_ms)),
            analysis_trigger=trigger,
            ignore_foreign_script=self.ignore_english,
            custom_dict_enabled=self.custom_dict_enabled,
            suppress_dict_issues=self.suppress_dict_issues,
        )

    def client_settings(self) -> ClientSettings:
        return ClientSettings(
            api_key=self.api_key,
            endpoint=self.endpoint.strip() or DEFAULT_REVISION_ENDPOINT,
            custom_dict_endpoint=self.custom_dict_endpoint.strip() or DEFAULT_CUSTOM_DICTIONARY_ENDPOINT,
            language=self.language,
            request_timeout=self.request_timeout,
            max_retries=self.max_retries,
        )


class FernetSecretVault:
    """Encrypts secrets with a symmetric Fernet key stored beside the settings."""

    name = "fernet"

    def __init__(self, key_path: Path | None = None) -> None:
        self._key_path = key_path or (_SETTINGS_DIR / "settings.key")
        self._fernet: Fernet | None = None

    def encrypt(self, secret: str) -> str:
        return self._get_fernet().encrypt(secret.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        return self._get_fernet().decrypt(token.encode("ascii")).decode("utf-8")

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_key())
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        path = self._key_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            return path.read_bytes().strip()
        key = Fernet.generate_key()
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(key)
        if os.name != "nt":  # pragma: no cover - depends on OS
            os.chmod(tmp_path, 0o600)
        tmp_path.replace(path)
        return key


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None, *, vault: FernetSecretVault | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH
        self._vault = vault or FernetSecretVault(self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            api_key = self._decrypt_api_key(payload.pop(_API_KEY_FIELD, None), payload.pop("api_key", None))
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            if api_key:
                settings = replace(settings, api_key=api_key)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        data = asdict(settings)
        api_key = data.pop("api_key", "") or ""
        if api_key:
            data[_API_KEY_FIELD] = self._vault.encrypt(api_key)
        self._write_payload(data)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def save_custom_dictionary(self, words: Mapping[str, Any]) -> Path:
        """Rewrite only the persisted dictionary, leaving other stored fields as they are.

        Runtime overrides (CLI flags, environment) are never written back.
        """

        data = self._read_payload()
        data["custom_dictionary"] = {key: list(values) for key, values in words.items() if values}
        self._write_payload(data)
        LOGGER.debug("Custom dictionary saved to %s", self._path)
        return self._path

    def _write_payload(self, data: Dict[str, Any]) -> None:
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _decrypt_api_key(self, ciphertext: str | None, legacy_plaintext: str | None) -> str:
        if ciphertext:
            try:
                return self._vault.decrypt(ciphertext)
            except Exception as exc:  # pragma: no cover - corrupted key file
                LOGGER.warning("Unable to decrypt API key: %s", exc)
                return ""
        if legacy_plaintext:
            LOGGER.info("Detected plaintext API key; it will be encrypted on next save.")
            return legacy_plaintext
        return ""

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {item.name for item in fields(Settings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}


def redact_secret(value: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"
