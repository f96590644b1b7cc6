"""Settings dataclass, JSON persistence and API key encryption."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from cryptography.fernet import Fernet, InvalidToken

from ..ai.client import ClientSettings
from ..analysis.state import AnalysisConfig

__all__ = ["Settings", "SettingsStore", "SecretVault", "redact_secret"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".proofline"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_API_KEY": "api_key",
    "PROOFLINE_BASE_URL": "base_url",
    "PROOFLINE_MODEL": "model",
    "PROOFLINE_ORGANIZATION": "organization",
    "PROOFLINE_SEARCH_API_KEY": "search_api_key",
    "PROOFLINE_SEARCH_BASE_URL": "search_base_url",
    "PROOFLINE_SEARCH_MODEL": "search_model",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_REQUEST_TIMEOUT": "request_timeout",
    "PROOFLINE_DEBOUNCE_SECONDS": "debounce_seconds",
    "PROOFLINE_POST_ACCEPT_DELAY": "post_accept_delay",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "PROOFLINE_MAX_RETRIES": "max_retries",
    "PROOFLINE_ACCEPTED_EDIT_MEMORY": "accepted_edit_memory",
    "PROOFLINE_ACCEPTED_EDIT_CONTEXT": "accepted_edit_context",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
# Plaintext field name -> ciphertext field name stored on disk.
_SECRET_FIELDS: Mapping[str, str] = {
    "api_key": "api_key_ciphertext",
    "search_api_key": "search_api_key_ciphertext",
}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    organization: str | None = None
    search_base_url: str = "https://api.perplexity.ai"
    search_api_key: str = ""
    search_model: str = "sonar"
    request_timeout: float = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    debounce_seconds: float = 1.4
    post_accept_delay: float = 0.15
    accepted_edit_memory: int = 50
    accepted_edit_context: int = 25
    debug_logging: bool = False
    default_headers: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def analysis_config(self) -> AnalysisConfig:
        return AnalysisConfig(
            debounce_seconds=self.debounce_seconds,
            post_accept_delay=self.post_accept_delay,
            accepted_edit_memory=self.accepted_edit_memory,
            accepted_edit_context=self.accepted_edit_context,
        ).clamp()

    def client_settings(self) -> ClientSettings:
        return ClientSettings(
            base_url=self.base_url,
            api_key=self.api_key,
            model=self.model,
            organization=self.organization,
            request_timeout=self.request_timeout,
            max_retries=self.max_retries,
            retry_min_seconds=self.retry_min_seconds,
            retry_max_seconds=self.retry_max_seconds,
            default_headers=dict(self.default_headers) or None,
            metadata={str(key): str(value) for key, value in self.metadata.items()} or None,
            debug_logging=self.debug_logging,
        )

    def search_client_settings(self) -> ClientSettings | None:
        """Client settings for the web-search model, or ``None`` when no search key is set."""

        if not self.search_api_key:
            return None
        return replace(
            self.client_settings(),
            base_url=self.search_base_url,
            api_key=self.search_api_key,
            model=self.search_model,
            organization=None,
            metadata=None,
        )


class SecretVault:
    """Encrypts API keys with a Fernet key stored next to the settings file."""

    strategy = "fernet"

    def __init__(self, *, key_path: Path | None = None) -> None:
        self._key_path = key_path or (_SETTINGS_DIR / "settings.key")
        self._fernet: Fernet | None = None

    @property
    def key_path(self) -> Path:
        return self._key_path

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        token = self._get_fernet().encrypt(secret.encode("utf-8")).decode("ascii")
        return f"{self.strategy}:{token}"

    def decrypt(self, token: str | None) -> str:
        if not token:
            return ""
        prefix, _, payload = token.partition(":")
        if not payload:
            prefix, payload = self.strategy, token
        if prefix != self.strategy:
            raise ValueError(f"Unsupported secret backend: {prefix}")
        try:
            return self._get_fernet().decrypt(payload.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Invalid Fernet token") from exc

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

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def vault(self) -> SecretVault:
        return self._vault

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, then apply CLI overrides and ``PROOFLINE_*`` variables.

        Environment variables win over CLI overrides, which win over the file.
        """

        payload = self._read_payload()
        settings = Settings()
        if payload:
            secrets, needs_migration = self._decrypt_secrets(payload)
            data = _filter_fields(payload)
            if not isinstance(data.get("metadata", {}), Mapping):
                data.pop("metadata")
            if not isinstance(data.get("default_headers", {}), Mapping):
                data.pop("default_headers")
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            if secrets:
                settings = replace(settings, **secrets)
            if needs_migration or payload.get("version") != _SETTINGS_VERSION:
                try:
                    self.save(settings)
                except OSError as exc:  # pragma: no cover - read-only home directories
                    LOGGER.warning("Failed to migrate settings payload: %s", exc)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings with an atomic replace; API keys are stored encrypted."""

        body = json.dumps(self._serialize(settings), indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        for plain_field, cipher_field in _SECRET_FIELDS.items():
            secret = data.pop(plain_field, "") or ""
            if secret:
                data[cipher_field] = self._vault.encrypt(secret)
        data["version"] = _SETTINGS_VERSION
        data["secret_backend"] = self._vault.strategy
        return data

    def _decrypt_secrets(self, payload: Dict[str, Any]) -> tuple[dict[str, str], bool]:
        secrets: dict[str, str] = {}
        migrated = False
        for plain_field, cipher_field in _SECRET_FIELDS.items():
            ciphertext = payload.pop(cipher_field, None)
            legacy = payload.pop(plain_field, None)
            if ciphertext:
                try:
                    secrets[plain_field] = self._vault.decrypt(ciphertext)
                except ValueError as exc:
                    LOGGER.warning("Unable to decrypt %s: %s", plain_field, exc)
            elif legacy:
                LOGGER.info("Detected plaintext %s; migrating to encrypted storage.", plain_field)
                secrets[plain_field] = str(legacy)
                migrated = True
        return secrets, migrated

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
        return payload if isinstance(payload, dict) else {}

    def _apply_overrides(self, settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
        allowed = {item.name for item in fields(Settings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        metadata_override = filtered.get("metadata")
        if isinstance(metadata_override, Mapping):
            filtered["metadata"] = {**settings.metadata, **metadata_override}
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
        for table, convert, label in (
            (_INT_ENV_OVERRIDES, lambda raw: int(raw, 10), "integer"),
            (_FLOAT_ENV_OVERRIDES, float, "float"),
        ):
            for env_name, field_name in table.items():
                value = os.environ.get(env_name)
                if value is None:
                    continue
                try:
                    overrides[field_name] = convert(value)
                except ValueError:
                    LOGGER.warning("Environment override %s=%s is not a valid %s", env_name, value, label)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def redact_secret(value: str | None) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}
