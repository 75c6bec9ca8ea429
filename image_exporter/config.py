"""Export configuration."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .errors import ValidationError

DEFAULT_ASSETS_API_URL = "http://localhost:5573/api"
DEFAULT_GROUP_SIZE = 3


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"{key} must be an integer, got {raw!r}") from exc


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationError(f"{key} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class ExportConfig:
    """Immutable configuration for export runs."""
    storage_root: Path = field(default_factory=lambda: Path.cwd() / "uploads")
    assets_api_url: str = DEFAULT_ASSETS_API_URL
    assets_api_key: Optional[str] = None
    entity_api_url: Optional[str] = None
    entity_type: str = "PRODUCT"
    owner_tag_prefix: str = "product"
    group_size: int = DEFAULT_GROUP_SIZE
    upload_timeout: float = 60.0  # seconds, per image
    api_timeout: float = 30.0
    progress_flush_timeout: float = 1.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "ExportConfig":
        """
        Build configuration from environment variables.

        Args:
            env: Mapping to read from (default: os.environ)
            overrides: Explicit values that win over the environment

        Raises:
            ValidationError: If a numeric variable cannot be parsed
        """
        env = os.environ if env is None else env
        storage_root = env.get("EXPORTER_STORAGE_ROOT")
        values = {
            "storage_root": Path(storage_root).expanduser() if storage_root else Path.cwd() / "uploads",
            "assets_api_url": env.get("EXTERNAL_API_ASSETS_URL") or DEFAULT_ASSETS_API_URL,
            "assets_api_key": env.get("EXTERNAL_API_ASSETS_KEY") or env.get("API_KEY"),
            "entity_api_url": env.get("ENTITY_API_URL"),
            "entity_type": env.get("EXPORTER_ENTITY_TYPE") or "PRODUCT",
            "owner_tag_prefix": env.get("EXPORTER_OWNER_TAG_PREFIX") or "product",
            "group_size": _env_int(env, "EXPORTER_GROUP_SIZE", DEFAULT_GROUP_SIZE),
            "upload_timeout": _env_float(env, "EXPORTER_UPLOAD_TIMEOUT", 60.0),
            "api_timeout": _env_float(env, "EXPORTER_API_TIMEOUT", 30.0),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        if self.group_size < 1:
            raise ValidationError(f"group_size must be >= 1, got {self.group_size}")
        if self.upload_timeout <= 0:
            raise ValidationError("upload_timeout must be positive")
        if self.api_timeout <= 0:
            raise ValidationError("api_timeout must be positive")

    def owner_tag(self, entity_id: int) -> str:
        return f"{self.owner_tag_prefix}-{entity_id}"
