"""Gatekeeper configuration loader with Pydantic v2 validation.

Loads and validates a ``gatekeeper.yaml`` file into a typed
:class:`GatekeeperConfig` object. Unknown keys are allowed to support
future schema additions without breakage.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load_string("strict_mode: true\\ncache:\\n  enabled: true\\n")
>>> config.strict_mode, config.cache.ttl_seconds
(True, 300.0)
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class GatekeeperConfigError(ValueError):
    """Raised when a configuration or access-model file is invalid.

    Attributes
    ----------
    config_path:
        The path to the file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class CacheConfig(BaseModel):
    """Configuration for the effective-grant cache."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    ttl_seconds: float = Field(default=300.0, gt=0)
    max_entries: int = Field(default=1024, ge=1)


class AuditConfig(BaseModel):
    """Configuration for the decision log."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    log_path: Path = Field(default=Path("./gatekeeper_decisions.jsonl"))


class GatekeeperConfig(BaseModel):
    """Top-level gatekeeper configuration schema.

    All sections are optional and fall back to sensible defaults.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    permission_separator: str = Field(default=".")
    wildcard_support: bool = Field(default=True)
    strict_mode: bool = Field(default=False)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    model_files: list[Path] = Field(default_factory=list)

    @field_validator("permission_separator")
    @classmethod
    def validate_separator(cls, value: str) -> str:
        if not value:
            raise ValueError("permission_separator must not be empty")
        if "*" in value:
            raise ValueError("permission_separator must not contain the wildcard '*'")
        return value


class ConfigLoader:
    """Loads and validates gatekeeper YAML configuration."""

    def load(self, config_path: Path) -> GatekeeperConfig:
        """Load and validate a gatekeeper YAML file.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        GatekeeperConfigError:
            When the YAML cannot be parsed or fails validation.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Gatekeeper config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            return self._validate(fh.read(), str(config_path))

    def load_string(self, yaml_content: str) -> GatekeeperConfig:
        """Load and validate a YAML string directly."""
        return self._validate(yaml_content, None)

    def defaults(self) -> GatekeeperConfig:
        """Return a default configuration with all defaults applied."""
        return GatekeeperConfig()

    def _validate(self, yaml_content: str, config_path: str | None) -> GatekeeperConfig:
        try:
            raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise GatekeeperConfigError(f"Failed to parse YAML: {exc}", config_path) from exc
        if not isinstance(raw, dict):
            raise GatekeeperConfigError("Gatekeeper config must be a YAML mapping.", config_path)
        try:
            return GatekeeperConfig.model_validate(raw)
        except ValidationError as exc:
            raise GatekeeperConfigError(str(exc), config_path) from exc
