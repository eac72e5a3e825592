"""Validator configuration.

Policy knobs live in the pipeline's plugin config file under a
``metadata_validation`` section::

    metadata_validation:
      complexity:
        characteristics: 5
        leaf_contexts: 25
        estimated_examples: 50
      placeholder_tokens: ["{COMMON_SETUP}", "{SETUP_CODE}", "{EXPECTATION}"]
      controller_spec_prefix: spec/controllers/

Every key is optional; missing keys keep their defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Final[str] = ".claude/rspec-testing-config.yml"
CONFIG_SECTION: Final[str] = "metadata_validation"


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or does not validate."""


class ComplexityThresholds(BaseModel):
    """Values at or above which a method is flagged as a combinatorial risk."""

    characteristics: int = Field(default=5, ge=1, description="Characteristic count")
    leaf_contexts: int = Field(default=25, ge=1, description="Leaf context count")
    estimated_examples: int = Field(
        default=50, ge=1, description="Leaf contexts times (1 + side effects)"
    )


class ValidatorConfig(BaseModel):
    """All tunable policy used by :class:`~aumai_rspecmeta.core.MetadataValidator`."""

    complexity: ComplexityThresholds = Field(default_factory=ComplexityThresholds)
    placeholder_tokens: list[str] = Field(
        default_factory=lambda: ["{COMMON_SETUP}", "{SETUP_CODE}", "{EXPECTATION}"],
        description="Template tokens that must not survive in an implemented spec",
    )
    controller_spec_prefix: str = Field(
        default="spec/controllers/",
        description="spec_path prefix that triggers the request-spec advisory",
    )


def _read_section(path: Path) -> dict[str, object]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc.__class__.__name__}: {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    section = raw.get(CONFIG_SECTION) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: '{CONFIG_SECTION}' must be a mapping")
    return section


def load_config(path: str | None = None) -> ValidatorConfig:
    """Load configuration from *path*, or from the default plugin config.

    An explicit *path* that cannot be loaded raises :class:`ConfigError`.  The
    implicit default file is optional: when it is absent or unreadable the
    defaults are used and a warning is logged.
    """
    if path is not None:
        section = _read_section(Path(path))
        try:
            return ValidatorConfig.model_validate(section)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc

    default_path = Path(DEFAULT_CONFIG_PATH)
    if not default_path.exists():
        return ValidatorConfig()

    try:
        section = _read_section(default_path)
        config = ValidatorConfig.model_validate(section)
    except (ConfigError, ValidationError) as exc:
        logger.warning("Ignoring %s: %s", default_path, exc)
        return ValidatorConfig()

    logger.debug("Loaded validator configuration from %s", default_path)
    return config


__all__ = [
    "CONFIG_SECTION",
    "DEFAULT_CONFIG_PATH",
    "ComplexityThresholds",
    "ConfigError",
    "ValidatorConfig",
    "load_config",
]
