"""Reading YAML metadata and checking YAML syntax."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


class MetadataLoadError(Exception):
    """Raised when a metadata file cannot be read or parsed."""


def _describe(exc: yaml.YAMLError) -> str:
    return f"{exc.__class__.__name__}: {exc}"


def parse_metadata(content: str) -> Any:
    """Parse YAML *content* with the safe loader.

    Raises:
        MetadataLoadError: If *content* is not valid YAML.
    """
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise MetadataLoadError(f"Cannot parse YAML: {_describe(exc)}") from exc


def load_metadata(path: str | Path) -> Any:
    """Read *path* from disk and delegate to :func:`parse_metadata`."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MetadataLoadError(f"Cannot read {path}: {exc}") from exc
    logger.debug("Loaded %d bytes of metadata from %s", len(content), path)
    return parse_metadata(content)


def check_yaml_text(content: str, label: str) -> str | None:
    """Return an error line for *content*, or None when it parses."""
    try:
        yaml.safe_load(content)
    except yaml.YAMLError as exc:
        return f"{label}: {_describe(exc)}"
    return None


def check_yaml_file(path: str | Path) -> str | None:
    """Return an error line for the YAML file at *path*, or None when it parses."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return f"{path}: file not found"
    except PermissionError:
        return f"{path}: permission denied"
    except (OSError, UnicodeDecodeError) as exc:
        return f"{path}: {exc}"
    return check_yaml_text(content, str(path))


__all__ = [
    "MetadataLoadError",
    "check_yaml_file",
    "check_yaml_text",
    "load_metadata",
    "parse_metadata",
]
