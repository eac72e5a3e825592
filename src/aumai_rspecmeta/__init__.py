"""AumAI RSpecMeta: validate RSpec pipeline metadata between agent stages."""

from aumai_rspecmeta.config import (
    ComplexityThresholds,
    ConfigError,
    ValidatorConfig,
    load_config,
)
from aumai_rspecmeta.core import MetadataValidator, TreeExporter
from aumai_rspecmeta.loader import MetadataLoadError, load_metadata, parse_metadata
from aumai_rspecmeta.models import (
    ComplexityReport,
    ContextNode,
    IssueCategory,
    Stage,
    ValidationIssue,
    ValidationResult,
)
from aumai_rspecmeta.tree import CharacteristicTree, leaf_nodes

__version__ = "0.1.0"

__all__ = [
    # Core API
    "MetadataValidator",
    "TreeExporter",
    "CharacteristicTree",
    "leaf_nodes",
    # Loading
    "MetadataLoadError",
    "load_metadata",
    "parse_metadata",
    # Configuration
    "ComplexityThresholds",
    "ConfigError",
    "ValidatorConfig",
    "load_config",
    # Models
    "ComplexityReport",
    "ContextNode",
    "IssueCategory",
    "Stage",
    "ValidationIssue",
    "ValidationResult",
]
