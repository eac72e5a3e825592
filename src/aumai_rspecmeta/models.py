"""Pydantic models for aumai-rspecmeta."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Stage(str, Enum):
    """Pipeline stages whose metadata output can be validated."""

    discovery_agent = "discovery-agent"
    code_analyzer = "code-analyzer"
    isolation_decider = "isolation-decider"
    test_architect = "test-architect"
    test_implementer = "test-implementer"


class IssueCategory(str, Enum):
    """Classes of problems the validator can report."""

    parse = "parse"
    schema = "schema"
    structural = "structural"
    reference = "reference"
    complexity = "complexity"


class ValidationIssue(BaseModel):
    """A single finding produced while validating a metadata document."""

    category: IssueCategory = Field(description="Which class of problem this is")
    severity: str = Field(description="Severity level: error or warning")
    message: str = Field(description="Human-readable description of the issue")

    @field_validator("severity")
    @classmethod
    def severity_must_be_valid(cls, value: str) -> str:
        """Restrict severity to known levels."""
        allowed = {"error", "warning"}
        if value not in allowed:
            raise ValueError(f"severity must be one of {allowed}, got {value!r}")
        return value


class ContextNode(BaseModel):
    """One characteristic value placed in a method's decision tree.

    ``characteristic`` and ``value`` are the raw mappings from the metadata
    document; the indices point back at their positions in
    ``characteristics[]`` and ``values[]``.
    """

    characteristic: dict[Any, Any] = Field(description="Raw characteristic mapping")
    value: dict[Any, Any] = Field(description="Raw value mapping")
    characteristic_index: int = Field(ge=0)
    value_index: int = Field(ge=0)
    terminal: bool = Field(default=False, description="True when value.terminal is true")
    children: list[ContextNode] = Field(
        default_factory=list, description="Nodes active under this value"
    )

    @property
    def characteristic_name(self) -> Any:
        return self.characteristic.get("name")

    @property
    def state(self) -> Any:
        return self.value.get("value")

    @property
    def behavior_id(self) -> Any:
        return self.value.get("behavior_id")


ContextNode.model_rebuild()


class ComplexityReport(BaseModel):
    """Size estimate for the examples a method's tree would generate."""

    method: str = Field(description="Method name")
    characteristic_count: int = Field(default=0, ge=0)
    leaf_contexts: int = Field(default=0, ge=0)
    side_effects_count: int = Field(default=0, ge=0)
    estimated_examples: int = Field(default=0, ge=0)
    exceeds_threshold: bool = Field(
        default=False, description="True when any metric reached its threshold"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one metadata document for one stage."""

    stage: Stage = Field(description="Stage whose rule set was applied")
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    complexity: list[ComplexityReport] = Field(
        default_factory=list, description="Per-method complexity estimates"
    )

    @property
    def valid(self) -> bool:
        """True when no errors are present."""
        return not self.errors

    @property
    def exit_code(self) -> int:
        """Process exit code: 0 clean, 1 errors, 2 warnings only."""
        if self.errors:
            return 1
        if self.warnings:
            return 2
        return 0


__all__ = [
    "Stage",
    "IssueCategory",
    "ValidationIssue",
    "ContextNode",
    "ComplexityReport",
    "ValidationResult",
]
