"""Core logic for aumai-rspecmeta: stage validation and tree export."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Final

import yaml

from aumai_rspecmeta.behaviors import has_behavior_id, index_behaviors, resolve_behavior_id
from aumai_rspecmeta.complexity import (
    ASK_USER_RECOMMENDATION,
    estimate_complexity,
    explosion_warning,
)
from aumai_rspecmeta.config import ValidatorConfig
from aumai_rspecmeta.loader import MetadataLoadError, load_metadata
from aumai_rspecmeta.models import (
    ComplexityReport,
    ContextNode,
    IssueCategory,
    Stage,
    ValidationIssue,
    ValidationResult,
)
from aumai_rspecmeta.schema import (
    IssueCollector,
    is_integer,
    require_array,
    require_bool,
    require_enum,
    require_hash,
    require_int,
    require_string,
)
from aumai_rspecmeta.tree import CharacteristicTree

logger = logging.getLogger(__name__)

_METHOD_MODES: Final[tuple[str, ...]] = ("new", "modified", "unchanged")
_METHOD_TYPES: Final[tuple[str, ...]] = ("instance", "class")
_SOURCE_KINDS: Final[tuple[str, ...]] = ("internal", "external")
_SETUP_TYPES: Final[tuple[str, ...]] = ("model", "data", "action")
_TEST_LEVELS: Final[tuple[str, ...]] = ("unit", "integration", "request")
_CONFIDENCE_LEVELS: Final[tuple[str, ...]] = ("high", "medium", "low")
_ISOLATION_MODES: Final[tuple[str, ...]] = ("real", "stubbed", "none")
_ISOLATION_KEYS: Final[tuple[str, ...]] = ("db", "external_http", "queue")


def _display_name(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _scalar(value: Any) -> str:
    """Render a YAML scalar the way it was written (true, null, 42)."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    return str(value)


def _unique(items: list[Any]) -> list[Any]:
    seen: list[Any] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


StageHandler = Callable[[dict[str, Any], IssueCollector], list[ComplexityReport]]


class MetadataValidator:
    """Validate pipeline metadata documents against per-stage rule sets.

    All checks for a stage run and accumulate before a result is returned;
    only an unparseable file stops validation early.  The validator never
    modifies the document it inspects.
    """

    def __init__(self, config: ValidatorConfig | None = None) -> None:
        self._config = config or ValidatorConfig()
        self._handlers: dict[Stage, StageHandler] = {
            Stage.discovery_agent: self._validate_discovery_agent,
            Stage.code_analyzer: self._validate_code_analyzer,
            Stage.isolation_decider: self._validate_isolation_decider,
            Stage.test_architect: self._validate_test_architect,
            Stage.test_implementer: self._validate_test_implementer,
        }

    @property
    def config(self) -> ValidatorConfig:
        return self._config

    def validate(self, metadata: Any, stage: Stage | str) -> ValidationResult:
        """Run the rule set for *stage* over an already-parsed *metadata* document.

        Raises:
            ValueError: If *stage* does not name a known stage.
        """
        stage = Stage(stage)
        issues = IssueCollector()
        reports: list[ComplexityReport] = []

        if require_hash(metadata, "metadata", issues):
            reports = self._handlers[stage](metadata, issues)

        logger.info(
            "Validated %s metadata: %d errors, %d warnings",
            stage.value,
            len(issues.errors),
            len(issues.warnings),
        )
        return ValidationResult(
            stage=stage,
            errors=issues.errors,
            warnings=issues.warnings,
            complexity=reports,
        )

    def validate_file(self, path: str | Path, stage: Stage | str) -> ValidationResult:
        """Load *path* and validate it; a parse failure becomes the only error."""
        stage = Stage(stage)
        try:
            metadata = load_metadata(path)
        except MetadataLoadError as exc:
            return ValidationResult(
                stage=stage,
                errors=[
                    ValidationIssue(
                        category=IssueCategory.parse, severity="error", message=str(exc)
                    )
                ],
            )
        return self.validate(metadata, stage)

    # ------------------------------------------------------------------
    # Shared checks
    # ------------------------------------------------------------------

    def _check_automation(
        self, metadata: dict[str, Any], flags: list[str], issues: IssueCollector
    ) -> None:
        automation = metadata.get("automation")
        if automation is None:
            automation = {}
        if not require_hash(automation, "automation", issues):
            automation = {}
        for flag in flags:
            require_bool(automation.get(flag), f"automation.{flag}", issues)

    def _check_selection(
        self, selection: Any, methods: list[Any], issues: IssueCollector
    ) -> None:
        """Compare the names selected upstream with the methods analyzed."""
        if not isinstance(selection, list):
            return
        selected = _unique(
            [
                entry.get("name")
                for entry in selection
                if isinstance(entry, dict)
                and entry.get("selected") is True
                and entry.get("name") is not None
            ]
        )
        if not selected:
            return
        analyzed = _unique(
            [
                method.get("name")
                for method in methods
                if isinstance(method, dict) and method.get("name") is not None
            ]
        )
        missing = [name for name in selected if name not in analyzed]
        extra = [name for name in analyzed if name not in selected]
        if missing:
            issues.error(
                f"methods missing selected methods: {', '.join(map(_display_name, missing))}",
                IssueCategory.reference,
            )
        if extra:
            issues.error(
                f"methods contains unselected methods: {', '.join(map(_display_name, extra))}",
                IssueCategory.reference,
            )

    # ------------------------------------------------------------------
    # discovery-agent
    # ------------------------------------------------------------------

    def _validate_discovery_agent(
        self, metadata: dict[str, Any], issues: IssueCollector
    ) -> list[ComplexityReport]:
        self._check_automation(metadata, ["discovery_agent_completed"], issues)

        require_string(metadata.get("source_file"), "source_file", issues)
        require_string(metadata.get("class_name"), "class_name", issues)
        require_string(metadata.get("spec_path"), "spec_path", issues)

        complexity = metadata.get("complexity")
        if require_hash(complexity, "complexity", issues):
            require_string(complexity.get("zone"), "complexity.zone", issues)

        methods_to_analyze = metadata.get("methods_to_analyze")
        if require_array(methods_to_analyze, "methods_to_analyze", issues):
            if not methods_to_analyze:
                issues.error("methods_to_analyze must not be empty")
            for idx, entry in enumerate(methods_to_analyze):
                self._check_method_to_analyze(entry, f"methods_to_analyze[{idx}]", issues)

        spec_path = metadata.get("spec_path")
        prefix = self._config.controller_spec_prefix
        if isinstance(spec_path, str) and spec_path.startswith(prefix):
            issues.warning(
                f"spec_path is under {prefix.rstrip('/')}; "
                "prefer spec/requests for new Rails controllers tests",
                IssueCategory.schema,
            )
        return []

    def _check_method_to_analyze(self, entry: Any, label: str, issues: IssueCollector) -> None:
        if not require_hash(entry, label, issues):
            return
        require_string(entry.get("name"), f"{label}.name", issues)
        require_enum(entry.get("method_mode"), f"{label}.method_mode", _METHOD_MODES, issues)
        require_bool(entry.get("selected"), f"{label}.selected", issues)

        line_range = entry.get("line_range")
        if not require_array(line_range, f"{label}.line_range", issues):
            return
        if len(line_range) != 2:
            issues.error(f"{label}.line_range must be [start, end]")
            return
        start_ok = require_int(line_range[0], f"{label}.line_range[0]", issues)
        end_ok = require_int(line_range[1], f"{label}.line_range[1]", issues)
        if start_ok and end_ok and line_range[0] > line_range[1]:
            issues.error(f"{label}.line_range start must not be after end")

    # ------------------------------------------------------------------
    # code-analyzer
    # ------------------------------------------------------------------

    def _validate_code_analyzer(
        self, metadata: dict[str, Any], issues: IssueCollector
    ) -> list[ComplexityReport]:
        self._check_automation(metadata, ["code_analyzer_completed"], issues)

        require_string(metadata.get("slug"), "slug", issues)
        require_string(metadata.get("source_file"), "source_file", issues)
        require_int(metadata.get("source_mtime"), "source_mtime", issues)
        require_string(metadata.get("class_name"), "class_name", issues)

        bank: dict[str, dict[str, Any]] = {}
        behaviors = metadata.get("behaviors")
        if require_array(behaviors, "behaviors", issues):
            bank = index_behaviors(behaviors, issues)

        methods = metadata.get("methods")
        if not require_array(methods, "methods", issues):
            return []
        if not methods:
            issues.error("methods must not be empty")
            return []

        self._check_selection(metadata.get("methods_to_analyze"), methods, issues)

        reports: list[ComplexityReport] = []
        for idx, method in enumerate(methods):
            report = self._check_analyzed_method(method, idx, bank, issues)
            if report is not None:
                reports.append(report)

        flagged = [report for report in reports if report.exceeds_threshold]
        for report in flagged:
            issues.warning(explosion_warning(report))
        if flagged:
            issues.warning(ASK_USER_RECOMMENDATION)
        return reports

    def _check_analyzed_method(
        self,
        method: Any,
        idx: int,
        bank: dict[str, dict[str, Any]],
        issues: IssueCollector,
    ) -> ComplexityReport | None:
        label = f"methods[{idx}]"
        if not require_hash(method, label, issues):
            return None

        require_string(method.get("name"), f"{label}.name", issues)
        require_enum(method.get("type"), f"{label}.type", _METHOD_TYPES, issues)
        require_bool(method.get("analyzed"), f"{label}.analyzed", issues)
        require_enum(method.get("method_mode"), f"{label}.method_mode", _METHOD_MODES, issues)
        name = _display_name(method.get("name"))

        characteristics = method.get("characteristics")
        chars_ok = require_array(characteristics, f"{label}.characteristics", issues)

        side_effects = method.get("side_effects")
        if side_effects is None:
            side_effects = []
        effects_ok = require_array(side_effects, f"{label}.side_effects", issues)

        report: ComplexityReport | None = None
        if chars_ok:
            for cidx, char in enumerate(characteristics):
                self._check_characteristic(char, f"{label}.characteristics[{cidx}]", issues)

            tree = CharacteristicTree(characteristics)
            self._check_reachability(tree, label, name, issues)
            self._check_leaf_bindings(tree, name, issues)

            for cidx, char in enumerate(characteristics):
                values = char.get("values") if isinstance(char, dict) else None
                if not isinstance(values, list):
                    continue
                for vidx, value in enumerate(values):
                    if isinstance(value, dict):
                        resolve_behavior_id(
                            value.get("behavior_id"),
                            bank,
                            f"{label}.characteristics[{cidx}].values[{vidx}] (method '{name}')",
                            issues,
                        )

            report = estimate_complexity(
                name,
                tree,
                len(side_effects) if effects_ok else 0,
                self._config.complexity,
            )

        if effects_ok:
            for eidx, effect in enumerate(side_effects):
                effect_label = f"{label}.side_effects[{eidx}]"
                if not require_hash(effect, effect_label, issues):
                    continue
                require_string(effect.get("behavior_id"), f"{effect_label}.behavior_id", issues)
                resolve_behavior_id(
                    effect.get("behavior_id"), bank, f"{effect_label} (method '{name}')", issues
                )
        return report

    def _check_characteristic(self, char: Any, label: str, issues: IssueCollector) -> None:
        if not require_hash(char, label, issues):
            return

        require_string(char.get("name"), f"{label}.name", issues)
        require_string(char.get("description"), f"{label}.description", issues)
        require_string(char.get("type"), f"{label}.type", issues)

        level = char.get("level")
        if require_int(level, f"{label}.level", issues) and level < 1:
            issues.error(f"{label}.level must be a positive Integer")

        depends_on = char.get("depends_on")
        if depends_on is not None:
            require_string(depends_on, f"{label}.depends_on", issues)
        when_parent = char.get("when_parent")
        if when_parent is not None:
            require_array(when_parent, f"{label}.when_parent", issues)

        values = char.get("values")
        require_array(values, f"{label}.values", issues)

        source = char.get("source")
        if require_hash(source, f"{label}.source", issues):
            require_enum(source.get("kind"), f"{label}.source.kind", _SOURCE_KINDS, issues)

        setup = char.get("setup")
        if require_hash(setup, f"{label}.setup", issues):
            require_enum(setup.get("type"), f"{label}.setup.type", _SETUP_TYPES, issues)

        if not isinstance(values, list):
            return
        if not values:
            issues.error(f"{label}.values must not be empty")
        for vidx, value in enumerate(values):
            value_label = f"{label}.values[{vidx}]"
            if not require_hash(value, value_label, issues):
                continue
            if "value" not in value:
                issues.error(f"{value_label}.value is required")
            require_bool(value.get("terminal"), f"{value_label}.terminal", issues)
            require_string(value.get("description"), f"{value_label}.description", issues)
            if value.get("terminal") is True:
                require_string(value.get("behavior_id"), f"{value_label}.behavior_id", issues)

    def _check_reachability(
        self, tree: CharacteristicTree, label: str, name: str, issues: IssueCollector
    ) -> None:
        """Report characteristics that no parent state ever activates.

        Characteristics whose level, depends_on or values are malformed have
        already been reported by the schema checks and are skipped here.
        """
        known = {
            char.get("name")
            for char in tree.characteristics
            if isinstance(char, dict) and isinstance(char.get("name"), str)
        }
        for cidx in tree.unreachable_indices():
            char = tree.characteristics[cidx]
            level = char.get("level")
            depends_on = char.get("depends_on")
            values = char.get("values")
            if not is_integer(level) or level < 1:
                continue
            if depends_on is not None and not isinstance(depends_on, str):
                continue
            if not isinstance(values, list) or not any(isinstance(v, dict) for v in values):
                continue

            char_label = f"{label}.characteristics[{cidx}]"
            if depends_on is not None and depends_on not in known:
                issues.error(
                    f"{char_label}.depends_on references unknown characteristic "
                    f"'{depends_on}' (method '{name}')",
                    IssueCategory.structural,
                )
            else:
                issues.error(
                    f"{char_label} ('{_display_name(char.get('name'))}') is unreachable: "
                    f"no parent state matches its level/depends_on/when_parent "
                    f"(method '{name}')",
                    IssueCategory.structural,
                )

    def _check_leaf_bindings(
        self, tree: CharacteristicTree, name: str, issues: IssueCollector
    ) -> None:
        """Every leaf context must name the behavior its example asserts."""
        unbound: dict[tuple[int, int], ContextNode] = {}
        for leaf in tree.leaves():
            if not has_behavior_id(leaf.behavior_id):
                unbound.setdefault((leaf.characteristic_index, leaf.value_index), leaf)
        if not unbound:
            return
        detail = ", ".join(
            f"{_display_name(leaf.characteristic_name)}={_scalar(leaf.state)}"
            for leaf in unbound.values()
        )
        issues.error(
            f"Missing values[].behavior_id on leaf value (method '{name}'): {detail}",
            IssueCategory.structural,
        )

    # ------------------------------------------------------------------
    # isolation-decider
    # ------------------------------------------------------------------

    def _validate_isolation_decider(
        self, metadata: dict[str, Any], issues: IssueCollector
    ) -> list[ComplexityReport]:
        self._check_automation(
            metadata, ["code_analyzer_completed", "isolation_decider_completed"], issues
        )

        methods = metadata.get("methods")
        if not require_array(methods, "methods", issues):
            return []

        for idx, method in enumerate(methods):
            label = f"methods[{idx}]"
            if not require_hash(method, label, issues):
                continue
            test_config = method.get("test_config")
            if not require_hash(test_config, f"{label}.test_config", issues):
                continue
            config_label = f"{label}.test_config"
            require_enum(
                test_config.get("test_level"), f"{config_label}.test_level", _TEST_LEVELS, issues
            )
            require_enum(
                test_config.get("confidence"),
                f"{config_label}.confidence",
                _CONFIDENCE_LEVELS,
                issues,
            )
            isolation = test_config.get("isolation")
            if require_hash(isolation, f"{config_label}.isolation", issues):
                for key in _ISOLATION_KEYS:
                    require_enum(
                        isolation.get(key),
                        f"{config_label}.isolation.{key}",
                        _ISOLATION_MODES,
                        issues,
                    )
            require_array(
                test_config.get("decision_trace"), f"{config_label}.decision_trace", issues
            )
        return []

    # ------------------------------------------------------------------
    # test-architect
    # ------------------------------------------------------------------

    def _validate_test_architect(
        self, metadata: dict[str, Any], issues: IssueCollector
    ) -> list[ComplexityReport]:
        self._check_automation(
            metadata,
            [
                "code_analyzer_completed",
                "isolation_decider_completed",
                "test_architect_completed",
            ],
            issues,
        )

        spec_file = metadata.get("spec_file")
        spec_path = metadata.get("spec_path")
        require_string(spec_file, "spec_file", issues)
        require_string(spec_path, "spec_path", issues)

        if isinstance(spec_file, str) and isinstance(spec_path, str) and spec_file != spec_path:
            issues.error(
                f"spec_file and spec_path must match "
                f"(spec_file={spec_file} spec_path={spec_path})"
            )

        if isinstance(spec_file, str) and spec_file.strip() and not Path(spec_file).exists():
            issues.error(f"spec_file does not exist: {spec_file}")
        return []

    # ------------------------------------------------------------------
    # test-implementer
    # ------------------------------------------------------------------

    def _validate_test_implementer(
        self, metadata: dict[str, Any], issues: IssueCollector
    ) -> list[ComplexityReport]:
        self._check_automation(metadata, ["test_implementer_completed"], issues)

        spec_file = metadata.get("spec_file") or metadata.get("spec_path")
        if not require_string(spec_file, "spec_file/spec_path", issues):
            return []

        path = Path(spec_file)
        if not path.exists():
            issues.error(f"spec_file does not exist: {spec_file}")
            return []

        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            issues.error(f"Cannot read spec_file {spec_file}: {exc}")
            return []

        remaining = [token for token in self._config.placeholder_tokens if token in content]
        if remaining:
            issues.error(f"Spec still contains placeholders: {', '.join(remaining)}")
        return []


class TreeExporter:
    """Export each method's reconstructed context forest to JSON or YAML."""

    def __init__(self, config: ValidatorConfig | None = None) -> None:
        self._config = config or ValidatorConfig()

    def _node_to_dict(self, node: ContextNode) -> dict[str, Any]:
        return {
            "characteristic": node.characteristic_name,
            "value": node.state,
            "terminal": node.terminal,
            "behavior_id": node.behavior_id,
            "children": [self._node_to_dict(child) for child in node.children],
        }

    def to_dict(self, metadata: Any, method_name: str | None = None) -> dict[str, Any]:
        """Return ``{"methods": [...]}`` for every (or one named) analyzed method."""
        methods = metadata.get("methods") if isinstance(metadata, dict) else None
        exported: list[dict[str, Any]] = []
        for method in methods if isinstance(methods, list) else []:
            if not isinstance(method, dict):
                continue
            if method_name is not None and method.get("name") != method_name:
                continue
            characteristics = method.get("characteristics")
            if not isinstance(characteristics, list):
                characteristics = []
            side_effects = method.get("side_effects")
            side_effects_count = len(side_effects) if isinstance(side_effects, list) else 0

            name = _display_name(method.get("name"))
            tree = CharacteristicTree(characteristics)
            report = estimate_complexity(
                name, tree, side_effects_count, self._config.complexity
            )
            exported.append(
                {
                    "name": name,
                    "complexity": report.model_dump(exclude={"method"}),
                    "contexts": [self._node_to_dict(node) for node in tree.roots()],
                }
            )
        return {"methods": exported}

    def to_json(self, metadata: Any, method_name: str | None = None) -> str:
        data = self.to_dict(metadata, method_name)
        return json.dumps(data, indent=2, ensure_ascii=False, default=str)

    def to_yaml(self, metadata: Any, method_name: str | None = None) -> str:
        data = self.to_dict(metadata, method_name)
        return str(yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False))


__all__ = [
    "MetadataValidator",
    "TreeExporter",
]
