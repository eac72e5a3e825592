"""Comprehensive CLI tests for aumai-rspecmeta."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from aumai_rspecmeta.cli import main, validate_stage_command

from conftest import AUTHENTICATED_YAML, BROKEN_YAML, write_yaml


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def warning_file(tmp_path: Path, five_booleans_document: dict[str, Any]) -> Path:
    return write_yaml(tmp_path, five_booleans_document, "warnings.yml")


@pytest.fixture()
def failing_file(tmp_path: Path, authenticated_document: dict[str, Any]) -> Path:
    del authenticated_document["methods"][0]["characteristics"][0]["values"][1]["behavior_id"]
    return write_yaml(tmp_path, authenticated_document, "failing.yml")


@pytest.fixture()
def checkout_file(tmp_path: Path, checkout_document: dict[str, Any]) -> Path:
    return write_yaml(tmp_path, checkout_document, "checkout.yml")


# ---------------------------------------------------------------------------
# main group tests
# ---------------------------------------------------------------------------


class TestMainGroup:
    """Tests for the top-level CLI group."""

    def test_version_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "stage" in result.output
        assert "yaml" in result.output
        assert "tree" in result.output


# ---------------------------------------------------------------------------
# validate-metadata-stage
# ---------------------------------------------------------------------------


class TestValidateStageCommand:
    """Tests for the stage validator entry point and its exit codes."""

    def test_valid_metadata_exits_zero(self, runner: CliRunner, authenticated_file: Path) -> None:
        result = runner.invoke(
            validate_stage_command,
            ["--stage", "code-analyzer", "--metadata", str(authenticated_file)],
        )
        assert result.exit_code == 0
        assert result.stdout == "OK\n"
        assert result.stderr == ""

    def test_errors_exit_one(self, runner: CliRunner, failing_file: Path) -> None:
        result = runner.invoke(
            validate_stage_command, ["--stage", "code-analyzer", "--metadata", str(failing_file)]
        )
        assert result.exit_code == 1
        assert result.stdout == ""
        lines = result.stderr.splitlines()
        assert lines[0] == "Metadata validation failed:"
        assert (
            "- Missing values[].behavior_id on leaf value (method 'process'): authenticated=false"
            in lines
        )

    def test_warnings_exit_two(self, runner: CliRunner, warning_file: Path) -> None:
        result = runner.invoke(
            validate_stage_command, ["--stage", "code-analyzer", "--metadata", str(warning_file)]
        )
        assert result.exit_code == 2
        assert result.stdout == "OK\n"
        lines = result.stderr.splitlines()
        assert lines[0] == "Metadata validation warnings:"
        assert lines[1].startswith("- Potential combinatorial explosion for method 'process'")
        assert lines[-1] == "- AskUserQuestion recommended: continue generation vs pause and reduce scope"

    def test_unknown_stage_exits_one(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            validate_stage_command,
            ["--stage", "linter", "--metadata", str(tmp_path / "nowhere.yml")],
        )
        assert result.exit_code == 1
        assert "--stage must be one of: discovery-agent, code-analyzer" in result.stderr

    def test_missing_stage_exits_one(self, runner: CliRunner, authenticated_file: Path) -> None:
        result = runner.invoke(validate_stage_command, ["--metadata", str(authenticated_file)])
        assert result.exit_code == 1
        assert "--stage must be one of" in result.stderr

    def test_missing_metadata_option(self, runner: CliRunner) -> None:
        result = runner.invoke(validate_stage_command, ["--stage", "code-analyzer"])
        assert result.exit_code == 1
        assert "--metadata is required" in result.stderr

    def test_metadata_file_not_found(self, runner: CliRunner, tmp_path: Path) -> None:
        missing = tmp_path / "missing.yml"
        result = runner.invoke(
            validate_stage_command, ["--stage", "code-analyzer", "--metadata", str(missing)]
        )
        assert result.exit_code == 1
        assert result.stderr == f"Error: Metadata file not found: {missing}\n"

    def test_unparseable_metadata(self, runner: CliRunner, broken_file: Path) -> None:
        result = runner.invoke(
            validate_stage_command, ["--stage", "code-analyzer", "--metadata", str(broken_file)]
        )
        assert result.exit_code == 1
        lines = result.stderr.splitlines()
        assert lines[0] == "Metadata validation failed:"
        assert lines[1].startswith("- Cannot parse YAML: ")
        assert len(lines) >= 2

    def test_discovery_stage(
        self, runner: CliRunner, tmp_path: Path, discovery_document: dict[str, Any]
    ) -> None:
        path = write_yaml(tmp_path, discovery_document, "discovery.yml")
        result = runner.invoke(
            validate_stage_command, ["--stage", "discovery-agent", "--metadata", str(path)]
        )
        assert result.exit_code == 0

    def test_stage_subcommand_of_main(self, runner: CliRunner, warning_file: Path) -> None:
        result = runner.invoke(
            main, ["stage", "--stage", "code-analyzer", "--metadata", str(warning_file)]
        )
        assert result.exit_code == 2

    def test_config_thresholds_apply(
        self, runner: CliRunner, tmp_path: Path, authenticated_file: Path
    ) -> None:
        config = tmp_path / "rspec.yml"
        config.write_text(
            "metadata_validation:\n  complexity:\n    leaf_contexts: 2\n", encoding="utf-8"
        )
        result = runner.invoke(
            validate_stage_command,
            [
                "--stage", "code-analyzer",
                "--metadata", str(authenticated_file),
                "--config", str(config),
            ],
        )
        assert result.exit_code == 2
        assert "leaf_contexts≈2" in result.stderr

    def test_invalid_config_exits_one(
        self, runner: CliRunner, tmp_path: Path, authenticated_file: Path
    ) -> None:
        config = tmp_path / "rspec.yml"
        config.write_text("metadata_validation:\n  complexity:\n    leaf_contexts: 0\n", encoding="utf-8")
        result = runner.invoke(
            validate_stage_command,
            [
                "--stage", "code-analyzer",
                "--metadata", str(authenticated_file),
                "--config", str(config),
            ],
        )
        assert result.exit_code == 1
        assert result.stderr.startswith("Error: Invalid configuration in")

    def test_help_lists_stages(self, runner: CliRunner) -> None:
        result = runner.invoke(validate_stage_command, ["--help"])
        assert result.exit_code == 0
        assert "test-implementer" in result.output


# ---------------------------------------------------------------------------
# yaml command tests
# ---------------------------------------------------------------------------


class TestYamlCommand:
    """Tests for the 'yaml' syntax checker."""

    def test_valid_files(self, runner: CliRunner, authenticated_file: Path) -> None:
        result = runner.invoke(main, ["yaml", str(authenticated_file)])
        assert result.exit_code == 0
        assert result.stdout == "OK\n"

    def test_broken_file(self, runner: CliRunner, broken_file: Path, authenticated_file: Path) -> None:
        result = runner.invoke(main, ["yaml", str(authenticated_file), str(broken_file)])
        assert result.exit_code == 1
        lines = result.stderr.splitlines()
        assert lines[0] == "YAML validation failed (1):"
        assert lines[1].startswith(f"- {broken_file}: ")

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        missing = tmp_path / "gone.yml"
        result = runner.invoke(main, ["yaml", str(missing)])
        assert result.exit_code == 1
        assert f"- {missing}: file not found" in result.stderr

    def test_stdin(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["yaml", "--stdin"], input=AUTHENTICATED_YAML)
        assert result.exit_code == 0

    def test_broken_stdin_and_file_are_both_counted(
        self, runner: CliRunner, broken_file: Path
    ) -> None:
        result = runner.invoke(main, ["yaml", "--stdin", str(broken_file)], input=BROKEN_YAML)
        assert result.exit_code == 1
        lines = result.stderr.splitlines()
        assert lines[0] == "YAML validation failed (2):"
        assert lines[1].startswith("- (stdin): ")

    def test_no_input_is_ok(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["yaml"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# tree command tests
# ---------------------------------------------------------------------------


class TestTreeCommand:
    """Tests for the 'tree' exporter."""

    def test_json_output(self, runner: CliRunner, checkout_file: Path) -> None:
        result = runner.invoke(main, ["tree", str(checkout_file)])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["methods"][0]["name"] == "checkout"
        assert data["methods"][0]["complexity"]["leaf_contexts"] == 4

    def test_yaml_output(self, runner: CliRunner, checkout_file: Path) -> None:
        result = runner.invoke(main, ["tree", str(checkout_file), "-o", "yaml"])
        assert result.exit_code == 0
        data = yaml.safe_load(result.stdout)
        assert [ctx["value"] for ctx in data["methods"][0]["contexts"]] == [True, False]

    def test_method_filter(self, runner: CliRunner, checkout_file: Path) -> None:
        result = runner.invoke(main, ["tree", str(checkout_file), "--method", "refund"])
        assert json.loads(result.stdout) == {"methods": []}

    def test_unparseable_file(self, runner: CliRunner, broken_file: Path) -> None:
        result = runner.invoke(main, ["tree", str(broken_file)])
        assert result.exit_code == 1
        assert result.stderr.startswith("Error: Cannot parse YAML:")

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(main, ["tree", str(tmp_path / "nope.yml")])
        assert result.exit_code != 0
