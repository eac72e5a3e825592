"""CLI entry point for aumai-rspecmeta."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from aumai_rspecmeta.config import ConfigError, ValidatorConfig, load_config
from aumai_rspecmeta.core import MetadataValidator, TreeExporter
from aumai_rspecmeta.loader import (
    MetadataLoadError,
    check_yaml_file,
    check_yaml_text,
    load_metadata,
)
from aumai_rspecmeta.models import Stage, ValidationResult

_STAGE_NAMES = [stage.value for stage in Stage]


class StageUsageError(click.UsageError):
    """Usage error that exits with 1, which the pipeline treats as a hard stop."""

    exit_code = 1


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


def _load_config_or_exit(config_path: str | None) -> ValidatorConfig:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _report(result: ValidationResult) -> None:
    """Print the result and exit 0 (clean), 1 (errors) or 2 (warnings only)."""
    if result.errors:
        click.echo("Metadata validation failed:", err=True)
        for issue in result.errors:
            click.echo(f"- {issue.message}", err=True)
        sys.exit(1)

    if result.warnings:
        click.echo("Metadata validation warnings:", err=True)
        for issue in result.warnings:
            click.echo(f"- {issue.message}", err=True)

    click.echo("OK")
    sys.exit(result.exit_code)


@click.command("validate-metadata-stage")
@click.option(
    "--stage",
    default=None,
    metavar="STAGE",
    help=f"Stage to validate ({' | '.join(_STAGE_NAMES)}).",
)
@click.option(
    "--metadata",
    "metadata_path",
    default=None,
    metavar="PATH",
    help="Path to metadata YAML file.",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Validator configuration file (default: .claude/rspec-testing-config.yml).",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug output to stderr.")
@click.pass_context
def validate_stage_command(
    ctx: click.Context,
    stage: str | None,
    metadata_path: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Validate a pipeline metadata file for one stage.

    Exits 0 when the metadata is valid, 1 on errors and 2 when it is valid
    but carries warnings that need a continue-or-reduce-scope decision.
    """
    if stage not in _STAGE_NAMES:
        raise StageUsageError(f"--stage must be one of: {', '.join(_STAGE_NAMES)}", ctx=ctx)
    if not metadata_path:
        raise StageUsageError("--metadata is required", ctx=ctx)

    _configure_logging(verbose)

    if not Path(metadata_path).exists():
        click.echo(f"Error: Metadata file not found: {metadata_path}", err=True)
        sys.exit(1)

    validator = MetadataValidator(_load_config_or_exit(config_path))
    result = validator.validate_file(metadata_path, stage)
    _report(result)


@click.group()
@click.version_option()
def main() -> None:
    """AumAI RSpecMeta CLI: validate RSpec pipeline metadata between stages."""


main.add_command(validate_stage_command, name="stage")


@main.command("yaml")
@click.argument("files", nargs=-1, metavar="[FILE]...")
@click.option(
    "--stdin",
    "read_stdin",
    is_flag=True,
    default=False,
    help="Read YAML from stdin (in addition to any FILE arguments).",
)
def yaml_command(files: tuple[str, ...], read_stdin: bool) -> None:
    """Check that YAML files parse, without validating their contents."""
    errors: list[str] = []

    if read_stdin:
        content = click.get_text_stream("stdin").read()
        error = check_yaml_text(content, "(stdin)")
        if error:
            errors.append(error)

    for path in files:
        error = check_yaml_file(path)
        if error:
            errors.append(error)

    if not errors:
        click.echo("OK")
        return

    click.echo(f"YAML validation failed ({len(errors)}):", err=True)
    for error in errors:
        click.echo(f"- {error}", err=True)
    sys.exit(1)


@main.command("tree")
@click.argument("metadata_path", metavar="METADATA", type=click.Path(exists=True, dir_okay=False))
@click.option("--method", "method_name", default=None, help="Only show this method.")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Validator configuration file (default: .claude/rspec-testing-config.yml).",
)
def tree_command(
    metadata_path: str, method_name: str | None, output: str, config_path: str | None
) -> None:
    """Print each method's characteristic tree and complexity estimate."""
    try:
        metadata = load_metadata(metadata_path)
    except MetadataLoadError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    exporter = TreeExporter(_load_config_or_exit(config_path))
    if output.lower() == "yaml":
        click.echo(exporter.to_yaml(metadata, method_name))
    else:
        click.echo(exporter.to_json(metadata, method_name))


if __name__ == "__main__":
    main()
