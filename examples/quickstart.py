"""Quickstart examples for aumai-rspecmeta.

Demonstrates the main use cases:
  1. Validating code-analyzer metadata and reading the result
  2. Spotting an unbound leaf context
  3. Reviewing the combinatorial-explosion estimate
  4. Exporting the characteristic tree to JSON and YAML

Run this file directly to see all demos:

    python examples/quickstart.py
"""

from __future__ import annotations

import copy
import json

from aumai_rspecmeta import (
    ComplexityThresholds,
    MetadataValidator,
    TreeExporter,
    ValidatorConfig,
    parse_metadata,
)

# ---------------------------------------------------------------------------
# Sample metadata used throughout the demos
# ---------------------------------------------------------------------------

SAMPLE_METADATA = """
slug: app_services_checkout
source_file: app/services/checkout.rb
source_mtime: 1718000000
class_name: Checkout
automation:
  discovery_agent_completed: true
  code_analyzer_completed: true
methods_to_analyze:
  - name: call
    method_mode: new
    line_range: [5, 40]
    selected: true
behaviors:
  - id: returns_order
    description: returns the placed order
    type: success
    enabled: true
  - id: raises_unauthorized
    description: raises an authorization error
    type: terminal
    enabled: true
  - id: raises_declined
    description: raises a card declined error
    type: terminal
    enabled: true
  - id: sends_receipt
    description: sends a receipt email
    type: side_effect
    enabled: true
methods:
  - name: call
    type: instance
    analyzed: true
    method_mode: new
    characteristics:
      - name: authenticated
        description: whether the buyer is signed in
        type: boolean
        level: 1
        depends_on: null
        when_parent: null
        source: {kind: internal}
        setup: {type: data}
        values:
          - {value: true, description: signed in, terminal: false}
          - {value: false, description: signed out, terminal: true, behavior_id: raises_unauthorized}
      - name: card_valid
        description: whether the card is accepted
        type: boolean
        level: 2
        depends_on: authenticated
        when_parent: [true]
        source: {kind: external}
        setup: {type: action}
        values:
          - {value: true, description: accepted, terminal: false, behavior_id: returns_order}
          - {value: false, description: declined, terminal: true, behavior_id: raises_declined}
    side_effects:
      - {type: email, description: receipt, behavior_id: sends_receipt}
"""


def demo_validation() -> None:
    """Demo 1: Validate a well-formed code-analyzer document."""
    print("=" * 60)
    print("DEMO 1 - Stage validation")
    print("=" * 60)

    metadata = parse_metadata(SAMPLE_METADATA)
    result = MetadataValidator().validate(metadata, "code-analyzer")
    print(f"valid={result.valid} exit_code={result.exit_code}")
    print(f"errors={len(result.errors)} warnings={len(result.warnings)}")
    print()


def demo_unbound_leaf() -> None:
    """Demo 2: Remove a behavior_id from a leaf and read the errors."""
    print("=" * 60)
    print("DEMO 2 - Unbound leaf context")
    print("=" * 60)

    metadata = copy.deepcopy(parse_metadata(SAMPLE_METADATA))
    card_valid = metadata["methods"][0]["characteristics"][1]
    del card_valid["values"][0]["behavior_id"]

    result = MetadataValidator().validate(metadata, "code-analyzer")
    print(f"exit_code={result.exit_code}")
    for issue in result.errors:
        print(f"  [{issue.category.value}] {issue.message}")
    print()


def demo_complexity() -> None:
    """Demo 3: Tighten the thresholds so the sample method is flagged.

    Real pipelines set these under ``metadata_validation`` in
    ``.claude/rspec-testing-config.yml``.
    """
    print("=" * 60)
    print("DEMO 3 - Complexity estimate")
    print("=" * 60)

    config = ValidatorConfig(complexity=ComplexityThresholds(estimated_examples=6))
    result = MetadataValidator(config).validate(parse_metadata(SAMPLE_METADATA), "code-analyzer")
    for report in result.complexity:
        print(
            f"{report.method}: characteristics={report.characteristic_count} "
            f"leaf_contexts={report.leaf_contexts} examples={report.estimated_examples}"
        )
    for issue in result.warnings:
        print(f"  [WARNING] {issue.message}")
    print(f"exit_code={result.exit_code}")
    print()


def demo_tree_export() -> None:
    """Demo 4: Export the reconstructed context tree."""
    print("=" * 60)
    print("DEMO 4 - Tree export")
    print("=" * 60)

    exporter = TreeExporter()
    metadata = parse_metadata(SAMPLE_METADATA)

    data = json.loads(exporter.to_json(metadata))
    for context in data["methods"][0]["contexts"]:
        print(f"{context['characteristic']}={context['value']} -> {context['behavior_id']}")
        for child in context["children"]:
            print(f"  {child['characteristic']}={child['value']} -> {child['behavior_id']}")

    print("\nYAML export (first 8 lines):")
    for line in exporter.to_yaml(metadata, "call").splitlines()[:8]:
        print(line)
    print("...")
    print()


def main() -> None:
    """Run all demos in sequence."""
    demo_validation()
    demo_unbound_leaf()
    demo_complexity()
    demo_tree_export()

    print("All demos complete.")


if __name__ == "__main__":
    main()
