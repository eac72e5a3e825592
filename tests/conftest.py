"""Shared pytest fixtures for aumai-rspecmeta tests."""

from __future__ import annotations

import copy
import textwrap
from pathlib import Path
from typing import Any

import pytest
import yaml

from aumai_rspecmeta.core import MetadataValidator


# ---------------------------------------------------------------------------
# Raw YAML fixtures
# ---------------------------------------------------------------------------

AUTHENTICATED_YAML = textwrap.dedent(
    """\
    slug: app_services_payment_processor
    source_file: app/services/payment_processor.rb
    source_mtime: 1718000000
    class_name: PaymentProcessor
    automation:
      discovery_agent_completed: true
      code_analyzer_completed: true
    methods_to_analyze:
      - name: process
        method_mode: new
        line_range: [10, 42]
        selected: true
    behaviors:
      - id: returns_completed
        description: returns a completed payment
        type: success
        enabled: true
      - id: raises_unauthorized
        description: raises an authorization error
        type: terminal
        enabled: true
    methods:
      - name: process
        type: instance
        analyzed: true
        method_mode: new
        characteristics:
          - name: authenticated
            description: whether the user is signed in
            type: boolean
            level: 1
            depends_on: null
            when_parent: null
            source:
              kind: internal
            setup:
              type: data
            values:
              - value: true
                description: signed in
                terminal: true
                behavior_id: returns_completed
              - value: false
                description: signed out
                terminal: true
                behavior_id: raises_unauthorized
        side_effects: []
    """
)

DISCOVERY_YAML = textwrap.dedent(
    """\
    source_file: app/services/payment_processor.rb
    class_name: PaymentProcessor
    spec_path: spec/services/payment_processor_spec.rb
    complexity:
      zone: green
    automation:
      discovery_agent_completed: true
    methods_to_analyze:
      - name: process
        method_mode: new
        line_range: [10, 42]
        selected: true
      - name: refund
        method_mode: unchanged
        line_range: [44, 60]
        selected: false
    """
)

BROKEN_YAML = "methods:\n  - name: process\n    type: instance: class\n"


# ---------------------------------------------------------------------------
# Document builders
# ---------------------------------------------------------------------------


def make_value(
    value: Any,
    *,
    terminal: bool = True,
    behavior_id: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """Build one characteristic value mapping."""
    entry: dict[str, Any] = {
        "value": value,
        "description": description or f"value {value}",
        "terminal": terminal,
    }
    if behavior_id is not None:
        entry["behavior_id"] = behavior_id
    return entry


def make_characteristic(
    name: str,
    values: list[dict[str, Any]],
    *,
    level: int = 1,
    depends_on: str | None = None,
    when_parent: list[Any] | None = None,
) -> dict[str, Any]:
    """Build one characteristic mapping with valid source/setup blocks."""
    return {
        "name": name,
        "description": f"characteristic {name}",
        "type": "boolean",
        "level": level,
        "depends_on": depends_on,
        "when_parent": when_parent,
        "source": {"kind": "internal"},
        "setup": {"type": "data"},
        "values": values,
    }


def make_method(
    name: str,
    characteristics: list[dict[str, Any]],
    side_effects: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "name": name,
        "type": "instance",
        "analyzed": True,
        "method_mode": "new",
        "characteristics": characteristics,
        "side_effects": side_effects or [],
    }


def make_behaviors(*ids: str) -> list[dict[str, Any]]:
    return [
        {"id": behavior_id, "description": f"behavior {behavior_id}", "type": "success", "enabled": True}
        for behavior_id in ids
    ]


def code_analyzer_document(
    methods: list[dict[str, Any]],
    behaviors: list[dict[str, Any]],
    selected: list[str] | None = None,
) -> dict[str, Any]:
    """Assemble a full code-analyzer stage document."""
    document: dict[str, Any] = {
        "slug": "app_services_payment_processor",
        "source_file": "app/services/payment_processor.rb",
        "source_mtime": 1718000000,
        "class_name": "PaymentProcessor",
        "automation": {"code_analyzer_completed": True},
        "behaviors": behaviors,
        "methods": methods,
    }
    if selected is not None:
        document["methods_to_analyze"] = [
            {"name": name, "method_mode": "new", "line_range": [1, 2], "selected": True}
            for name in selected
        ]
    return document


def checkout_characteristics() -> list[dict[str, Any]]:
    """A three-level tree with four leaves.

    authenticated=false is terminal; authenticated=true branches on
    payment_method; payment_method=card branches on card_valid;
    payment_method=wallet has no children and is a leaf by omission.
    """
    return [
        make_characteristic(
            "authenticated",
            [
                make_value(True, terminal=False),
                make_value(False, behavior_id="raises_unauthorized"),
            ],
        ),
        make_characteristic(
            "payment_method",
            [
                make_value("card", terminal=False),
                make_value("wallet", terminal=False, behavior_id="returns_completed"),
            ],
            level=2,
            depends_on="authenticated",
            when_parent=[True],
        ),
        make_characteristic(
            "card_valid",
            [
                make_value(True, terminal=False, behavior_id="returns_completed"),
                make_value(False, behavior_id="raises_declined"),
            ],
            level=3,
            depends_on="payment_method",
            when_parent=["card"],
        ),
    ]


CHECKOUT_BEHAVIORS = ("returns_completed", "raises_unauthorized", "raises_declined", "sends_receipt")


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def validator() -> MetadataValidator:
    return MetadataValidator()


@pytest.fixture()
def authenticated_document() -> dict[str, Any]:
    """Scenario document: one root boolean characteristic, both values bound."""
    return yaml.safe_load(AUTHENTICATED_YAML)


@pytest.fixture()
def discovery_document() -> dict[str, Any]:
    return yaml.safe_load(DISCOVERY_YAML)


@pytest.fixture()
def checkout_document() -> dict[str, Any]:
    """A code-analyzer document with a nested tree and one side effect."""
    method = make_method(
        "checkout",
        checkout_characteristics(),
        side_effects=[{"type": "email", "behavior_id": "sends_receipt"}],
    )
    return code_analyzer_document(
        [method], make_behaviors(*CHECKOUT_BEHAVIORS), selected=["checkout"]
    )


@pytest.fixture()
def five_booleans_document() -> dict[str, Any]:
    """Five independent root booleans: reaches the characteristic threshold."""
    characteristics = [
        make_characteristic(
            f"flag_{i}",
            [
                make_value(True, terminal=False, behavior_id="returns_completed"),
                make_value(False, terminal=False, behavior_id="returns_completed"),
            ],
        )
        for i in range(5)
    ]
    return code_analyzer_document(
        [make_method("process", characteristics)], make_behaviors("returns_completed")
    )


# ---------------------------------------------------------------------------
# File-system fixtures
# ---------------------------------------------------------------------------


def write_yaml(directory: Path, document: Any, name: str = "metadata.yml") -> Path:
    path = directory / name
    path.write_text(yaml.safe_dump(copy.deepcopy(document), sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture()
def authenticated_file(tmp_path: Path) -> Path:
    path = tmp_path / "metadata.yml"
    path.write_text(AUTHENTICATED_YAML, encoding="utf-8")
    return path


@pytest.fixture()
def broken_file(tmp_path: Path) -> Path:
    path = tmp_path / "broken.yml"
    path.write_text(BROKEN_YAML, encoding="utf-8")
    return path
