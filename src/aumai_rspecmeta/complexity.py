"""Combinatorial-explosion estimate for a method's generated examples."""

from __future__ import annotations

from aumai_rspecmeta.config import ComplexityThresholds
from aumai_rspecmeta.models import ComplexityReport
from aumai_rspecmeta.tree import CharacteristicTree

ASK_USER_RECOMMENDATION = (
    "AskUserQuestion recommended: continue generation vs pause and reduce scope"
)


def estimate_complexity(
    method_name: str,
    tree: CharacteristicTree,
    side_effects_count: int,
    thresholds: ComplexityThresholds,
) -> ComplexityReport:
    """Estimate how many examples *tree* will expand to.

    Every leaf context produces one example for its outcome plus one per side
    effect.  The report is flagged when any metric reaches its threshold.
    """
    char_count = len(tree.characteristics)
    leaf_contexts = len(tree.leaves())
    estimated_examples = leaf_contexts * (1 + side_effects_count)
    exceeds = (
        char_count >= thresholds.characteristics
        or leaf_contexts >= thresholds.leaf_contexts
        or estimated_examples >= thresholds.estimated_examples
    )
    return ComplexityReport(
        method=method_name,
        characteristic_count=char_count,
        leaf_contexts=leaf_contexts,
        side_effects_count=side_effects_count,
        estimated_examples=estimated_examples,
        exceeds_threshold=exceeds,
    )


def explosion_warning(report: ComplexityReport) -> str:
    return (
        f"Potential combinatorial explosion for method '{report.method}': "
        f"characteristics={report.characteristic_count}, "
        f"leaf_contexts≈{report.leaf_contexts}, "
        f"examples≈{report.estimated_examples}"
    )


__all__ = ["ASK_USER_RECOMMENDATION", "estimate_complexity", "explosion_warning"]
