"""Behavior bank indexing and behavior_id resolution."""

from __future__ import annotations

import logging
from typing import Any

from aumai_rspecmeta.models import IssueCategory
from aumai_rspecmeta.schema import (
    IssueCollector,
    is_non_empty_string,
    require_enum,
    require_hash,
    require_string,
)

logger = logging.getLogger(__name__)

BEHAVIOR_TYPES: tuple[str, ...] = ("terminal", "success", "side_effect")


def index_behaviors(behaviors: list[Any], issues: IssueCollector) -> dict[str, dict[str, Any]]:
    """Build an ``id -> behavior`` map from the document's ``behaviors[]``.

    Entries that are not mappings or have no string id are reported and left
    out.  A repeated id is a reference error; the first occurrence is kept.
    Disabled behaviors (``enabled: false``) may omit their description.
    """
    bank: dict[str, dict[str, Any]] = {}
    for idx, behavior in enumerate(behaviors):
        label = f"behaviors[{idx}]"
        if not require_hash(behavior, label, issues):
            continue

        require_string(behavior.get("id"), f"{label}.id", issues)
        if behavior.get("enabled") is not False:
            require_string(behavior.get("description"), f"{label}.description", issues)
        if behavior.get("type") is not None:
            require_enum(behavior["type"], f"{label}.type", BEHAVIOR_TYPES, issues)

        behavior_id = behavior.get("id")
        if not isinstance(behavior_id, str):
            continue

        if behavior_id in bank:
            issues.error(
                f"behaviors[].id must be unique; duplicate: {behavior_id}",
                IssueCategory.reference,
            )
        else:
            bank[behavior_id] = behavior

    logger.debug("Indexed %d behaviors", len(bank))
    return bank


def has_behavior_id(value: Any) -> bool:
    """True when *value* is a usable, non-blank behavior_id."""
    if value is None:
        return False
    if isinstance(value, str):
        return is_non_empty_string(value)
    return bool(str(value).strip())


def resolve_behavior_id(
    behavior_id: Any,
    bank: dict[str, dict[str, Any]],
    location: str,
    issues: IssueCollector,
) -> bool:
    """Report a reference error when a non-blank *behavior_id* is not in *bank*.

    Blank ids are ignored here; whether one is required is decided by the
    caller.
    """
    if not has_behavior_id(behavior_id):
        return True
    key = str(behavior_id)
    if key in bank:
        return True
    issues.error(f"Unknown behavior_id '{key}' in {location}", IssueCategory.reference)
    return False


__all__ = ["BEHAVIOR_TYPES", "has_behavior_id", "index_behaviors", "resolve_behavior_id"]
