"""Characteristic tree reconstruction and leaf classification.

A method's ``characteristics[]`` is a flat list in which nesting is encoded by
three fields: ``level``, ``depends_on`` (the parent characteristic's name) and
``when_parent`` (the parent values under which the characteristic applies).
:class:`CharacteristicTree` rebuilds the forest those fields describe, the same
forest the test-architect stage turns into nested ``context`` blocks.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterator
from typing import Any, NamedTuple

from aumai_rspecmeta.models import ContextNode
from aumai_rspecmeta.schema import is_integer

logger = logging.getLogger(__name__)


class ParentState(NamedTuple):
    """The characteristic name and value a child characteristic is gated on."""

    char_name: str
    state: Any


def _same_scalar(left: Any, right: Any) -> bool:
    # YAML true/false must never match 1/0.
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return bool(left == right)


def _gated_by(when_parent: Any, state: Any) -> bool:
    if not isinstance(when_parent, list):
        return False
    return any(_same_scalar(item, state) for item in when_parent)


class CharacteristicTree:
    """Index over one method's characteristics that builds its context forest.

    Characteristics are bucketed once by ``(level, depends_on)`` so each step
    of the recursive build is a dictionary lookup followed by a
    ``when_parent`` filter.  Entries that are not mappings, or whose ``level``
    is not an integer or whose ``depends_on`` is neither a string nor null,
    cannot be placed and are left out of every bucket.

    Characteristics at the same level that claim the same parent state are
    all included, in document order.
    """

    def __init__(self, characteristics: list[Any]) -> None:
        self._characteristics = characteristics
        self._buckets: dict[tuple[int, str | None], list[int]] = defaultdict(list)
        for idx, char in enumerate(characteristics):
            if not isinstance(char, dict):
                continue
            level = char.get("level")
            depends_on = char.get("depends_on")
            if not is_integer(level):
                continue
            if depends_on is not None and not isinstance(depends_on, str):
                continue
            self._buckets[(level, depends_on)].append(idx)
        self._roots: list[ContextNode] | None = None

    @property
    def characteristics(self) -> list[Any]:
        return self._characteristics

    def roots(self) -> list[ContextNode]:
        """Return the forest rooted at level 1 (built once, then cached)."""
        if self._roots is None:
            self._roots = self.path_segments_for_context(1, None)
            logger.debug(
                "Built context forest: %d root nodes from %d characteristics",
                len(self._roots),
                len(self._characteristics),
            )
        return self._roots

    def path_segments_for_context(
        self, current_level: int, parent: ParentState | None
    ) -> list[ContextNode]:
        """Return the nodes active at *current_level* under *parent*.

        With no parent only root characteristics (``depends_on: null``) are
        considered.  Otherwise a characteristic applies when its
        ``depends_on`` names the parent characteristic and its
        ``when_parent`` list contains the parent's value.  Every value of an
        applicable characteristic becomes a node; non-terminal nodes are
        expanded one level deeper.
        """
        if parent is None:
            key: tuple[int, str | None] = (current_level, None)
        elif isinstance(parent.char_name, str):
            key = (current_level, parent.char_name)
        else:
            return []

        nodes: list[ContextNode] = []
        for char_index in self._buckets.get(key, []):
            char = self._characteristics[char_index]
            if parent is not None and not _gated_by(char.get("when_parent"), parent.state):
                continue
            values = char.get("values")
            if not isinstance(values, list):
                continue
            for value_index, value in enumerate(values):
                if not isinstance(value, dict):
                    continue
                terminal = value.get("terminal") is True
                children: list[ContextNode] = []
                if not terminal:
                    children = self.path_segments_for_context(
                        current_level + 1,
                        ParentState(char.get("name"), value.get("value")),
                    )
                nodes.append(
                    ContextNode(
                        characteristic=char,
                        value=value,
                        characteristic_index=char_index,
                        value_index=value_index,
                        terminal=terminal,
                        children=children,
                    )
                )
        return nodes

    def leaves(self) -> list[ContextNode]:
        return leaf_nodes(self.roots())

    def reachable_indices(self) -> set[int]:
        """Indices of the characteristics that appear somewhere in the forest."""
        return {node.characteristic_index for node in walk(self.roots())}

    def unreachable_indices(self) -> list[int]:
        reachable = self.reachable_indices()
        return [
            idx
            for idx, char in enumerate(self._characteristics)
            if isinstance(char, dict) and idx not in reachable
        ]


def walk(nodes: list[ContextNode]) -> Iterator[ContextNode]:
    """Yield every node in *nodes* and their descendants, depth first."""
    for node in nodes:
        yield node
        yield from walk(node.children)


def leaf_nodes(nodes: list[ContextNode]) -> list[ContextNode]:
    """Collect the nodes that end a branch: terminal or with no children."""
    leaves: list[ContextNode] = []
    for node in nodes:
        if node.terminal or not node.children:
            leaves.append(node)
        else:
            leaves.extend(leaf_nodes(node.children))
    return leaves


def estimate_leaf_contexts(characteristics: list[Any]) -> int:
    """Number of leaf contexts the characteristics expand to."""
    return len(CharacteristicTree(characteristics).leaves())


__all__ = [
    "CharacteristicTree",
    "ParentState",
    "estimate_leaf_contexts",
    "leaf_nodes",
    "walk",
]
