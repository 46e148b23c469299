"""Minimal cut set enumeration by bottom-up Boolean reduction.

Each node maps to a list of event-id combinations that cause it. Gates combine
their children's lists and absorption runs after every gate so intermediate
collections stay minimal. The number of cut sets can still grow
combinatorially for wide OR/VOTING trees; `CutSetEnumerator` accepts a cap and
reports truncation instead of running unbounded.

XOR gates are reduced as OR. Exact XOR cut sets need negated literals, which
this coherent-tree model does not track.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from math import prod
from typing import Iterable, Sequence
import logging

from .nodes import FaultTreeNode, Gate, GateKind, NodeKind, walk_postorder
from .propagation import Propagation, propagate_tree

logger = logging.getLogger(__name__)

Cut = frozenset[str]


@dataclass(frozen=True)
class CutSet:
    """A minimal combination of events that causes the top event."""

    id: str
    order: int
    basic_event_ids: frozenset[str]
    probability: float

    @property
    def event_ids(self) -> tuple[str, ...]:
        """Member ids in display order."""

        return tuple(sorted(self.basic_event_ids))

    @property
    def single_point_failure(self) -> bool:
        return self.order == 1


def absorb(cuts: Iterable[Cut]) -> list[Cut]:
    """Drop duplicates and every cut that is a superset of another.

    The result is ordered by size, then by member ids.
    """

    candidates = sorted(set(cuts), key=lambda cut: (len(cut), sorted(cut)))
    minimal: list[Cut] = []
    for cut in candidates:
        # Smaller sets come first, so only already kept sets can absorb this one.
        if not any(kept <= cut for kept in minimal):
            minimal.append(cut)
    return minimal


def and_combine(child_cuts: Sequence[list[Cut]]) -> list[Cut]:
    result: list[Cut] = [frozenset()]
    for cuts in child_cuts:
        result = absorb(left | right for left in result for right in cuts)
    return result


def or_combine(child_cuts: Sequence[list[Cut]]) -> list[Cut]:
    return absorb(cut for cuts in child_cuts for cut in cuts)


def voting_combine(child_cuts: Sequence[list[Cut]], k: int) -> list[Cut]:
    """Any k of the children occurring together."""

    if k > len(child_cuts):
        return []
    merged: list[Cut] = []
    for subset in combinations(child_cuts, k):
        merged.extend(and_combine(subset))
    return absorb(merged)


def combine(gate: Gate, child_cuts: Sequence[list[Cut]]) -> list[Cut]:
    kind = gate.kind
    if kind in (GateKind.AND, GateKind.PRIORITY_AND, GateKind.INHIBIT):
        return and_combine(child_cuts)
    if kind in (GateKind.OR, GateKind.XOR):
        return or_combine(child_cuts)
    if kind is GateKind.VOTING:
        return voting_combine(child_cuts, gate.k or 1)
    raise ValueError(f"unrecognized gate {kind!r}")


class CutSetEnumerator:
    """Enumerate minimal cut sets with an optional size cap.

    Attributes:
        truncated: True if the last enumeration hit the cap.
    """

    def __init__(self, limit: int | None = None) -> None:
        if limit is not None and limit <= 0:
            raise ValueError("limit must be positive")
        self._limit = limit
        self.truncated = False

    def enumerate(self, root: FaultTreeNode, propagation: Propagation | None = None) -> list[CutSet]:
        """Return the minimal cut sets of `root`, riskiest first within each order.

        Args:
            root: Root of the tree.
            propagation: Existing propagation of the same tree; computed when
                omitted.
        """

        propagation = propagation or propagate_tree(root)
        self.truncated = False

        # None marks a node excluded for missing failure data.
        cuts: dict[str, list[Cut] | None] = {}
        for node in walk_postorder(root):
            if node.is_leaf:
                cuts[node.id] = self._leaf_cuts(node, propagation)
                continue
            child_cuts = [cuts.pop(child.id) for child in node.children]
            # Exclusion follows the propagation: an AND-family gate with an
            # excluded input is excluded, other gates drop excluded inputs.
            if propagation.is_excluded(node.id):
                cuts[node.id] = None
                continue
            included = [child for child in child_cuts if child is not None]
            cuts[node.id] = self._cap(node.id, combine(node.gate, included))

        scored: list[tuple[Cut, float]] = []
        for cut in cuts[root.id] or []:
            if not cut:
                logger.warning("top_event_unconditional", extra={"top_event": root.id})
                continue
            scored.append((cut, prod(propagation.probabilities[event_id] for event_id in cut)))
        scored.sort(key=lambda item: (len(item[0]), -item[1], sorted(item[0])))

        cut_sets = [
            CutSet(id=f"CS-{index:03d}", order=len(cut), basic_event_ids=cut, probability=probability)
            for index, (cut, probability) in enumerate(scored, start=1)
        ]
        logger.debug(
            "cut_sets_enumerated",
            extra={"top_event": root.id, "count": len(cut_sets), "truncated": self.truncated},
        )
        return cut_sets

    @staticmethod
    def _leaf_cuts(node: FaultTreeNode, propagation: Propagation) -> list[Cut] | None:
        if propagation.is_excluded(node.id):
            return None
        if node.kind is NodeKind.HOUSE:
            # A true house event is always satisfied; a false one never is.
            return [frozenset()] if propagation.probabilities[node.id] >= 1.0 else []
        return [frozenset({node.id})]

    def _cap(self, node_id: str, cuts: list[Cut]) -> list[Cut]:
        if self._limit is None or len(cuts) <= self._limit:
            return cuts
        self.truncated = True
        logger.warning(
            "cut_set_limit_reached",
            extra={"node_id": node_id, "count": len(cuts), "limit": self._limit},
        )
        # absorb() orders by size, so the lowest-order sets are kept.
        return cuts[: self._limit]


def minimal_cut_sets(root: FaultTreeNode) -> list[CutSet]:
    return CutSetEnumerator().enumerate(root)


def rare_event_approximation(cut_sets: Iterable[CutSet]) -> float:
    """Sum of cut set probabilities, an upper estimate of P(top)."""

    return sum(cut_set.probability for cut_set in cut_sets)


def min_cut_upper_bound(cut_sets: Iterable[CutSet]) -> float:
    """1 - prod(1 - P(cs)), tighter than the rare-event sum."""

    return 1.0 - prod(1.0 - cut_set.probability for cut_set in cut_sets)
