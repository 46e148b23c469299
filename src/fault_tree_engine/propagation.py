"""Bottom-up probability propagation through a fault tree.

Every gate assumes independent inputs; common-cause coupling is only what the
tree structure itself encodes. Leaves without derivable data are reported as
missing and excluded from their parent's arithmetic, so one unresolved branch
does not block quantifying the rest of the tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from math import prod
from typing import Mapping, Sequence
import logging
import math

from .errors import MalformedGate, MissingFailureData
from .nodes import CONJUNCTIVE_GATES, FaultTreeNode, Gate, GateKind, NodeKind, walk_postorder

logger = logging.getLogger(__name__)


def _clamp01(x: float) -> float:
    if x < 0.0:
        return 0.0
    if x > 1.0:
        return 1.0
    return x


def failure_rate_to_probability(failure_rate: float, exposure_time: float) -> float:
    """Exponential law P = 1 - exp(-lambda * t).

    Evaluated as -expm1(-lambda * t) so tiny products keep full precision.
    """

    if failure_rate < 0:
        raise ValueError("failure_rate must be non-negative")
    if exposure_time < 0:
        raise ValueError("exposure_time must be non-negative")
    return -math.expm1(-failure_rate * exposure_time)


def k_of_n_probability(probabilities: Sequence[float], k: int) -> float:
    """Probability that at least k of the independent inputs occur.

    Exact for non-identical inputs: dp[j] holds the probability that exactly
    j of the inputs folded in so far have occurred.
    """

    n = len(probabilities)
    if k <= 0:
        return 1.0
    if k > n:
        return 0.0

    dp = [0.0] * (n + 1)
    dp[0] = 1.0
    for count, p in enumerate(probabilities, start=1):
        q = 1.0 - p
        # Walk downward so dp[j - 1] still holds the previous fold.
        for j in range(count, 0, -1):
            dp[j] = dp[j] * q + dp[j - 1] * p
        dp[0] *= q
    return _clamp01(sum(dp[k:]))


def exactly_one_probability(probabilities: Sequence[float]) -> float:
    total = 0.0
    for i, p in enumerate(probabilities):
        total += p * prod(1.0 - other for j, other in enumerate(probabilities) if j != i)
    return total


def gate_probability(gate: Gate, probabilities: Sequence[float], node_id: str = "<gate>") -> float:
    """Combine child probabilities according to the gate semantics.

    PRIORITY_AND is quantified as AND: the input data carries no sequence
    model, so ordering is a modelling responsibility of the tree author.
    """

    if not probabilities:
        raise MalformedGate(node_id, "gate has no inputs")

    kind = gate.kind
    if kind in (GateKind.AND, GateKind.PRIORITY_AND, GateKind.INHIBIT):
        p = prod(probabilities)
    elif kind is GateKind.OR:
        p = 1.0 - prod(1.0 - value for value in probabilities)
    elif kind is GateKind.XOR:
        p = exactly_one_probability(probabilities)
    elif kind is GateKind.VOTING:
        if gate.k is None:
            raise MalformedGate(node_id, "voting gate without threshold")
        p = k_of_n_probability(probabilities, gate.k)
    else:
        raise MalformedGate(node_id, f"unrecognized gate {kind!r}")
    return _clamp01(p)


def leaf_probability(node: FaultTreeNode) -> float | None:
    """Return the leaf's probability, or None when it cannot be derived."""

    if node.kind is NodeKind.BASIC_EVENT and node.failure_rate is not None and node.exposure_time is not None:
        return failure_rate_to_probability(node.failure_rate, node.exposure_time)
    if node.probability is not None and not math.isnan(node.probability):
        return node.probability
    return None


@dataclass
class Propagation:
    """Result of one full propagation pass.

    Attributes:
        tree: Copy of the input tree with `probability` set on every node.
            Excluded nodes carry NaN.
        probabilities: Node id to probability (NaN when excluded).
        missing: Leaves that had no derivable probability.
    """

    tree: FaultTreeNode
    probabilities: dict[str, float]
    missing: list[MissingFailureData] = field(default_factory=list)

    @property
    def top_event_probability(self) -> float:
        return self.probabilities[self.tree.id]

    def is_excluded(self, node_id: str) -> bool:
        return math.isnan(self.probabilities[node_id])


def propagate_tree(
    root: FaultTreeNode,
    overrides: Mapping[str, float] | None = None,
    log_missing: bool = True,
) -> Propagation:
    """Quantify every node of the tree.

    Args:
        root: Root of the tree.
        overrides: Node id to a forced probability, used for conditional
            evaluations such as P(top | event occurs).
        log_missing: Emit a warning per missing leaf. Conditional
            re-evaluations of an already reported tree pass False.

    Raises:
        MalformedGate, InvalidLeaf, CyclicStructure, DuplicateNodeId: the
            tree is structurally invalid.
    """

    overrides = dict(overrides or {})
    for node_id, value in overrides.items():
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"override for {node_id} must be within [0, 1]")

    probabilities: dict[str, float] = {}
    annotated: dict[str, FaultTreeNode] = {}
    missing: list[MissingFailureData] = []

    for node in walk_postorder(root):
        if node.is_leaf:
            p = overrides.get(node.id, leaf_probability(node))
            if p is None:
                condition = MissingFailureData(node.id, node.kind.value)
                missing.append(condition)
                if log_missing:
                    logger.warning("missing_failure_data", extra={"node_id": node.id, "kind": node.kind.value})
                p = math.nan
            annotated[node.id] = replace(node, probability=p)
        else:
            children = tuple(annotated.pop(child.id) for child in node.children)
            child_probabilities = [probabilities[child.id] for child in node.children]
            # An AND-family gate needs every input quantified; other gates drop
            # excluded inputs.
            inputs = [value for value in child_probabilities if not math.isnan(value)]
            if node.id in overrides:
                p = overrides[node.id]
            elif node.gate.kind in CONJUNCTIVE_GATES and len(inputs) < len(child_probabilities):
                p = math.nan
            elif inputs:
                p = gate_probability(node.gate, inputs, node.id)
            else:
                p = math.nan
            annotated[node.id] = replace(node, probability=p, children=children)
        probabilities[node.id] = p

    result = Propagation(tree=annotated[root.id], probabilities=probabilities, missing=missing)
    logger.debug(
        "propagation_complete",
        extra={"top_event": root.id, "probability": result.top_event_probability, "nodes": len(probabilities)},
    )
    return result


def propagate(root: FaultTreeNode) -> FaultTreeNode:
    """Return the tree annotated with a probability on every node."""

    return propagate_tree(root).tree
