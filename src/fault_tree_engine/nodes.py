"""Immutable fault tree node model.

Trees are built from frozen dataclasses and never mutated. Edits such as a new
failure rate on one basic event produce a new tree that shares the untouched
subtrees with the old one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Iterator
import math

from .errors import CyclicStructure, DuplicateNodeId, InvalidLeaf, MalformedGate


class NodeKind(str, Enum):
    """Fault tree symbology per NUREG-0492."""

    TOP_EVENT = "top-event"
    INTERMEDIATE = "intermediate"
    BASIC_EVENT = "basic-event"
    UNDEVELOPED = "undeveloped"
    TRANSFER = "transfer"
    HOUSE = "house"


class GateKind(str, Enum):
    """Logic gate connecting a node to its children."""

    AND = "AND"
    OR = "OR"
    XOR = "XOR"
    VOTING = "VOTING"
    PRIORITY_AND = "PRIORITY_AND"
    INHIBIT = "INHIBIT"


LEAF_KINDS = frozenset({NodeKind.BASIC_EVENT, NodeKind.UNDEVELOPED, NodeKind.TRANSFER, NodeKind.HOUSE})
GATED_KINDS = frozenset({NodeKind.TOP_EVENT, NodeKind.INTERMEDIATE})
# Gates that need every input to occur.
CONJUNCTIVE_GATES = frozenset({GateKind.AND, GateKind.PRIORITY_AND, GateKind.INHIBIT})


@dataclass(frozen=True)
class Gate:
    """Gate attached to a node with children.

    Attributes:
        kind: Gate semantics.
        k: Vote threshold, only meaningful for VOTING gates.
    """

    kind: GateKind
    k: int | None = None

    @classmethod
    def voting(cls, k: int) -> "Gate":
        return cls(kind=GateKind.VOTING, k=k)


AND = Gate(GateKind.AND)
OR = Gate(GateKind.OR)
XOR = Gate(GateKind.XOR)
PRIORITY_AND = Gate(GateKind.PRIORITY_AND)
INHIBIT = Gate(GateKind.INHIBIT)


@dataclass(frozen=True)
class FaultTreeNode:
    """A node in a fault tree.

    Only basic events carry `failure_rate`/`exposure_time`. `probability` is
    derived by the propagator; on house, undeveloped and transfer leaves an
    explicitly supplied value is treated as an asserted boundary probability.
    """

    id: str
    label: str = ""
    description: str = ""
    kind: NodeKind = NodeKind.BASIC_EVENT
    gate: Gate | None = None
    failure_rate: float | None = None
    exposure_time: float | None = None
    probability: float | None = None
    children: tuple["FaultTreeNode", ...] = field(default=())

    def __post_init__(self) -> None:
        # Accept lists from callers but store an immutable tuple.
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def has_failure_data(self) -> bool:
        return self.failure_rate is not None or self.exposure_time is not None

    @property
    def mttf(self) -> float | None:
        """Mean time to failure (hours) for a constant failure rate."""

        if self.failure_rate is None or self.failure_rate <= 0:
            return None
        return 1.0 / self.failure_rate


def basic_event(
    node_id: str,
    failure_rate: float,
    exposure_time: float = 1.0,
    label: str = "",
    description: str = "",
) -> FaultTreeNode:
    """Build a basic event leaf."""

    return FaultTreeNode(
        id=node_id,
        label=label,
        description=description,
        kind=NodeKind.BASIC_EVENT,
        failure_rate=failure_rate,
        exposure_time=exposure_time,
    )


def gate_event(
    node_id: str,
    gate: Gate,
    children: Iterable[FaultTreeNode],
    kind: NodeKind = NodeKind.INTERMEDIATE,
    label: str = "",
    description: str = "",
) -> FaultTreeNode:
    """Build a gated intermediate (or top) event."""

    return FaultTreeNode(
        id=node_id,
        label=label,
        description=description,
        kind=kind,
        gate=gate,
        children=tuple(children),
    )


def _check_probability(node: FaultTreeNode) -> None:
    p = node.probability
    # NaN marks a leaf already reported as missing data by an earlier run.
    if p is None or math.isnan(p):
        return
    if math.isinf(p) or p < 0.0 or p > 1.0:
        raise InvalidLeaf(node.id, f"probability {p} outside [0, 1]")
    if node.kind is NodeKind.HOUSE and p not in (0.0, 1.0):
        raise InvalidLeaf(node.id, "house event must assert probability 0 or 1")


def check_node(node: FaultTreeNode) -> None:
    """Validate a single node's local structure.

    Raises:
        MalformedGate: gate/children mismatch or a bad vote threshold.
        InvalidLeaf: bad failure data, or a node that is both gated and quantified.
    """

    if node.children:
        if node.kind in LEAF_KINDS or node.has_failure_data:
            raise InvalidLeaf(node.id, "node is both gated and a quantifiable leaf")
        if node.gate is None:
            raise MalformedGate(node.id, "node has children but no gate")
        if not isinstance(node.gate.kind, GateKind):
            raise MalformedGate(node.id, f"unrecognized gate {node.gate.kind!r}")
        n = len(node.children)
        if node.gate.kind is GateKind.VOTING:
            if node.gate.k is None or not 1 <= node.gate.k <= n:
                raise MalformedGate(node.id, f"voting threshold {node.gate.k} outside [1, {n}]")
        elif node.gate.kind is GateKind.INHIBIT and n != 2:
            raise MalformedGate(node.id, f"inhibit gate needs exactly 2 children, got {n}")
        return

    if node.gate is not None:
        raise MalformedGate(node.id, "gate has no children")
    if node.kind in GATED_KINDS:
        raise MalformedGate(node.id, f"{node.kind.value} node has no gate or children")
    if node.has_failure_data:
        if node.kind is not NodeKind.BASIC_EVENT:
            raise InvalidLeaf(node.id, "only basic events carry failure data")
        for name in ("failure_rate", "exposure_time"):
            value = getattr(node, name)
            if value is None:
                raise InvalidLeaf(node.id, f"{name} is required alongside the other failure parameter")
            if not math.isfinite(value) or value < 0:
                raise InvalidLeaf(node.id, f"{name} must be a non-negative finite number")
    _check_probability(node)


def walk_postorder(root: FaultTreeNode) -> Iterator[FaultTreeNode]:
    """Yield every node children-first using an explicit stack.

    Each node is validated as it is first reached, so structural errors
    surface before any of its ancestors are yielded.
    """

    stack: list[tuple[FaultTreeNode, bool]] = [(root, False)]
    on_path: set[str] = set()
    seen: set[str] = set()
    while stack:
        node, expanded = stack.pop()
        if expanded:
            on_path.discard(node.id)
            yield node
            continue
        if node.id in on_path:
            raise CyclicStructure(node.id)
        if node.id in seen:
            raise DuplicateNodeId(node.id)
        check_node(node)
        seen.add(node.id)
        on_path.add(node.id)
        stack.append((node, True))
        # Reversed so children are visited in declaration order.
        for child in reversed(node.children):
            stack.append((child, False))


def iter_nodes(root: FaultTreeNode) -> Iterator[FaultTreeNode]:
    """Pre-order iteration without validation."""

    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node(root: FaultTreeNode, node_id: str) -> FaultTreeNode | None:
    for node in iter_nodes(root):
        if node.id == node_id:
            return node
    return None


def basic_events(root: FaultTreeNode) -> list[FaultTreeNode]:
    return [node for node in iter_nodes(root) if node.kind is NodeKind.BASIC_EVENT and node.is_leaf]


def _path_to(root: FaultTreeNode, node_id: str) -> list[FaultTreeNode]:
    stack: list[tuple[FaultTreeNode, list[FaultTreeNode]]] = [(root, [root])]
    while stack:
        node, path = stack.pop()
        if node.id == node_id:
            return path
        for child in node.children:
            stack.append((child, path + [child]))
    raise KeyError(node_id)


def replace_node(root: FaultTreeNode, node_id: str, new_node: FaultTreeNode) -> FaultTreeNode:
    """Return a new tree with `node_id` swapped for `new_node`.

    Only the nodes on the path from the root are rebuilt.

    Raises:
        KeyError: if no node has `node_id`.
    """

    path = _path_to(root, node_id)
    replacement = new_node
    for parent, child in zip(reversed(path[:-1]), reversed(path[1:])):
        children = tuple(replacement if existing is child else existing for existing in parent.children)
        replacement = replace(parent, children=children)
    return replacement


def update_failure_data(
    root: FaultTreeNode,
    node_id: str,
    failure_rate: float | None = None,
    exposure_time: float | None = None,
) -> FaultTreeNode:
    """Apply a basic event edit and return the rebuilt tree."""

    target = find_node(root, node_id)
    if target is None:
        raise KeyError(node_id)
    if target.kind is not NodeKind.BASIC_EVENT:
        raise InvalidLeaf(node_id, "only basic events carry failure data")
    updated = replace(
        target,
        failure_rate=target.failure_rate if failure_rate is None else failure_rate,
        exposure_time=target.exposure_time if exposure_time is None else exposure_time,
        # Stale derived value; recomputed by the propagator.
        probability=None,
    )
    check_node(updated)
    return replace_node(root, node_id, updated)
