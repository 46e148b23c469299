"""Error taxonomy for fault tree quantification.

Structural problems (malformed gates, invalid leaves, cycles, duplicate ids)
abort a computation. Missing failure data is a local condition: it is recorded
and reported alongside the results rather than raised.
"""

from __future__ import annotations


class FaultTreeError(ValueError):
    """Base class for fault tree errors."""

    def __init__(self, node_id: str, reason: str) -> None:
        super().__init__(f"{node_id}: {reason}")
        self.node_id = node_id
        self.reason = reason


class MalformedGate(FaultTreeError):
    """Gate node lacking a valid gate, children, or vote threshold."""


class InvalidLeaf(FaultTreeError):
    """Leaf with out-of-range failure data, or a node that is both gated and quantified."""


class CyclicStructure(FaultTreeError):
    """A node was revisited on its own root-to-leaf path."""

    def __init__(self, node_id: str) -> None:
        super().__init__(node_id, "node revisited on its own path")


class DuplicateNodeId(FaultTreeError):
    """Two nodes in one tree share an id, or a subtree is shared by two parents."""

    def __init__(self, node_id: str) -> None:
        super().__init__(node_id, "node id appears more than once")


class MissingFailureData(FaultTreeError):
    """Leaf without a derivable probability.

    Recorded by the propagator instead of raised; the node and anything that
    depends solely on it are excluded from quantitative results.
    """

    def __init__(self, node_id: str, kind: str) -> None:
        super().__init__(node_id, f"{kind} leaf has no failure data")
        self.kind = kind
