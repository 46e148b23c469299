"""Public API facade for fault tree quantification.

`analyze` runs the full recomputation the host application needs after any
edit: propagation, minimal cut sets and importance measures. There is no
incremental path; every call starts from the tree structure and leaf data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import logging
import math

from .config import EngineSettings
from .cutsets import CutSet, CutSetEnumerator
from .errors import MissingFailureData
from .importance import ImportanceMeasure, importance
from .models import dump_tree
from .nodes import FaultTreeNode, update_failure_data
from .propagation import propagate_tree

logger = logging.getLogger(__name__)


@dataclass
class FaultTreeAnalysis:
    """Everything the visualization layer renders for one tree."""

    tree: FaultTreeNode
    top_event_probability: float
    cut_sets: list[CutSet]
    importance: list[ImportanceMeasure]
    missing: list[MissingFailureData] = field(default_factory=list)
    truncated: bool = False

    @property
    def single_point_failures(self) -> list[CutSet]:
        return [cut_set for cut_set in self.cut_sets if cut_set.single_point_failure]

    def as_dict(self) -> dict[str, Any]:
        """JSON-compatible view; undefined probabilities become None."""

        top = None if math.isnan(self.top_event_probability) else self.top_event_probability
        return {
            "tree": dump_tree(self.tree),
            "top_event_probability": top,
            "cut_sets": [
                {
                    "id": cut_set.id,
                    "order": cut_set.order,
                    "basic_event_ids": list(cut_set.event_ids),
                    "probability": cut_set.probability,
                }
                for cut_set in self.cut_sets
            ],
            "importance": [
                {
                    "basic_event_id": measure.basic_event_id,
                    "label": measure.label,
                    "base_probability": measure.base_probability,
                    "fussell_vesely": measure.fussell_vesely,
                    "birnbaum": measure.birnbaum,
                    "raw": measure.raw,
                    "rrw": measure.rrw,
                }
                for measure in self.importance
            ],
            "missing": [{"node_id": item.node_id, "kind": item.kind} for item in self.missing],
            "truncated": self.truncated,
        }


def analyze(root: FaultTreeNode, settings: EngineSettings | None = None) -> FaultTreeAnalysis:
    """Quantify a fault tree end to end.

    Raises:
        FaultTreeError: on structural problems (malformed gates, invalid
            leaves, cycles, duplicate ids). Missing failure data is reported
            in the result instead.
    """

    settings = settings or EngineSettings()
    propagation = propagate_tree(root)
    top = propagation.top_event_probability

    enumerator = CutSetEnumerator(limit=settings.analysis.max_cut_sets)
    cut_sets = enumerator.enumerate(root, propagation)

    measures: list[ImportanceMeasure] = []
    if settings.analysis.compute_importance:
        measures = importance(root, cut_sets, top, propagation)

    logger.info(
        "fault_tree_analyzed",
        extra={
            "top_event": root.id,
            "probability": top,
            "cut_sets": len(cut_sets),
            "missing": len(propagation.missing),
            "truncated": enumerator.truncated,
        },
    )
    return FaultTreeAnalysis(
        tree=propagation.tree,
        top_event_probability=top,
        cut_sets=cut_sets,
        importance=measures,
        missing=list(propagation.missing),
        truncated=enumerator.truncated,
    )


def recompute(
    root: FaultTreeNode,
    node_id: str,
    failure_rate: float | None = None,
    exposure_time: float | None = None,
    settings: EngineSettings | None = None,
) -> FaultTreeAnalysis:
    """Apply one basic event edit and re-run the full analysis."""

    updated = update_failure_data(root, node_id, failure_rate=failure_rate, exposure_time=exposure_time)
    logger.info(
        "basic_event_updated",
        extra={"node_id": node_id, "failure_rate": failure_rate, "exposure_time": exposure_time},
    )
    return analyze(updated, settings=settings)
