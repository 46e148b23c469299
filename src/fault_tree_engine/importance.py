"""Importance measures for ranking basic event contributions.

Birnbaum, RAW and RRW come from full re-propagations with the event forced to
certain occurrence or non-occurrence, so they hold for any gate mixture.
Fussell-Vesely uses the rare-event sum over the minimal cut sets containing
the event.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence
import logging

from .cutsets import CutSet
from .nodes import FaultTreeNode, iter_nodes
from .propagation import Propagation, propagate_tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportanceMeasure:
    """Importance of one basic event.

    Attributes:
        basic_event_id: Event id.
        label: Display label of the event.
        base_probability: Propagated probability of the event.
        fussell_vesely: Fraction of P(top) from cut sets containing the event.
        birnbaum: P(top | event) - P(top | no event).
        raw: Risk Achievement Worth, P(top | event) / P(top).
        rrw: Risk Reduction Worth, P(top) / P(top | no event).
    """

    basic_event_id: str
    label: str
    base_probability: float
    fussell_vesely: float
    birnbaum: float
    raw: float
    rrw: float


def _ratio(numerator: float, denominator: float) -> float:
    # Zero denominators are a local recovery, not an error.
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def conditional_top_probability(root: FaultTreeNode, event_id: str, probability: float) -> float:
    """P(top) with one event's probability forced to `probability`."""

    return propagate_tree(root, overrides={event_id: probability}, log_missing=False).top_event_probability


def importance(
    root: FaultTreeNode,
    cut_sets: Sequence[CutSet],
    top_event_probability: float,
    propagation: Propagation | None = None,
) -> list[ImportanceMeasure]:
    """Compute importance measures for every event appearing in a cut set.

    Args:
        root: Root of the tree.
        cut_sets: Minimal cut sets of `root`.
        top_event_probability: P(top) from the base propagation.
        propagation: Base propagation of `root`; recomputed quietly when
            omitted.

    Returns:
        Measures sorted by descending Fussell-Vesely importance.
    """

    base = propagation or propagate_tree(root, log_missing=False)
    labels = {node.id: node.label for node in iter_nodes(root)}
    event_ids = sorted({event_id for cut_set in cut_sets for event_id in cut_set.basic_event_ids})

    measures: list[ImportanceMeasure] = []
    for event_id in event_ids:
        contribution = sum(cut_set.probability for cut_set in cut_sets if event_id in cut_set.basic_event_ids)
        p_occurs = conditional_top_probability(root, event_id, 1.0)
        p_prevented = conditional_top_probability(root, event_id, 0.0)
        measures.append(
            ImportanceMeasure(
                basic_event_id=event_id,
                label=labels.get(event_id, ""),
                base_probability=base.probabilities[event_id],
                fussell_vesely=min(_ratio(contribution, top_event_probability), 1.0),
                birnbaum=p_occurs - p_prevented,
                raw=_ratio(p_occurs, top_event_probability),
                rrw=_ratio(top_event_probability, p_prevented),
            )
        )

    measures.sort(key=lambda measure: (-measure.fussell_vesely, measure.basic_event_id))
    logger.debug("importance_computed", extra={"top_event": root.id, "events": len(measures)})
    return measures
