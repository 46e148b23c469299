"""Fault tree quantification: probabilities, minimal cut sets and importance measures."""

from .api import FaultTreeAnalysis, analyze, recompute
from .config import AnalysisConfig, EngineSettings, LoggingConfig
from .cutsets import (
    CutSet,
    CutSetEnumerator,
    min_cut_upper_bound,
    minimal_cut_sets,
    rare_event_approximation,
)
from .errors import (
    CyclicStructure,
    DuplicateNodeId,
    FaultTreeError,
    InvalidLeaf,
    MalformedGate,
    MissingFailureData,
)
from .importance import ImportanceMeasure, importance
from .logging_utils import JsonFormatter, configure_logging
from .models import FaultTreeNodeModel, dump_tree, load_tree, load_tree_json
from .nodes import (
    FaultTreeNode,
    Gate,
    GateKind,
    NodeKind,
    basic_event,
    basic_events,
    find_node,
    gate_event,
    iter_nodes,
    replace_node,
    update_failure_data,
    walk_postorder,
)
from .propagation import (
    Propagation,
    failure_rate_to_probability,
    gate_probability,
    k_of_n_probability,
    propagate,
    propagate_tree,
)

__all__ = [
    "FaultTreeAnalysis",
    "analyze",
    "recompute",
    "AnalysisConfig",
    "EngineSettings",
    "LoggingConfig",
    "CutSet",
    "CutSetEnumerator",
    "min_cut_upper_bound",
    "minimal_cut_sets",
    "rare_event_approximation",
    "CyclicStructure",
    "DuplicateNodeId",
    "FaultTreeError",
    "InvalidLeaf",
    "MalformedGate",
    "MissingFailureData",
    "ImportanceMeasure",
    "importance",
    "JsonFormatter",
    "configure_logging",
    "FaultTreeNodeModel",
    "dump_tree",
    "load_tree",
    "load_tree_json",
    "FaultTreeNode",
    "Gate",
    "GateKind",
    "NodeKind",
    "basic_event",
    "basic_events",
    "find_node",
    "gate_event",
    "iter_nodes",
    "replace_node",
    "update_failure_data",
    "walk_postorder",
    "Propagation",
    "failure_rate_to_probability",
    "gate_probability",
    "k_of_n_probability",
    "propagate",
    "propagate_tree",
]
