"""Pydantic models for validating fault tree records submitted by a host."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .nodes import FaultTreeNode, Gate, GateKind, NodeKind, walk_postorder

_FAILURE_DATA_FIELDS = (
    ("failureRate", "failure_rate"),
    ("exposureTime", "exposure_time"),
    ("probability", "probability"),
)


class FaultTreeNodeModel(BaseModel):
    """Validated node record.

    Accepts snake_case names as well as the camelCase names used by editor
    fixtures (`type`, `votingThreshold`, `failureRate`, `exposureTime`), a
    nested `gate` or `failureData` object, and `house-event` as a node type.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    label: str = Field(default="")
    description: str = Field(default="")
    kind: NodeKind = Field(default=NodeKind.BASIC_EVENT, alias="type")
    gate: GateKind | None = Field(default=None)
    voting_threshold: int | None = Field(default=None, ge=1, alias="votingThreshold")
    failure_rate: float | None = Field(default=None, ge=0.0, alias="failureRate")
    exposure_time: float | None = Field(default=None, ge=0.0, alias="exposureTime")
    probability: float | None = Field(default=None, ge=0.0, le=1.0)
    children: list["FaultTreeNodeModel"] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _flatten_nested(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # Editor exports nest the gate as {"type": "VOTING", "votingThreshold": k}.
        if isinstance(data.get("gate"), dict):
            gate = data["gate"]
            data["gate"] = gate.get("type")
            threshold = gate.get("votingThreshold", gate.get("voting_threshold"))
            if threshold is not None:
                data.setdefault("votingThreshold", threshold)
        # ... and reliability parameters under "failureData".
        failure_data = data.pop("failureData", None) or data.pop("failure_data", None)
        if isinstance(failure_data, dict):
            for alias, name in _FAILURE_DATA_FIELDS:
                value = failure_data.get(alias, failure_data.get(name))
                if value is not None and alias not in data and name not in data:
                    data[alias] = value
        for key in ("type", "kind"):
            if data.get(key) == "house-event":
                data[key] = NodeKind.HOUSE.value
        return data

    def to_node(self) -> FaultTreeNode:
        """Convert to the immutable node model without recursion."""

        built: dict[int, FaultTreeNode] = {}
        stack: list[tuple[FaultTreeNodeModel, bool]] = [(self, False)]
        while stack:
            model, expanded = stack.pop()
            if not expanded:
                stack.append((model, True))
                stack.extend((child, False) for child in model.children)
                continue
            gate = None
            if model.gate is not None:
                gate = Gate(kind=model.gate, k=model.voting_threshold)
            built[id(model)] = FaultTreeNode(
                id=model.id,
                label=model.label,
                description=model.description,
                kind=model.kind,
                gate=gate,
                failure_rate=model.failure_rate,
                exposure_time=model.exposure_time,
                # Gate probabilities in fixtures are stale display values.
                probability=model.probability if not model.children else None,
                children=tuple(built.pop(id(child)) for child in model.children),
            )
        return built[id(self)]


def load_tree(data: Mapping[str, Any]) -> FaultTreeNode:
    """Validate a nested node mapping and build the tree.

    A wrapper carrying the tree under `rootNode` or `root` is also accepted.
    """

    for key in ("rootNode", "root"):
        if isinstance(data.get(key), Mapping):
            data = data[key]
            break
    return FaultTreeNodeModel.model_validate(data).to_node()


def load_tree_json(path: str | Path) -> FaultTreeNode:
    return load_tree(json.loads(Path(path).read_text()))


def _clean(value: float | None) -> float | None:
    if value is None or math.isnan(value):
        return None
    return value


def dump_tree(root: FaultTreeNode) -> dict[str, Any]:
    """Serialize a tree to JSON-compatible nested dicts (NaN becomes None)."""

    dumped: dict[str, dict[str, Any]] = {}
    for node in walk_postorder(root):
        record: dict[str, Any] = {
            "id": node.id,
            "label": node.label,
            "description": node.description,
            "kind": node.kind.value,
            "probability": _clean(node.probability),
        }
        if node.gate is not None:
            record["gate"] = node.gate.kind.value
            if node.gate.kind is GateKind.VOTING:
                record["voting_threshold"] = node.gate.k
        if node.kind is NodeKind.BASIC_EVENT:
            record["failure_rate"] = node.failure_rate
            record["exposure_time"] = node.exposure_time
        if node.children:
            record["children"] = [dumped.pop(child.id) for child in node.children]
        dumped[node.id] = record
    return dumped[root.id]
