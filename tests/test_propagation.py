import itertools
import logging
import math
import random

import pytest

from fault_tree_engine.errors import InvalidLeaf, MalformedGate
from fault_tree_engine.nodes import (
    AND,
    INHIBIT,
    OR,
    PRIORITY_AND,
    XOR,
    FaultTreeNode,
    Gate,
    GateKind,
    NodeKind,
    basic_event,
    gate_event,
)
from fault_tree_engine.propagation import (
    failure_rate_to_probability,
    gate_probability,
    k_of_n_probability,
    propagate,
    propagate_tree,
)


def _leaf(node_id: str, p: float) -> FaultTreeNode:
    # Asserted probability keeps the arithmetic in the tests exact.
    return FaultTreeNode(id=node_id, kind=NodeKind.BASIC_EVENT, probability=p)


def _brute_force_k_of_n(probabilities, k):
    total = 0.0
    for outcome in itertools.product([0, 1], repeat=len(probabilities)):
        if sum(outcome) < k:
            continue
        weight = 1.0
        for occurred, p in zip(outcome, probabilities):
            weight *= p if occurred else 1.0 - p
        total += weight
    return total


def test_exponential_law_for_basic_event() -> None:
    p = failure_rate_to_probability(1e-5, 1.0)
    assert p == pytest.approx(9.99995e-6, rel=1e-9)
    assert math.isclose(p, 1.0 - math.exp(-1e-5), rel_tol=1e-9)


def test_exponential_law_keeps_precision_for_tiny_products() -> None:
    assert failure_rate_to_probability(1e-15, 1.0) == pytest.approx(1e-15, rel=1e-9)
    assert failure_rate_to_probability(0.0, 10.0) == 0.0


def test_exponential_law_rejects_negative_inputs() -> None:
    with pytest.raises(ValueError):
        failure_rate_to_probability(-1e-6, 1.0)
    with pytest.raises(ValueError):
        failure_rate_to_probability(1e-6, -1.0)


def test_and_gate_multiplies_children() -> None:
    p1, p2 = 0.013, 0.27
    tree = gate_event("TOP", AND, [_leaf("A", p1), _leaf("B", p2)], kind=NodeKind.TOP_EVENT)
    assert abs(propagate(tree).probability - p1 * p2) < 1e-12


def test_or_gate_complements_children() -> None:
    p1, p2 = 0.013, 0.27
    tree = gate_event("TOP", OR, [_leaf("A", p1), _leaf("B", p2)], kind=NodeKind.TOP_EVENT)
    assert abs(propagate(tree).probability - (1 - (1 - p1) * (1 - p2))) < 1e-12


def test_xor_gate_exactly_one_child() -> None:
    p1, p2, p3 = 0.1, 0.2, 0.3
    expected = p1 * (1 - p2) * (1 - p3) + p2 * (1 - p1) * (1 - p3) + p3 * (1 - p1) * (1 - p2)
    assert gate_probability(XOR, [p1, p2, p3]) == pytest.approx(expected, abs=1e-12)


def test_priority_and_and_inhibit_quantify_as_and() -> None:
    assert gate_probability(PRIORITY_AND, [0.5, 0.2]) == pytest.approx(0.1)
    tree = gate_event("TOP", INHIBIT, [_leaf("EVENT", 0.4), _leaf("CONDITION", 0.25)])
    assert propagate(tree).probability == pytest.approx(0.1)


def test_inhibit_gate_requires_two_children() -> None:
    tree = gate_event("TOP", INHIBIT, [_leaf("A", 0.1), _leaf("B", 0.1), _leaf("C", 0.1)])
    with pytest.raises(MalformedGate):
        propagate(tree)


def test_voting_two_of_three_identical() -> None:
    # 3 * p^2 * (1 - p) + p^3
    assert k_of_n_probability([0.1, 0.1, 0.1], 2) == pytest.approx(0.028, abs=1e-12)


def test_voting_matches_enumeration_for_mixed_probabilities() -> None:
    probabilities = [0.05, 0.3, 0.12, 0.7, 0.01]
    for k in range(1, len(probabilities) + 1):
        assert k_of_n_probability(probabilities, k) == pytest.approx(
            _brute_force_k_of_n(probabilities, k), abs=1e-12
        )


@pytest.mark.parametrize("n", range(1, 9))
def test_voting_boundaries_match_and_or(n: int) -> None:
    rng = random.Random(n)
    for _ in range(20):
        probabilities = [rng.random() for _ in range(n)]
        assert abs(gate_probability(Gate.voting(n), probabilities) - gate_probability(AND, probabilities)) < 1e-9
        assert abs(gate_probability(Gate.voting(1), probabilities) - gate_probability(OR, probabilities)) < 1e-9


def test_propagate_annotates_every_node_without_mutating_input() -> None:
    tree = gate_event(
        "TOP",
        OR,
        [
            gate_event("INT-001", AND, [basic_event("BE-001", 1e-5), basic_event("BE-002", 1e-5)]),
            basic_event("BE-003", 2e-4, exposure_time=3.0),
        ],
        kind=NodeKind.TOP_EVENT,
    )
    annotated = propagate(tree)

    assert tree.probability is None
    assert [child.id for child in annotated.children] == ["INT-001", "BE-003"]
    intermediate = annotated.children[0]
    assert intermediate.probability == pytest.approx(9.99995e-6**2, rel=1e-9)
    assert all(child.probability is not None for child in intermediate.children)
    assert annotated.children[1].probability == pytest.approx(1 - math.exp(-6e-4), rel=1e-12)


def test_end_to_end_flight_computer_scenario() -> None:
    tree = gate_event("INT-001", AND, [basic_event("BE-001", 1e-5, 1.0), basic_event("BE-002", 1e-5, 1.0)])
    assert propagate(tree).probability == pytest.approx(9.9999e-11, rel=1e-4)


def test_basic_event_without_rates_uses_asserted_probability() -> None:
    tree = gate_event("TOP", OR, [_leaf("A", 0.2)])
    assert propagate(tree).probability == pytest.approx(0.2)


def test_boundary_leaves_use_asserted_probability() -> None:
    tree = gate_event(
        "TOP",
        AND,
        [
            FaultTreeNode(id="UND", kind=NodeKind.UNDEVELOPED, probability=0.01),
            FaultTreeNode(id="HOUSE", kind=NodeKind.HOUSE, probability=1.0),
            _leaf("A", 0.5),
        ],
    )
    assert propagate(tree).probability == pytest.approx(0.005)


def test_missing_failure_data_is_excluded_and_reported() -> None:
    tree = gate_event(
        "TOP",
        OR,
        [
            basic_event("BE-001", 1e-4),
            gate_event(
                "INT-001",
                AND,
                [FaultTreeNode(id="UND-001", kind=NodeKind.UNDEVELOPED), FaultTreeNode(id="XFER", kind=NodeKind.TRANSFER)],
            ),
        ],
        kind=NodeKind.TOP_EVENT,
    )
    result = propagate_tree(tree)

    assert [item.node_id for item in result.missing] == ["UND-001", "XFER"]
    assert math.isnan(result.probabilities["UND-001"])
    # Every input of INT-001 is excluded, so INT-001 is excluded too.
    assert result.is_excluded("INT-001")
    assert result.top_event_probability == pytest.approx(failure_rate_to_probability(1e-4, 1.0))


def test_missing_child_excludes_and_family_gates() -> None:
    for gate in (AND, PRIORITY_AND, INHIBIT):
        tree = gate_event("TOP", gate, [_leaf("A", 0.3), FaultTreeNode(id="UND", kind=NodeKind.UNDEVELOPED)])
        result = propagate_tree(tree)
        assert math.isnan(result.top_event_probability)
        assert [item.node_id for item in result.missing] == ["UND"]


def test_missing_child_drops_out_of_or_and_voting_gates() -> None:
    missing = FaultTreeNode(id="UND", kind=NodeKind.UNDEVELOPED)
    assert propagate_tree(gate_event("TOP", OR, [_leaf("A", 0.3), missing])).top_event_probability == pytest.approx(0.3)
    voting = gate_event("TOP", Gate.voting(2), [_leaf("A", 0.3), _leaf("B", 0.5), missing])
    # The threshold applies to the two quantified inputs.
    assert propagate_tree(voting).top_event_probability == pytest.approx(0.15)


def test_conditional_runs_can_skip_missing_data_warnings(caplog) -> None:
    tree = gate_event("TOP", OR, [_leaf("A", 0.3), FaultTreeNode(id="UND", kind=NodeKind.UNDEVELOPED)])
    with caplog.at_level(logging.WARNING, logger="fault_tree_engine.propagation"):
        quiet = propagate_tree(tree, overrides={"A": 1.0}, log_missing=False)
    assert quiet.top_event_probability == 1.0
    assert [item.node_id for item in quiet.missing] == ["UND"]
    assert not [record for record in caplog.records if record.getMessage() == "missing_failure_data"]


def test_reprocessing_an_annotated_tree_is_stable() -> None:
    tree = gate_event("TOP", OR, [_leaf("A", 0.3), FaultTreeNode(id="UND", kind=NodeKind.UNDEVELOPED)])
    first = propagate(tree)
    second = propagate_tree(first)
    assert second.top_event_probability == pytest.approx(first.probability)
    assert [item.node_id for item in second.missing] == ["UND"]


def test_overrides_clamp_event_probability() -> None:
    tree = gate_event("TOP", AND, [_leaf("A", 0.3), _leaf("B", 0.5)])
    assert propagate_tree(tree, overrides={"A": 1.0}).top_event_probability == pytest.approx(0.5)
    assert propagate_tree(tree, overrides={"A": 0.0}).top_event_probability == 0.0
    with pytest.raises(ValueError):
        propagate_tree(tree, overrides={"A": 1.5})


def test_deep_tree_does_not_recurse() -> None:
    node = basic_event("BE-000", 1e-3)
    for depth in range(1, 3000):
        node = gate_event(f"INT-{depth:04d}", OR, [node])
    assert propagate(node).probability == pytest.approx(failure_rate_to_probability(1e-3, 1.0))


def test_gate_without_children_is_malformed() -> None:
    tree = FaultTreeNode(id="TOP", kind=NodeKind.TOP_EVENT, gate=AND)
    with pytest.raises(MalformedGate):
        propagate(tree)


def test_children_without_gate_is_malformed() -> None:
    tree = FaultTreeNode(id="TOP", kind=NodeKind.TOP_EVENT, children=(_leaf("A", 0.1),))
    with pytest.raises(MalformedGate):
        propagate(tree)


@pytest.mark.parametrize("k", [0, 3, None])
def test_voting_threshold_out_of_range(k) -> None:
    tree = gate_event("TOP", Gate(kind=GateKind.VOTING, k=k), [_leaf("A", 0.1), _leaf("B", 0.1)])
    with pytest.raises(MalformedGate):
        propagate(tree)


def test_negative_failure_rate_is_invalid_leaf() -> None:
    tree = gate_event("TOP", OR, [basic_event("BE-001", -1e-5)])
    with pytest.raises(InvalidLeaf):
        propagate(tree)


def test_gated_node_with_failure_data_is_invalid_leaf() -> None:
    tree = FaultTreeNode(
        id="TOP",
        kind=NodeKind.TOP_EVENT,
        gate=OR,
        failure_rate=1e-5,
        exposure_time=1.0,
        children=(_leaf("A", 0.1),),
    )
    with pytest.raises(InvalidLeaf):
        propagate(tree)


def test_house_event_must_be_true_or_false() -> None:
    tree = gate_event("TOP", AND, [_leaf("A", 0.1), FaultTreeNode(id="H", kind=NodeKind.HOUSE, probability=0.5)])
    with pytest.raises(InvalidLeaf):
        propagate(tree)
