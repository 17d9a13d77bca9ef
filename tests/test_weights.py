# -*- coding: utf-8 -*-
import pytest

from psi_context import ContextCache, FactTable
from psi_rules import Action, Rule, StructuredCondition
from psi_weights import (
    TOPIC_BOOST_ACTIVE,
    TOPIC_BOOST_OTHER,
    aggregate_actions,
    importance_term,
    rule_weight,
)


def _imp(rule):
    return rule.importance


def test_rule_weight_is_product():
    r = Rule(StructuredCondition(("a",)), Action("a"), strength=0.5, importance=0.8)
    assert rule_weight(r, 0.5, 0.8) == pytest.approx(0.2)


def test_importance_term_and_topic_boost():
    r = Rule(StructuredCondition(("a",)), Action("a"), importance=0.0, topic="greeting")
    assert importance_term(r) == 0.0
    assert importance_term(r, importance_enabled=False, active_topic="greeting") == TOPIC_BOOST_ACTIVE
    assert importance_term(r, importance_enabled=False, active_topic="farewell") == TOPIC_BOOST_OTHER
    assert importance_term(r, importance_enabled=False) == TOPIC_BOOST_OTHER
    assert importance_term(r, importance_of=lambda _r: 0.9) == 0.9


def test_action_weight_is_mean_not_sum():
    facts = FactTable({"f": 0.8})
    act_a = Action("A")
    r1 = Rule(StructuredCondition(("x",)), act_a, strength=1.0, importance=1.0)
    r2 = Rule(StructuredCondition(("y",), requires=("f",)), act_a, strength=0.5, importance=1.0)
    table = aggregate_actions([r1, r2], ContextCache(facts), _imp)
    agg = table.get(act_a)
    assert agg.count == 2
    assert agg.sum_weight == pytest.approx(1.4)
    assert agg.weight == pytest.approx(0.7)
    assert agg.first_rule is r1


def test_unsatisfiable_rule_is_excluded_from_count_and_sum():
    facts = FactTable()
    act_a = Action("A")
    good = Rule(StructuredCondition(("x",)), act_a, strength=1.0, importance=1.0)
    dead = Rule(StructuredCondition(("y",), requires=("missing",)), act_a, strength=1.0, importance=1.0)
    table = aggregate_actions([dead, good], ContextCache(facts), _imp)
    agg = table.get(act_a)
    assert agg.count == 1
    assert agg.sum_weight == pytest.approx(1.0)
    assert agg.first_rule is good
    assert [r for r, _ in table.excluded] == [dead]


def test_action_with_only_zero_weight_rules_never_appears():
    act_b = Action("B")
    r = Rule(StructuredCondition(("x",)), act_b, strength=0.0, importance=1.0)
    table = aggregate_actions([r], ContextCache(lambda _c: 1.0), _imp)
    assert len(table) == 0
    assert table.get(act_b) is None
    assert table.total() == 0.0


def test_weights_preserve_insertion_order():
    a, b = Action("A"), Action("B")
    rules = [
        Rule(StructuredCondition(("1",)), b, importance=1.0),
        Rule(StructuredCondition(("2",)), a, importance=1.0),
        Rule(StructuredCondition(("3",)), b, importance=1.0, strength=0.5),
    ]
    table = aggregate_actions(rules, ContextCache(lambda _c: 1.0), _imp)
    assert [act for act, _ in table.weights()] == [b, a]
    assert dict((act.name, w) for act, w in table.weights()) == {"B": pytest.approx(0.75), "A": 1.0}
    summary = table.summary()
    assert summary["actions"][0]["action"] == "B" and summary["actions"][0]["count"] == 2


def test_non_finite_weights_are_excluded_not_averaged():
    """A NaN or inf importance from an injected source must not poison the action's mean."""
    act_a, act_b = Action("A"), Action("B")
    healthy = Rule(StructuredCondition(("x",)), act_a, importance=1.0)
    odd_nan = Rule(StructuredCondition(("y",)), act_a, importance=1.0)
    odd_inf = Rule(StructuredCondition(("z",)), act_b, importance=1.0)
    injected = {id(odd_nan): float("nan"), id(odd_inf): float("inf")}
    table = aggregate_actions([healthy, odd_nan, odd_inf], ContextCache(lambda _c: 1.0),
                              lambda r: injected.get(id(r), r.importance))
    agg = table.get(act_a)
    assert agg.count == 1 and agg.weight == 1.0
    assert table.get(act_b) is None
    assert [r for r, _ in table.excluded] == [odd_nan, odd_inf]
