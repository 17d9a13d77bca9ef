# -*- coding: utf-8 -*-
from psi_gather import dedup_by_context, gather_focus, gather_triggered
from psi_rules import Action, Rule, RuleStore, StructuredCondition, WildcardCondition


class FakeSource:
    """Minimal rule source: fixed lists per strategy, counts how often each was asked."""
    def __init__(self, exact=(), wildcard=(), indexed=(), focus=(), everything=()):
        self.exact, self.wildcard, self.indexed = list(exact), list(wildcard), list(indexed)
        self.focus, self.everything = list(focus), list(everything)
        self.asked = []
    def represent(self, trigger):
        words = tuple(str(trigger or "").split())
        return words or None
    def find_exact_matches(self, rep):
        self.asked.append("exact")
        return self.exact
    def get_wildcard_rules(self):
        self.asked.append("wildcard")
        return self.wildcard
    def find_indexed_matches(self, rep):
        self.asked.append("indexed")
        return self.indexed
    def get_focus_rules(self):
        return self.focus
    def get_all_registered_rules(self):
        return self.everything


def _rule(ctx, name):
    return Rule(ctx, Action(name))


def test_dedup_keeps_first_rule_per_context():
    shared = StructuredCondition(("hi",))
    r1 = _rule(shared, "a")
    r2 = _rule(shared, "b")
    r3 = _rule(StructuredCondition(("hi",)), "c")  # equal terms, other object: kept
    assert dedup_by_context([r1, r2, r3, r1]) == [r1, r3]


def test_triggered_merges_in_strategy_order():
    e = _rule(StructuredCondition(("hi",)), "exact")
    w = _rule(WildcardCondition(("$x",)), "wild")
    i = _rule(StructuredCondition(("$x",)), "indexed")
    src = FakeSource(exact=[e], wildcard=[w], indexed=[i, e])
    assert gather_triggered(src, "hi") == [e, w, i]
    assert src.asked == ["exact", "wildcard", "indexed"]


def test_triggered_dedups_across_strategies():
    shared = StructuredCondition(("hi",))
    first = _rule(shared, "a")
    src = FakeSource(exact=[first], wildcard=[_rule(shared, "b")], indexed=[_rule(shared, "c")])
    assert gather_triggered(src, "hi") == [first]


def test_trigger_without_structure_consults_nothing():
    src = FakeSource(exact=[_rule(StructuredCondition(("hi",)), "a")])
    assert gather_triggered(src, "   ") == []
    assert gather_triggered(src, None) == []
    assert src.asked == []


def test_strategy_subset():
    e = _rule(StructuredCondition(("hi",)), "exact")
    w = _rule(WildcardCondition(("$x",)), "wild")
    src = FakeSource(exact=[e], wildcard=[w])
    assert gather_triggered(src, "hi", strategies=("wildcard",)) == [w]
    assert src.asked == ["wildcard"]


def test_focus_mode_uses_filter_or_whole_pool():
    a = _rule(StructuredCondition(("a",)), "a")
    b = _rule(StructuredCondition(("b",)), "b")
    src = FakeSource(focus=[b], everything=[a, b])
    assert gather_focus(src) == [b]
    assert gather_focus(src, use_focus_filter=False) == [a, b]


def test_gather_against_rule_store():
    s = RuleStore()
    hello = StructuredCondition(("hello",))
    r_hi = s.add_rule(hello, Action("say_hi"))
    s.add_rule(hello, Action("wave"))
    r_name = s.add_rule(StructuredCondition(("hello", "$n")), Action("say_name"))
    r_any = s.add_rule(WildcardCondition(("$x",)), Action("chat"))
    assert gather_triggered(s, "Hello") == [r_hi, r_any]
    assert gather_triggered(s, "hello bob") == [r_any, r_name]
