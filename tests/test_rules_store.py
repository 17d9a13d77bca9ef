# -*- coding: utf-8 -*-
import pytest

from psi_rules import Action, Rule, RuleStore, StructuredCondition, WildcardCondition, is_variable


def _store():
    s = RuleStore()
    hello = StructuredCondition(("hello",))
    hello_x = StructuredCondition(("hello", "$who"))
    x_there = StructuredCondition(("$greet", "there"))
    any_one = WildcardCondition(("$x",))
    r1 = s.add_rule(hello, Action("say_hi"), alias="hi")
    r2 = s.add_rule(hello_x, Action("say_hi_name"))
    r3 = s.add_rule(x_there, Action("look"))
    r4 = s.add_rule(any_one, Action("chat"))
    return s, (r1, r2, r3, r4)


def test_is_variable():
    assert is_variable("$x")
    assert not is_variable("x")
    assert not is_variable("$")


def test_rule_validation_rejects_out_of_range_values():
    c = StructuredCondition(("a",))
    with pytest.raises(ValueError):
        Rule(c, Action("a"), strength=1.5)
    with pytest.raises(ValueError):
        Rule(c, Action("a"), importance=-0.1)


def test_wildcard_condition_rejects_constants():
    with pytest.raises(ValueError):
        WildcardCondition(("$x", "hello"))
    with pytest.raises(ValueError):
        StructuredCondition(())


def test_conditions_compare_by_identity_only():
    a = StructuredCondition(("hello",))
    b = StructuredCondition(("hello",))
    assert a != b
    assert a == a
    assert a.identity != b.identity


def test_represent_tokenises_strings_and_sequences():
    s = RuleStore()
    assert s.represent("Hello, Bob!") == ("hello", "bob")
    assert s.represent(["hello", "bob"]) == ("hello", "bob")
    assert s.represent("") is None
    assert s.represent("  ?! ") is None
    assert s.represent(None) is None


def test_exact_wildcard_and_indexed_lookups():
    s, (r1, r2, r3, r4) = _store()
    assert s.find_exact_matches(("hello",)) == [r1]
    assert s.find_exact_matches(("hello", "bob")) == []
    assert s.get_wildcard_rules() == [r4]
    # positional: "$who" binds bob; "$greet there" needs 'there' in slot 2
    assert s.find_indexed_matches(("hello", "bob")) == [r2]
    assert s.find_indexed_matches(("hello", "there")) == [r2, r3]
    assert s.find_indexed_matches(("nothing",)) == []


def test_add_same_rule_twice_is_noop():
    s, (r1, _, _, _) = _store()
    n = len(s)
    s.add(r1)
    assert len(s) == n
    assert s.find_exact_matches(("hello",)) == [r1]


def test_focus_must_be_registered():
    s, (r1, _, _, r4) = _store()
    s.set_focus([r4, r1, r4])
    assert s.get_focus_rules() == [r4, r1]
    stranger = Rule(StructuredCondition(("x",)), Action("x"))
    with pytest.raises(KeyError):
        s.add_focus(stranger)
    s.clear_focus()
    assert s.get_focus_rules() == []


def test_find_alias_and_goal():
    s = RuleStore()
    r = s.add_rule(StructuredCondition(("a",)), Action("a"), alias="x", goal="g")
    assert s.find_alias("x") is r
    assert s.find_alias("nope") is None
    assert s.rules_for_goal("g") == [r]


def test_check_invariants_clean_store():
    s, _ = _store()
    assert s.check_invariants() == []


def test_check_invariants_reports_broken_index():
    s, (r1, _, _, _) = _store()
    s._exact[("other",)] = [r1]  # pylint: disable=protected-access
    issues = s.check_invariants(raise_on_error=False)
    assert issues and "exact index" in issues[0]
    with pytest.raises(AssertionError):
        s.check_invariants()


def test_rule_rejects_non_finite_importance():
    c = StructuredCondition(("a",))
    with pytest.raises(ValueError):
        Rule(c, Action("a"), importance=float("nan"))
    with pytest.raises(ValueError):
        Rule(c, Action("a"), importance=float("inf"))
    with pytest.raises(ValueError):
        Rule(c, Action("a"), strength=float("nan"))


def test_condition_constants_match_case_insensitively():
    s = RuleStore()
    c = StructuredCondition(("Hello", "$Who"))
    assert c.terms == ("hello", "$Who")
    r_exact = s.add_rule(StructuredCondition(["Hello"]), Action("say_hi"))
    r_var = s.add_rule(c, Action("say_name"))
    assert s.find_exact_matches(s.represent("HELLO")) == [r_exact]
    assert s.find_indexed_matches(s.represent(["Hello", "Bob"])) == [r_var]


def test_from_dict_rejects_bad_focus_indices():
    s, _ = _store()
    snap = s.to_dict()
    for bad in (99, -1, "0", 1.0, True):
        snap["focus"] = [bad]
        with pytest.raises(ValueError):
            RuleStore.from_dict(snap)
    snap["focus"] = [0, 3]
    assert len(RuleStore.from_dict(snap).get_focus_rules()) == 2
