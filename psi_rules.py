# -*- coding: utf-8 -*-
"""
PSI Rules: rule records, conditions, actions and the in-memory rule store.

Concepts
--------
- Rule: a condition --> action association, plus
    -strength   : the rule's own confidence, 0..1, independent of the current state
    -importance : externally assigned salience (>= 0); 0.0 when no attention subsystem is running
    -goal       : the goal/demand the rule serves (upstream bookkeeping only; the selector ignores it)
    -alias      : optional user-facing id written to the rejoinder slot when the rule wins
    -topic      : optional group name; used by the topic-boost fallback when importance is disabled
  -rules are immutable and compared by identity; a (context, action, goal) triple is one rule instance
  -the selector never creates or mutates rules, it only reads them for one pass

- Condition (the "context" half of a rule) -- two variants:
    -StructuredCondition(terms, requires): ordered pattern terms, e.g., ("hello", "$name")
         a term starting with "$" is a variable, anything else is a constant
    -WildcardCondition(variables, requires): no constant terms at all, e.g., ("$x",)
         these are context-free templates and are kept in a dedicated wildcard registry
    -'requires' lists the world facts the fact-table evaluator (see psi_context) checks
    -conditions compare only by identity; several rules may share one condition object
       and the candidate gatherer de-duplicates on exactly that identity

- Action: opaque named payload, compared by identity

RuleStore
---------
A small reference implementation of the rule-source collaborator the selector consumes:
  • exact index   : constant-only term tuple --> rules   (literal structural match)
  • wildcard list : rules whose condition carries no constants
  • term index    : constant term --> rules   (inverted index used for positional/variable matching)
  • focus subset  : the "currently salient" rules used by focus-mode selection
It also does persistence (to_dict/from_dict), invariant checks and a Pyvis export, in the same way
the episode graph did for bindings.
"""

# --- Imports -------------------------------------------------------------
# Standard Library Imports
from __future__ import annotations
from dataclasses import dataclass
from typing import ClassVar, Dict, Iterator, List, Optional, Sequence, Union
import itertools
import math
import os
import re

# PyPI and Third-Party Imports
# --pyvis is imported lazily by RuleStore.to_pyvis_html()--

# PSI Module Imports
# --none at this time at program startup--

# --- Public API index and version -------------------------------------------------------------
__version__ = "0.1.0"
__all__ = [
    "VARIABLE_PREFIX",
    "is_variable",
    "StructuredCondition",
    "WildcardCondition",
    "Condition",
    "Action",
    "Rule",
    "RuleStore",
    "__version__",
]

VARIABLE_PREFIX = "$"

_WORD_RE = re.compile(r"[\w']+")


def is_variable(term: str) -> bool:
    """True if a pattern term is a variable (e.g., '$name')."""
    return isinstance(term, str) and term.startswith(VARIABLE_PREFIX) and len(term) > 1


def _as_terms(value) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(str(t) for t in (value or ()))


# -----------------------------------------------------------------------------
# Data model
# -----------------------------------------------------------------------------

@dataclass(frozen=True, eq=False, slots=True)
class StructuredCondition:
    """Pattern condition: ordered terms, constants and '$variables' mixed.

    Attributes:
        terms: e.g., ("hello", "$name"); matched position by position against a trigger representation.
        requires: fact names consulted by the satisfiability evaluator, e.g., ("face:visible",).
    """
    terms: tuple[str, ...]
    requires: tuple[str, ...] = ()
    kind: ClassVar[str] = "structured"


    def __post_init__(self):
        # constants are matched case-insensitively; represent() lower-cases triggers the same way
        terms = tuple(t if is_variable(t) else t.lower() for t in _as_terms(self.terms))
        object.__setattr__(self, "terms", terms)
        object.__setattr__(self, "requires", _as_terms(self.requires))
        if not self.terms:
            raise ValueError("StructuredCondition needs at least one term")


    @property
    def identity(self) -> int:
        """Identity used for de-duplication (object identity, never structural equality)."""
        return id(self)


    def constants(self) -> tuple[str, ...]:
        return tuple(t for t in self.terms if not is_variable(t))


    def has_constants(self) -> bool:
        return any(not is_variable(t) for t in self.terms)


    def has_variables(self) -> bool:
        return any(is_variable(t) for t in self.terms)


    def matches(self, rep: Sequence[str]) -> bool:
        """Positional match: same length, constants equal, variables match any term."""
        if len(rep) != len(self.terms):
            return False
        return all(is_variable(t) or t == r for t, r in zip(self.terms, rep))


@dataclass(frozen=True, eq=False, slots=True)
class WildcardCondition:
    """Context-free template: every term is a variable.
    -an empty 'variables' tuple is allowed and means "any input at all"
    """
    variables: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()
    kind: ClassVar[str] = "wildcard"


    def __post_init__(self):
        object.__setattr__(self, "variables", _as_terms(self.variables))
        object.__setattr__(self, "requires", _as_terms(self.requires))
        bad = [t for t in self.variables if not is_variable(t)]
        if bad:
            raise ValueError(f"WildcardCondition cannot hold constant terms: {bad!r}")


    @property
    def identity(self) -> int:
        return id(self)


    @property
    def terms(self) -> tuple[str, ...]:
        return self.variables


    def constants(self) -> tuple[str, ...]:
        return ()


    def has_constants(self) -> bool:
        return False


    def has_variables(self) -> bool:
        return bool(self.variables)


    def matches(self, rep: Sequence[str]) -> bool:
        return not self.variables or len(rep) == len(self.variables)


Condition = Union[StructuredCondition, WildcardCondition]


@dataclass(frozen=True, eq=False, slots=True)
class Action:
    """Opaque action expression; only its identity matters to the selector."""
    name: str
    payload: object = None


    def __repr__(self) -> str:
        return f"Action({self.name!r})"


@dataclass(frozen=True, eq=False, slots=True)
class Rule:
    """One condition --> action rule (see module docstring for field meanings).
    -frozen and identity-compared: two rules with equal fields are still two rules
    """
    context: Condition
    action: Action
    goal: Optional[str] = None
    strength: float = 1.0
    importance: float = 0.0
    alias: Optional[str] = None
    topic: Optional[str] = None


    def __post_init__(self):
        s = float(self.strength)
        imp = float(self.importance)
        if not 0.0 <= s <= 1.0:
            raise ValueError(f"rule strength must be in [0, 1], got {s!r}")
        if not (math.isfinite(imp) and imp >= 0.0):
            raise ValueError(f"rule importance must be a finite number >= 0, got {imp!r}")
        object.__setattr__(self, "strength", s)
        object.__setattr__(self, "importance", imp)


    def __repr__(self) -> str:
        label = self.alias or self.action.name
        return f"Rule({label!r}, terms={self.context.terms!r}, strength={self.strength})"


# -----------------------------------------------------------------------------
# Rule store (reference rule-source collaborator)
# -----------------------------------------------------------------------------

class RuleStore:
    """In-memory rule pool with the lookups the candidate gatherer needs.

    Lookups:
        represent(trigger)          -> term tuple, or None if the trigger carries no usable terms
        find_exact_matches(rep)     -> rules whose constant-only terms equal rep
        get_wildcard_rules()        -> rules whose condition has no constants
        find_indexed_matches(rep)   -> rules found through the term index whose pattern matches rep
        get_focus_rules()           -> the salient subset (set_focus/add_focus)
        get_all_registered_rules()  -> every rule, registration order

    All lookups return lists in registration order so selection under a fixed random
    source is reproducible.
    """

    def __init__(self) -> None:
        self._rules: List[Rule] = []
        self._exact: Dict[tuple[str, ...], List[Rule]] = {}
        self._wildcard: List[Rule] = []
        self._term_index: Dict[str, List[Rule]] = {}
        self._focus: List[Rule] = []


    def __len__(self) -> int:
        return len(self._rules)


    def __iter__(self) -> Iterator[Rule]:
        return iter(list(self._rules))


    def __contains__(self, rule) -> bool:
        return any(r is rule for r in self._rules)


    # ------------------------- registration -----------------------

    def add(self, rule: Rule) -> Rule:
        """Register an existing Rule and index it. Registering the same object twice is a no-op."""
        if not isinstance(rule, Rule):
            raise TypeError(f"expected Rule, got {type(rule).__name__}")
        if rule in self:
            return rule
        self._rules.append(rule)
        ctx = rule.context
        if not ctx.has_constants():
            self._wildcard.append(rule)
            return rule
        if not ctx.has_variables():
            self._exact.setdefault(tuple(ctx.terms), []).append(rule)
        for term in dict.fromkeys(ctx.constants()):
            self._term_index.setdefault(term, []).append(rule)
        return rule


    def add_rule(self, context: Condition, action: Action, **fields) -> Rule:
        """Convenience: build a Rule from parts and register it."""
        return self.add(Rule(context=context, action=action, **fields))


    def set_focus(self, rules) -> None:
        """Replace the focus subset. Every rule must already be registered."""
        rules = list(rules)
        for r in rules:
            if r not in self:
                raise KeyError(f"focus rule is not registered: {r!r}")
        self._focus = []
        for r in rules:
            if not any(f is r for f in self._focus):
                self._focus.append(r)


    def add_focus(self, rule: Rule) -> None:
        self.set_focus(self._focus + [rule])


    def clear_focus(self) -> None:
        self._focus = []


    # ------------------------- lookups -----------------------

    def represent(self, trigger) -> Optional[tuple[str, ...]]:
        """Turn a trigger into the term tuple used for matching.
        -strings are lower-cased and split into words, e.g., "Hello, Bob!" -> ("hello", "bob")
        -sequences are taken term by term (already-tokenised input), also lower-cased
        -returns None when nothing usable remains (no predicate structure to match)
        -condition constants are stored lower-cased, so matching is case-insensitive
        """
        if trigger is None:
            return None
        if isinstance(trigger, str):
            rep = tuple(_WORD_RE.findall(trigger.lower()))
        else:
            rep = tuple(str(t).lower() for t in trigger if str(t))
        return rep or None


    def find_exact_matches(self, rep: Sequence[str]) -> List[Rule]:
        return list(self._exact.get(tuple(rep), ()))


    def get_wildcard_rules(self) -> List[Rule]:
        return list(self._wildcard)


    def find_indexed_matches(self, rep: Sequence[str]) -> List[Rule]:
        """Structural lookup through the term index.
        -collect every rule indexed under any term of rep, then keep those whose pattern
           matches rep positionally (variables bind to any term)
        -result keeps registration order
        """
        rep = tuple(rep)
        hits: set[int] = set()
        for term in dict.fromkeys(rep):
            for r in self._term_index.get(term, ()):
                hits.add(id(r))
        if not hits:
            return []
        return [r for r in self._rules if id(r) in hits and r.context.matches(rep)]


    def get_focus_rules(self) -> List[Rule]:
        return list(self._focus)


    def get_all_registered_rules(self) -> List[Rule]:
        return list(self._rules)


    def rules_for_goal(self, goal: str) -> List[Rule]:
        return [r for r in self._rules if r.goal == goal]


    def find_alias(self, alias: str) -> Optional[Rule]:
        return next((r for r in self._rules if r.alias == alias), None)


    # ------------------------- persistence -----------------------

    def to_dict(self) -> dict:
        """Serialize the pool to JSON-safe dicts.
        -conditions and actions are written once each and referenced by id ("c1", "a1", ...),
           so a condition shared by several rules is restored as one shared object
        """
        cond_ids: Dict[int, str] = {}
        act_ids: Dict[int, str] = {}
        conditions: Dict[str, dict] = {}
        actions: Dict[str, dict] = {}
        c_counter = itertools.count(1)
        a_counter = itertools.count(1)
        rows = []
        for r in self._rules:
            ctx, act = r.context, r.action
            if id(ctx) not in cond_ids:
                cid = f"c{next(c_counter)}"
                cond_ids[id(ctx)] = cid
                conditions[cid] = {"kind": ctx.kind, "terms": list(ctx.terms), "requires": list(ctx.requires)}
            if id(act) not in act_ids:
                aid = f"a{next(a_counter)}"
                act_ids[id(act)] = aid
                actions[aid] = {"name": act.name, "payload": act.payload}
            rows.append({
                "context": cond_ids[id(ctx)],
                "action": act_ids[id(act)],
                "goal": r.goal,
                "strength": r.strength,
                "importance": r.importance,
                "alias": r.alias,
                "topic": r.topic,
            })
        index_of = {id(r): i for i, r in enumerate(self._rules)}
        return {
            "conditions": conditions,
            "actions": actions,
            "rules": rows,
            "focus": [index_of[id(r)] for r in self._focus],
            "version": "0.1",
        }


    @classmethod
    def from_dict(cls, data: dict) -> "RuleStore":
        """Rebuild a store from to_dict() output (or a hand-written rule file)."""
        store = cls()
        conditions: Dict[str, Condition] = {}
        for cid, c in (data.get("conditions") or {}).items():
            kind = c.get("kind", "structured")
            if kind == "structured":
                conditions[cid] = StructuredCondition(tuple(c.get("terms", ())), tuple(c.get("requires", ())))
            elif kind == "wildcard":
                conditions[cid] = WildcardCondition(tuple(c.get("terms", ())), tuple(c.get("requires", ())))
            else:
                raise ValueError(f"Unknown condition kind: {kind!r}")
        actions = {aid: Action(a["name"], a.get("payload")) for aid, a in (data.get("actions") or {}).items()}
        for row in data.get("rules", []):
            try:
                ctx = conditions[row["context"]]
                act = actions[row["action"]]
            except KeyError as e:
                raise ValueError(f"rule references unknown id {e.args[0]!r}") from e
            store.add_rule(
                ctx, act,
                goal=row.get("goal"),
                strength=row.get("strength", 1.0),
                importance=row.get("importance", 0.0),
                alias=row.get("alias"),
                topic=row.get("topic"),
            )
        rules = store._rules
        focus = []
        for i in data.get("focus", []) or []:
            if isinstance(i, bool) or not isinstance(i, int) or not 0 <= i < len(rules):
                raise ValueError(f"focus entry {i!r} is not a rule index in 0..{len(rules) - 1}")
            focus.append(rules[i])
        store.set_focus(focus)
        return store


    def check_invariants(self, *, raise_on_error: bool = True) -> list[str]:
        """Validate index consistency. Return a list of human-readable issues.

        Checks:
          - exact-index rules carry no variables and sit under their own term tuple
          - wildcard rules carry no constants
          - every indexed / focus rule is registered
        """
        issues: list[str] = []
        registered = {id(r) for r in self._rules}
        for key, rules in self._exact.items():
            for r in rules:
                if r.context.has_variables() or tuple(r.context.terms) != key:
                    issues.append(f"exact index entry {key!r} holds non-literal rule {r!r}")
        for r in self._wildcard:
            if r.context.has_constants():
                issues.append(f"wildcard registry holds rule with constants {r!r}")
        for term, rules in self._term_index.items():
            for r in rules:
                if id(r) not in registered:
                    issues.append(f"term index {term!r} points to unregistered rule")
        for r in self._focus:
            if id(r) not in registered:
                issues.append(f"focus rule {r!r} is not registered")
        if raise_on_error and issues:
            raise AssertionError("RuleStore invariant violations:\n  - " + "\n  - ".join(issues))
        return issues


    # ------------------------- visualisation -----------------------

    def to_pyvis_html(
        self,
        path_html: str = "rule_pool.html",
        *,
        physics: bool = True,
        show_edge_labels: bool = True,
        height: str = "750px",
        width: str = "100%",
        ) -> str:
        """
        Export the rule pool to an interactive HTML graph (Pyvis).
        Returns the absolute output path.

        Layout:
            - one box node per distinct condition (label = its terms), wildcard conditions in grey
            - one ellipse node per distinct action
            - one edge per rule, condition --> action, labelled with alias (or strength)
            - focus rules draw with a thicker amber edge
        """
        # pylint: disable=import-outside-toplevel
        try:
            from pyvis.network import Network
        except Exception as e:
            raise RuntimeError(
                "Pyvis not installed. Install with:  pip install pyvis"
            ) from e
        import html
        import json

        net = Network(height=height, width=width, directed=True, notebook=False)
        #pylint: disable=expression-not-assigned
        net.barnes_hut() if physics else net.toggle_physics(False)
        #pylint: enable=expression-not-assigned

        focus_ids = {id(r) for r in self._focus}
        seen_nodes: set[str] = set()
        for r in self._rules:
            cnode = f"ctx:{id(r.context)}"
            anode = f"act:{id(r.action)}"
            if cnode not in seen_nodes:
                seen_nodes.add(cnode)
                terms = " ".join(r.context.terms) or "(any)"
                title = "<br/>".join([
                    f"<b>{html.escape(r.context.kind)}</b>",
                    f"terms: {html.escape(terms)}",
                    f"requires: {html.escape(', '.join(r.context.requires) or '(none)')}",
                ])
                color = "#BDBDBD" if r.context.kind == "wildcard" else "#64B5F6"
                net.add_node(cnode, label=terms, title=title, shape="box", color=color)
            if anode not in seen_nodes:
                seen_nodes.add(anode)
                payload = html.escape(json.dumps(r.action.payload, ensure_ascii=False, default=str)[:240])
                net.add_node(anode, label=r.action.name, title=f"payload: {payload}", shape="ellipse")

            rel = r.alias or f"s={r.strength:.2f}"
            edge_kwargs = {"title": f"{rel} goal={r.goal} topic={r.topic} imp={r.importance:.2f}"}
            if show_edge_labels:
                edge_kwargs["label"] = rel
            if id(r) in focus_ids:
                edge_kwargs["color"] = "#FFD54F"
                edge_kwargs["width"] = 3
            net.add_edge(cnode, anode, **edge_kwargs)

        out = os.path.abspath(path_html)
        os.makedirs(os.path.dirname(out) or ".", exist_ok=True)
        net.write_html(out, notebook=False)
        return out
