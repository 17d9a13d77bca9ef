# -*- coding: utf-8 -*-
"""
PSI Weight Calculator

Per rule:
    rule_weight = strength * satisfiability(context) * importance_term

    importance_term
      -the rule's importance score when importance is enabled
      -otherwise the topic boost: 1.0 if the rule's topic is the active topic, else 0.5
         (importance is 0.0 everywhere when no attention subsystem runs; without the boost
          every weight would be zero and nothing could ever be selected)

Per action (over rules with weight > 0 only):
    count       = number of contributing rules
    sum_weight  = sum of their weights
    weight      = sum_weight / count        <-- mean, not sum

-rules with weight <= 0 or a non-finite weight (unsatisfiable context, zero strength, zero or
  NaN importance from an injected importance source) are excluded,
  not added with weight 0; they are logged and listed in AggregateTable.excluded
-the mean stops an action from winning just because many weak rules point at it
"""

# --- Imports -------------------------------------------------------------
# Standard Library Imports
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import logging
import math

# PyPI and Third-Party Imports
# --none at this time at program startup--

# PSI Module Imports
from psi_rules import Action, Rule
from psi_context import ContextCache

__version__ = "0.1.0"
__all__ = [
    "TOPIC_BOOST_ACTIVE",
    "TOPIC_BOOST_OTHER",
    "importance_term",
    "rule_weight",
    "ActionAggregate",
    "AggregateTable",
    "aggregate_actions",
    "__version__",
]

TOPIC_BOOST_ACTIVE = 1.0
TOPIC_BOOST_OTHER = 0.5


def _rule_importance(rule: Rule) -> float:
    return rule.importance


def importance_term(
    rule: Rule,
    *,
    importance_enabled: bool = True,
    active_topic: Optional[str] = None,
    importance_of: Callable[[Rule], float] = _rule_importance,
) -> float:
    """Importance factor for one rule (see module docstring)."""
    if importance_enabled:
        return float(importance_of(rule))
    if active_topic is not None and rule.topic == active_topic:
        return TOPIC_BOOST_ACTIVE
    return TOPIC_BOOST_OTHER


def rule_weight(rule: Rule, satisfiability: float, importance: float) -> float:
    return rule.strength * float(satisfiability) * float(importance)


@dataclass(slots=True)
class ActionAggregate:
    """Running tally for one action within one pass.
    -first_rule is the rule returned if this action wins
    """
    action: Action
    first_rule: Rule
    count: int = 0
    sum_weight: float = 0.0


    def add(self, w: float) -> None:
        self.count += 1
        self.sum_weight += w


    @property
    def weight(self) -> float:
        return self.sum_weight / self.count if self.count else 0.0


@dataclass
class AggregateTable:
    """Ordered per-action aggregates plus the rules left out of them."""
    aggregates: Dict[int, ActionAggregate] = field(default_factory=dict)  # id(action) -> aggregate, insertion order
    excluded: List[Tuple[Rule, float]] = field(default_factory=list)      # (rule, its non-positive weight)
    rule_weights: List[Tuple[Rule, float]] = field(default_factory=list)  # every candidate, in order


    def __len__(self) -> int:
        return len(self.aggregates)


    def __iter__(self):
        return iter(self.aggregates.values())


    def get(self, action: Action) -> Optional[ActionAggregate]:
        return self.aggregates.get(id(action))


    def weights(self) -> List[Tuple[Action, float]]:
        """[(action, mean weight), ...] in first-contribution order."""
        return [(a.action, a.weight) for a in self.aggregates.values()]


    def total(self) -> float:
        return sum(a.weight for a in self.aggregates.values())


    def summary(self) -> dict:
        """JSON-safe view for logs and --explain."""
        return {
            "actions": [
                {"action": a.action.name, "count": a.count, "sum": a.sum_weight, "weight": a.weight,
                 "rule": a.first_rule.alias}
                for a in self.aggregates.values()
            ],
            "excluded": [{"action": r.action.name, "alias": r.alias, "weight": w} for r, w in self.excluded],
        }


def aggregate_actions(
    rules: Iterable[Rule],
    cache: ContextCache,
    importance_fn: Callable[[Rule], float],
) -> AggregateTable:
    """Weigh every candidate rule and fold the positive ones into per-action means."""
    table = AggregateTable()
    for r in rules:
        sat = cache.evaluate(r.context)
        w = rule_weight(r, sat, importance_fn(r))
        table.rule_weights.append((r, w))
        if not (w > 0.0 and math.isfinite(w)):
            logging.debug("weights: excluded %r (strength=%.3f sat=%.3f weight=%.3f)", r, r.strength, sat, w)
            table.excluded.append((r, w))
            continue
        agg = table.aggregates.get(id(r.action))
        if agg is None:
            agg = ActionAggregate(action=r.action, first_rule=r)
            table.aggregates[id(r.action)] = agg
        agg.add(w)
    return table
