# -*- coding: utf-8 -*-
"""
PSI Candidate Gatherer

Collects the rules relevant to one selection pass.

Triggered mode (input-driven), in this order:
    1) exact    -- rules whose condition terms literally equal the trigger representation
    2) wildcard -- rules with no constant terms (context-free templates)
    3) indexed  -- rules found through the structural term index
  -the three lists are concatenated and de-duplicated by context identity, first seen wins
  -a trigger with no usable representation gives [] and no strategy is consulted

Focus mode (attention-driven, no trigger):
    -the source's focus subset, or every registered rule when the focus filter is off
"""

# --- Imports -------------------------------------------------------------
# Standard Library Imports
from __future__ import annotations
from typing import Iterable, List, Optional, Protocol, Sequence
import logging

# PyPI and Third-Party Imports
# --none at this time at program startup--

# PSI Module Imports
from psi_rules import Rule

__version__ = "0.1.0"
__all__ = [
    "STRATEGIES",
    "RuleSource",
    "dedup_by_context",
    "gather_triggered",
    "gather_focus",
    "__version__",
]

STRATEGIES: tuple[str, ...] = ("exact", "wildcard", "indexed")


class RuleSource(Protocol):
    """What the gatherer needs from a rule pool (psi_rules.RuleStore is the reference one)."""

    def represent(self, trigger) -> Optional[Sequence[str]]: ...

    def find_exact_matches(self, rep: Sequence[str]) -> Iterable[Rule]: ...

    def get_wildcard_rules(self) -> Iterable[Rule]: ...

    def find_indexed_matches(self, rep: Sequence[str]) -> Iterable[Rule]: ...

    def get_focus_rules(self) -> Iterable[Rule]: ...

    def get_all_registered_rules(self) -> Iterable[Rule]: ...


def dedup_by_context(rules: Iterable[Rule]) -> List[Rule]:
    """Keep the first rule seen for each context object; order is preserved."""
    seen: set[int] = set()
    out: List[Rule] = []
    for r in rules:
        key = id(r.context)
        if key in seen:
            continue
        seen.add(key)
        out.append(r)
    return out


def gather_triggered(source: RuleSource, trigger, strategies: Sequence[str] = STRATEGIES) -> List[Rule]:
    """Candidate rules for an input trigger (see module docstring)."""
    rep = source.represent(trigger)
    if not rep:
        logging.debug("gather: trigger %r has no matchable structure", trigger)
        return []

    merged: List[Rule] = []
    counts = {}
    for name in STRATEGIES:
        if name not in strategies:
            continue
        if name == "exact":
            found = list(source.find_exact_matches(rep))
        elif name == "wildcard":
            found = list(source.get_wildcard_rules())
        else:
            found = list(source.find_indexed_matches(rep))
        counts[name] = len(found)
        merged.extend(found)

    out = dedup_by_context(merged)
    logging.debug("gather: rep=%r per-strategy=%r merged=%d unique=%d", tuple(rep), counts, len(merged), len(out))
    return out


def gather_focus(source: RuleSource, *, use_focus_filter: bool = True) -> List[Rule]:
    """Candidate rules for an attention tick."""
    if use_focus_filter:
        rules = source.get_focus_rules()
    else:
        rules = source.get_all_registered_rules()
    return dedup_by_context(rules)
