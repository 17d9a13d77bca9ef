# -*- coding: utf-8 -*-
"""
PSI Context: per-pass satisfiability cache and a fact-table evaluator.

-ContextCache memoizes, within ONE selection pass, the satisfiability score of each distinct
  context (keyed by object identity). The evaluator behind it may have side effects (variable
  binding, bookkeeping), so it must run at most once per context per pass.
-the cache is built fresh at the start of every pass and dropped at the end; satisfiability
  depends on the world state at that moment and must not leak into the next pass
-FactTable is a tiny world-state stand-in: fact name -> truth degree in [0, 1]. Its
  satisfiability(condition) is the fuzzy AND (minimum) over the condition's 'requires' facts.
  Hosts with a real truth evaluator pass their own callable instead.
"""

# --- Imports -------------------------------------------------------------
# Standard Library Imports
from __future__ import annotations
from typing import Callable, Dict, Optional
import logging
import math
import numbers

# PyPI and Third-Party Imports
# --none at this time at program startup--

# PSI Module Imports
# --none at this time at program startup--

__version__ = "0.1.0"
__all__ = ["ContextCache", "FactTable", "clamp_unit", "__version__"]


def clamp_unit(value) -> float:
    """Coerce an evaluator result into [0, 1].
    -non-numbers raise TypeError (a broken evaluator is the caller's problem, not ours)
    -NaN counts as 0.0
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError(f"satisfiability must be a real number, got {type(value).__name__}")
    v = float(value)
    if not math.isfinite(v):
        return 0.0 if math.isnan(v) else (1.0 if v > 0 else 0.0)
    return max(0.0, min(1.0, v))


class ContextCache:
    """Pass-scoped memo of context -> satisfiability.

    e.g., cache = ContextCache(facts.satisfiability)
          cache.evaluate(ctx)   # calls the evaluator
          cache.evaluate(ctx)   # returns the stored score; cache.calls stays 1
    """

    def __init__(self, evaluator: Callable[[object], float]) -> None:
        self._evaluator = evaluator
        # id(context) -> (context, score); the context is held so its id cannot be reused mid-pass
        self._scores: Dict[int, tuple[object, float]] = {}
        self.calls = 0


    def evaluate(self, context) -> float:
        hit = self._scores.get(id(context))
        if hit is not None:
            return hit[1]
        raw = self._evaluator(context)
        self.calls += 1
        score = clamp_unit(raw)
        self._scores[id(context)] = (context, score)
        return score


    def __len__(self) -> int:
        return len(self._scores)


    def __contains__(self, context) -> bool:
        return id(context) in self._scores


    def snapshot(self) -> Dict[int, float]:
        """identity -> score for everything evaluated so far (diagnostics)."""
        return {k: v[1] for k, v in self._scores.items()}


class FactTable:
    """World-state stand-in for the reference evaluator.

    Attributes:
        facts: fact name -> truth degree in [0, 1]
        evaluations: how many times satisfiability() ran (the cache should keep this low)
    """

    def __init__(self, facts: Optional[Dict[str, float]] = None) -> None:
        self.facts: Dict[str, float] = {}
        self.evaluations = 0
        for name, degree in (facts or {}).items():
            self.set(name, degree)


    def set(self, fact: str, degree: float = 1.0) -> None:
        self.facts[str(fact)] = clamp_unit(degree)


    def clear(self, fact: str) -> None:
        self.facts.pop(fact, None)


    def truth(self, fact: str) -> float:
        return self.facts.get(fact, 0.0)


    def satisfiability(self, condition) -> float:
        """Fuzzy AND over condition.requires; 1.0 when nothing is required, 0.0 for unknown facts."""
        self.evaluations += 1
        required = getattr(condition, "requires", ()) or ()
        if not required:
            return 1.0
        score = min(self.truth(f) for f in required)
        if score <= 0.0:
            logging.debug("context %r unsatisfied (requires=%r)", getattr(condition, "terms", condition), required)
        return score


    __call__ = satisfiability


    def to_dict(self) -> dict:
        return dict(self.facts)


    @classmethod
    def from_dict(cls, d: dict) -> "FactTable":
        return cls(d or {})
