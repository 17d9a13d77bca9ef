# -*- coding: utf-8 -*-
"""
PSI Selector: one selection pass from candidates to a single winning rule.

Selection loop
--------------
-ActionSelector is a single-pass orchestrator, much like an action center step:
   gather candidates --> weigh them (fresh ContextCache per pass) --> pick --> record outcome
-two entry points:
   select_from_trigger(trigger) : input-driven; exact + wildcard + indexed gathering
   select_from_focus()          : attention-driven; focus subset (or the whole pool)
-both return the winning Rule or None. None means "nothing applicable right now" and callers
   must not treat it as an error

Picking (select_weighted)
-------------------------
-no positive-weight action              --> None, the random source is not touched
-exactly one positive-weight action     --> its first rule, the random source is not touched
-otherwise a roulette-wheel draw:
     total  = sum of mean action weights
     cutoff = total * U,   U uniform in [0, 1)
     walk actions in insertion order accumulating weight; first with running sum >= cutoff wins
   e.g., weights A=1.0, B=0.5: U=0.5 -> cutoff 0.75 -> A ;  U=0.9 -> cutoff 1.35 -> B

Importance asymmetry
--------------------
-triggered mode honours SelectorConfig.importance_enabled; when it is off the topic boost
   (1.0 active topic / 0.5 otherwise) replaces importance
-focus mode always uses the real importance score (focus ticks come from the attention
   subsystem); see tests/test_select_engine.py

Outcome / rejoinder state
-------------------------
-RejoinderState is a one-slot record of the alias of the last winning rule, read by follow-up
   dialogue logic. It is injected into the selector rather than kept as a module global.
-a winner without an alias leaves the slot as it was; nothing here ever clears it
"""

# --- Imports -------------------------------------------------------------
# Standard Library Imports
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from functools import partial
from typing import Any, Callable, Dict, List, Optional
import logging
import random

# PyPI and Third-Party Imports
# --none at this time at program startup--

# PSI Module Imports
from psi_rules import Rule
from psi_context import ContextCache
from psi_gather import STRATEGIES, RuleSource, gather_focus, gather_triggered
from psi_weights import AggregateTable, aggregate_actions, importance_term

# --- Public API index and version-------------------------------------------------------------
__version__ = "0.1.0"
__all__ = [
    "SelectorConfig",
    "RejoinderState",
    "record_outcome",
    "select_weighted",
    "SelectionStats",
    "PassTrace",
    "ActionSelector",
    "__version__",
]


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

@dataclass
class SelectorConfig:
    """Runtime knobs for the selector (mutable, like the runner context).

    importance_enabled : bool
        False when no attention subsystem is running; triggered mode then uses the topic boost.
    active_topic : str | None
        Topic that earns the 1.0 boost when importance is disabled.
    use_focus_filter : bool
        Focus mode draws from the focus subset (True) or from the whole pool (False).
    strategies : tuple[str, ...]
        Which triggered-mode gathering strategies run; any subset of ("exact", "wildcard", "indexed").
    seed : int | None
        Seed for a private random.Random; None uses the process-wide random module.
    """
    importance_enabled: bool = True
    active_topic: Optional[str] = None
    use_focus_filter: bool = True
    strategies: tuple = STRATEGIES
    seed: Optional[int] = None


    def validate(self) -> "SelectorConfig":
        self.strategies = tuple(self.strategies)
        unknown = [s for s in self.strategies if s not in STRATEGIES]
        if unknown:
            raise ValueError(f"unknown strategies {unknown!r}; expected a subset of {STRATEGIES!r}")
        if self.seed is not None and not isinstance(self.seed, int):
            raise ValueError(f"seed must be an int or None, got {self.seed!r}")
        return self


    def to_dict(self) -> dict:
        d = asdict(self)
        d["strategies"] = list(self.strategies)
        return d


    @classmethod
    def from_dict(cls, d: dict) -> "SelectorConfig":
        d = dict(d or {})
        known = {k: d[k] for k in ("importance_enabled", "active_topic", "use_focus_filter", "seed") if k in d}
        if "strategies" in d:
            known["strategies"] = tuple(d["strategies"])
        return cls(**known).validate()


# -----------------------------------------------------------------------------
# Outcome recorder
# -----------------------------------------------------------------------------

class RejoinderState:
    """Single slot holding the alias of the most recently selected rule."""

    def __init__(self) -> None:
        self._alias: Optional[str] = None


    def write(self, alias: str) -> None:
        self._alias = alias


    def read(self) -> Optional[str]:
        return self._alias


    def __repr__(self) -> str:
        return f"RejoinderState({self._alias!r})"


def record_outcome(rule: Optional[Rule], state: RejoinderState) -> None:
    """Write the winner's alias; no winner or no alias leaves the slot untouched."""
    if rule is not None and rule.alias:
        state.write(rule.alias)


# -----------------------------------------------------------------------------
# Selection ledger (diagnostics)
# -----------------------------------------------------------------------------

class SelectionStats:
    """Win counts per action name and per alias; in-memory, not used for selection.
    e.g., stats.to_dict() -> {"passes": 12, "empty": 2, "actions": {"say_hi": 7, ...}, "aliases": {...}}
    """

    def __init__(self) -> None:
        self.passes = 0
        self.empty = 0
        self.actions: Dict[str, int] = {}
        self.aliases: Dict[str, int] = {}


    def record(self, rule: Optional[Rule]) -> None:
        self.passes += 1
        if rule is None:
            self.empty += 1
            return
        name = rule.action.name
        self.actions[name] = self.actions.get(name, 0) + 1
        if rule.alias:
            self.aliases[rule.alias] = self.aliases.get(rule.alias, 0) + 1


    def frequency(self, action_name: str) -> float:
        won = self.passes - self.empty
        return self.actions.get(action_name, 0) / won if won else 0.0


    def reset(self) -> None:
        self.passes = 0
        self.empty = 0
        self.actions.clear()
        self.aliases.clear()


    def to_dict(self) -> dict:
        return {"passes": self.passes, "empty": self.empty,
                "actions": dict(self.actions), "aliases": dict(self.aliases)}


    @classmethod
    def from_dict(cls, d: dict) -> "SelectionStats":
        """Rebuild from plain dicts (robust to missing keys)."""
        s = cls()
        d = d or {}
        s.passes = int(d.get("passes", 0))
        s.empty = int(d.get("empty", 0))
        s.actions = {str(k): int(v) for k, v in (d.get("actions") or {}).items()}
        s.aliases = {str(k): int(v) for k, v in (d.get("aliases") or {}).items()}
        return s


    def readout(self) -> str:
        """Human-readable: one line per action, most frequent first."""
        if not self.passes:
            return "(no selections yet)"
        lines = [f"passes={self.passes} empty={self.empty}"]
        for name, n in sorted(self.actions.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"{name}: n={n} freq={self.frequency(name):.3f}")
        return "\n".join(lines)


# -----------------------------------------------------------------------------
# Picking
# -----------------------------------------------------------------------------

@dataclass
class PassTrace:
    """What happened in the last pass (kept on ActionSelector.last_trace)."""
    mode: str
    trigger: Any = None
    candidates: List[Rule] = field(default_factory=list)
    table: Optional[AggregateTable] = None
    cutoff: Optional[float] = None
    winner: Optional[Rule] = None
    evaluator_calls: int = 0
    scores: Dict[int, float] = field(default_factory=dict)  # id(context) -> satisfiability (ContextCache.snapshot)


    def summary(self) -> dict:
        return {
            "mode": self.mode,
            "trigger": self.trigger if isinstance(self.trigger, (str, type(None))) else list(self.trigger),
            "candidates": len(self.candidates),
            "satisfiability": [
                {"rule": r.alias or r.action.name, "score": self.scores.get(id(r.context))}
                for r in self.candidates
            ],
            "weights": self.table.summary() if self.table is not None else None,
            "cutoff": self.cutoff,
            "winner": (self.winner.alias or self.winner.action.name) if self.winner else None,
            "evaluator_calls": self.evaluator_calls,
        }


def select_weighted(
    table: AggregateTable,
    uniform: Callable[[], float],
    trace: Optional[PassTrace] = None,
) -> Optional[Rule]:
    """Roulette-wheel pick over the positive-weight actions (see module docstring)."""
    live = [agg for agg in table if agg.weight > 0.0]
    if not live:
        return None
    if len(live) == 1:
        return live[0].first_rule

    total = sum(agg.weight for agg in live)
    cutoff = total * uniform()
    if trace is not None:
        trace.cutoff = cutoff
    acc = 0.0
    for agg in live:
        acc += agg.weight
        if acc >= cutoff:
            return agg.first_rule
    logging.debug("select: no action reached cutoff %.6f (total=%.6f)", cutoff, total)
    return None


# -----------------------------------------------------------------------------
# Engine
# -----------------------------------------------------------------------------

class ActionSelector:
    """Runs selection passes against one rule source.

    Parameters
    ----------
    source    : RuleSource (e.g., psi_rules.RuleStore)
    evaluator : callable(condition) -> float in [0, 1] (e.g., psi_context.FactTable)
    config    : SelectorConfig; defaults used when None
    rejoinder : RejoinderState to write winners' aliases into; a private one when None
    uniform   : callable() -> float in [0, 1); defaults to random.Random(config.seed).random
                when a seed is configured, else the process-wide random.random
    importance_of : callable(rule) -> float; defaults to rule.importance

    Not thread-safe as a whole (stats, last_trace); use one selector per concurrent caller.
    """

    def __init__(
        self,
        source: RuleSource,
        evaluator: Callable[[object], float],
        *,
        config: Optional[SelectorConfig] = None,
        rejoinder: Optional[RejoinderState] = None,
        uniform: Optional[Callable[[], float]] = None,
        importance_of: Optional[Callable[[Rule], float]] = None,
    ) -> None:
        self.source = source
        self.evaluator = evaluator
        self.config = (config or SelectorConfig()).validate()
        self.rejoinder = rejoinder if rejoinder is not None else RejoinderState()
        if uniform is None:
            uniform = random.Random(self.config.seed).random if self.config.seed is not None else random.random
        self.uniform = uniform
        self.importance_of = importance_of or (lambda r: r.importance)
        self.stats = SelectionStats()
        self.last_trace: Optional[PassTrace] = None


    def select_from_trigger(self, trigger) -> Optional[Rule]:
        """Input-driven pass; honours importance_enabled / active_topic."""
        trace = PassTrace(mode="trigger", trigger=trigger)
        candidates = gather_triggered(self.source, trigger, self.config.strategies)
        imp = partial(
            importance_term,
            importance_enabled=self.config.importance_enabled,
            active_topic=self.config.active_topic,
            importance_of=self.importance_of,
        )
        return self._run_pass(trace, candidates, imp)


    def select_from_focus(self) -> Optional[Rule]:
        """Attention-driven pass; always uses the real importance score."""
        trace = PassTrace(mode="focus")
        candidates = gather_focus(self.source, use_focus_filter=self.config.use_focus_filter)
        imp = partial(importance_term, importance_enabled=True, importance_of=self.importance_of)
        return self._run_pass(trace, candidates, imp)


    def _run_pass(self, trace: PassTrace, candidates: List[Rule], imp: Callable[[Rule], float]) -> Optional[Rule]:
        trace.candidates = candidates
        winner = None
        if candidates:
            cache = ContextCache(self.evaluator)
            trace.table = aggregate_actions(candidates, cache, imp)
            trace.evaluator_calls = cache.calls
            trace.scores = cache.snapshot()
            winner = select_weighted(trace.table, self.uniform, trace)
        trace.winner = winner
        self.last_trace = trace

        record_outcome(winner, self.rejoinder)
        self.stats.record(winner)
        logging.debug(
            "select[%s]: candidates=%d actions=%d cutoff=%s winner=%r",
            trace.mode, len(candidates), len(trace.table) if trace.table is not None else 0,
            trace.cutoff, winner,
        )
        return winner
