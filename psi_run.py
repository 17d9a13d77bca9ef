# -*- coding: utf-8 -*-
"""
PSI runner: command-line front end for the action-selection core.

Loads a rule pool (a JSON rule file, or the built-in demo pool), runs one or more selection
passes and prints the winning rule of each.

Rule file layout (same shape RuleStore.to_dict() writes, plus optional blocks):
    {
      "conditions": {"c1": {"kind": "structured", "terms": ["hello"], "requires": ["face:visible"]}, ...},
      "actions":    {"a1": {"name": "say_hi", "payload": {...}}, ...},
      "rules":      [{"context": "c1", "action": "a1", "strength": 0.9, "importance": 0.6,
                      "alias": "greet-hello", "topic": "greeting", "goal": "sociality"}, ...],
      "focus":      [0, 3],
      "facts":      {"face:visible": 1.0},
      "config":     {"importance_enabled": false, "active_topic": "greeting", ...}
    }

Examples:
    psi-run --trigger "hello there" --repeat 200 --seed 7 --stats
    psi-run --focus --explain
    psi-run --rules pool.json --no-importance --topic greeting --trigger hello
"""

# --- Imports -------------------------------------------------------------
# Standard Library Imports
from __future__ import annotations
from datetime import datetime
from typing import Optional
import argparse
import json
import logging
import os
import platform
import sys

# PyPI and Third-Party Imports
# --pyvis via RuleStore.to_pyvis_html() (lazy)--

# PSI Module Imports
from psi_rules import RuleStore
from psi_context import FactTable
from psi_select import ActionSelector, SelectorConfig
from psi_demo_rules import build_demo_pool

__version__ = "0.1.0"
__all__ = ["load_rule_file", "save_rule_file", "build_config", "main", "__version__"]


# --------------------------------------------------------------------------------------
# Rule files
# --------------------------------------------------------------------------------------

def load_rule_file(path: str) -> tuple[RuleStore, FactTable, SelectorConfig]:
    """Read a JSON rule file -> (store, facts, config). Missing blocks fall back to defaults."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a JSON object")
    store = RuleStore.from_dict(data)
    facts = FactTable.from_dict(data.get("facts") or {})
    config = SelectorConfig.from_dict(data.get("config") or {})
    return store, facts, config


def save_rule_file(path: str, store: RuleStore, facts: FactTable, config: SelectorConfig) -> str:
    """Serialize (store, facts, config) to JSON and atomically write to disk.

    Returns:
        The ISO timestamp used as 'saved_at' in the file.
    """
    ts = datetime.now().isoformat(timespec="seconds")
    data = store.to_dict()
    data.update({
        "facts": facts.to_dict(),
        "config": config.to_dict(),
        "saved_at": ts,
        "app_version": f"psi_run/{__version__}",
    })
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=str)
    os.replace(tmp, path)
    return ts


def _module_version_and_path(modname: str) -> tuple[str, str]:
    """Return (version_string, path) for a module name, safely."""
    try:
        import importlib  # pylint: disable=import-outside-toplevel
        m = importlib.import_module(modname)
    except ImportError:
        return "-- unavailable (i.e., not found)", f"{modname}.py"
    ver = getattr(m, "__version__", None)
    return (str(ver) if ver is not None else "n/a"), getattr(m, "__file__", f"{modname}.py")


def build_config(args: argparse.Namespace, base: Optional[SelectorConfig] = None) -> SelectorConfig:
    """CLI flags override whatever the rule file configured."""
    cfg = base or SelectorConfig()
    if args.no_importance:
        cfg.importance_enabled = False
    if args.topic is not None:
        cfg.active_topic = args.topic
    if args.no_focus_filter:
        cfg.use_focus_filter = False
    if args.strategies:
        cfg.strategies = tuple(s.strip() for s in args.strategies.split(",") if s.strip())
    if args.seed is not None:
        cfg.seed = args.seed
    return cfg.validate()


def _describe(rule) -> str:
    if rule is None:
        return "(no applicable action)"
    tag = f" [{rule.alias}]" if rule.alias else ""
    return f"{rule.action.name}{tag}"


# --------------------------------------------------------------------------------------
# main()
# --------------------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """
    Command-line entry point.

    Returns:
        0 on success, 2 on bad arguments or an unreadable rule file.
    """
    p = argparse.ArgumentParser(prog="psi-run")
    p.add_argument("--version", action="store_true", help="Print the runner version")
    p.add_argument("--about", action="store_true", help="Print version and component info")
    p.add_argument("--rules", help="JSON rule file (default: built-in demo pool)")
    p.add_argument("--trigger", action="append", default=[], help="Input text for a triggered pass (repeatable)")
    p.add_argument("--focus", action="store_true", help="Run a focus (attention-driven) pass")
    p.add_argument("--repeat", type=int, default=1, help="Run each pass N times")
    p.add_argument("--seed", type=int, default=None, help="Seed for the selector's random source")
    p.add_argument("--no-importance", action="store_true", help="Use the topic boost instead of importance (triggered mode)")
    p.add_argument("--topic", default=None, help="Active topic for the topic boost")
    p.add_argument("--no-focus-filter", action="store_true", help="Focus mode draws from the whole pool")
    p.add_argument("--strategies", default=None, help="Comma list from exact,wildcard,indexed")
    p.add_argument("--explain", action="store_true", help="Print the trace of the last pass")
    p.add_argument("--stats", action="store_true", help="Print the selection ledger at the end")
    p.add_argument("--pyvis", metavar="HTML", help="Export the rule pool to an interactive HTML graph")
    p.add_argument("--save", metavar="PATH", help="Write the loaded pool, facts and config to a rule file")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    try:
        args = p.parse_args(argv)
    except SystemExit as e:
        code = getattr(e, "code", 0)
        return 2 if code else 0

    # set up logging (one-time)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            format="%(asctime)s %(levelname)s %(message)s",
            handlers=[logging.FileHandler("psi_run.log", encoding="utf-8"),
                      logging.StreamHandler()] )
    logging.info("psi_run start v%s python=%s platform=%s",
                 __version__, sys.version.split()[0], platform.platform())

    if args.version:
        print(__version__)
        return 0

    if args.about:
        print("PSI Components:")
        print(f"  - psi_run.py v{__version__} ({os.path.abspath(__file__)})")
        for name in ["psi_rules", "psi_context", "psi_gather", "psi_weights", "psi_select", "psi_demo_rules"]:
            ver, path = _module_version_and_path(name)
            print(f"  - {name} v{ver} ({path})")
        return 0

    if args.repeat < 1:
        logging.error("--repeat must be >= 1, got %d", args.repeat)
        return 2

    try:
        if args.rules:
            store, facts, file_cfg = load_rule_file(args.rules)
        else:
            store, facts, _ids = build_demo_pool()
            file_cfg = SelectorConfig()
        cfg = build_config(args, file_cfg)
    except (OSError, ValueError, KeyError) as e:
        # json.JSONDecodeError is a ValueError
        logging.error("Unable to load rules: %s", e)
        return 2

    logging.info("rule pool: %d rules, %d focus, config=%s",
                 len(store), len(store.get_focus_rules()), cfg.to_dict())

    if args.save:
        ts = save_rule_file(args.save, store, facts, cfg)
        print(f"Saved rule file to {args.save} at {ts}")

    if args.pyvis:
        try:
            out = store.to_pyvis_html(path_html=args.pyvis)
        except RuntimeError as e:
            logging.error("%s", e)
            return 2
        print(f"Rule pool graph written to {out}")

    selector = ActionSelector(store, facts, config=cfg)

    for text in args.trigger:
        for _ in range(args.repeat):
            rule = selector.select_from_trigger(text)
            if args.repeat == 1:
                print(f"trigger {text!r}: {_describe(rule)}")
        if args.explain and selector.last_trace is not None:
            print(json.dumps(selector.last_trace.summary(), indent=2, default=str))

    if args.focus:
        for _ in range(args.repeat):
            rule = selector.select_from_focus()
            if args.repeat == 1:
                print(f"focus: {_describe(rule)}")
        if args.explain and selector.last_trace is not None:
            print(json.dumps(selector.last_trace.summary(), indent=2, default=str))

    if args.repeat > 1 or args.stats:
        print(selector.stats.readout())
    print(f"rejoinder: {selector.rejoinder.read()}")
    return 0


# --------------------------------------------------------------------------------------
# __main__
# --------------------------------------------------------------------------------------
if __name__ == "__main__":
    sys.exit(main())
