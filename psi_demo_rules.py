# -*- coding: utf-8 -*-
"""
Small helper module for building a deterministic demo rule pool.

These helpers are intended for:
- Unit tests (pytest) exercising gathering, weighting and selection end to end.
- The psi_run CLI when no --rules file is given.
- Manual experiments in a REPL.

The pool is deliberately tiny so the whole layout fits on one screen.
"""

from __future__ import annotations

from typing import Dict, Tuple
from psi_rules import Action, RuleStore, StructuredCondition, WildcardCondition
from psi_context import FactTable


__version__ = "0.1.0"
__all__ = ["build_demo_pool", "__version__"]


def build_demo_pool() -> Tuple[RuleStore, FactTable, Dict[str, object]]:
    """
    Build a small dialogue / face-tracking rule pool.

    Layout
    ------
      Conditions
      ----------
      - hello       : ("hello",)             requires face:visible
      - hello_name  : ("hello", "$name")      requires face:visible
      - bye         : ("bye",)
      - face_new    : ("face", "new")         requires face:visible
      - any_one     : wildcard ("$x",)        requires conversation:idle
      - any_two     : wildcard ("$x", "$y")

      Rules (alias / action / strength / importance / topic)
      ------------------------------------------------------
      - greet-hello : hello      -> say_hi       0.9 / 0.6 / greeting
      - (no alias)  : hello      -> wave         0.8 / 0.6 / greeting   (shares the 'hello' context)
      - greet-name  : hello_name -> say_hi_name  0.9 / 0.6 / greeting
      - farewell    : bye        -> say_bye      1.0 / 0.5 / farewell
      - track-face  : face_new   -> look_at_face 0.7 / 0.8 / tracking   (focus)
      - small-talk  : any_one    -> small_talk   0.3 / 0.2 / chatter    (focus)
      - clarify     : any_two    -> ask_clarify  0.2 / 0.1 / chatter

      Facts
      -----
      - face:visible 1.0, conversation:idle 0.4

    Returns
    -------
    store : RuleStore
    facts : FactTable
    ids   : dict
        name -> object for every condition, action and aliased rule above, so tests can
        refer to them without searching.
    """
    store = RuleStore()
    facts = FactTable({"face:visible": 1.0, "conversation:idle": 0.4})

    hello = StructuredCondition(("hello",), requires=("face:visible",))
    hello_name = StructuredCondition(("hello", "$name"), requires=("face:visible",))
    bye = StructuredCondition(("bye",))
    face_new = StructuredCondition(("face", "new"), requires=("face:visible",))
    any_one = WildcardCondition(("$x",), requires=("conversation:idle",))
    any_two = WildcardCondition(("$x", "$y"))

    say_hi = Action("say_hi", {"say": "Hi there!"})
    wave = Action("wave", {"gesture": "wave"})
    say_hi_name = Action("say_hi_name", {"say": "Hi {name}!"})
    say_bye = Action("say_bye", {"say": "Goodbye."})
    look_at_face = Action("look_at_face", {"gaze": "face"})
    small_talk = Action("small_talk", {"say": "Nice weather today."})
    ask_clarify = Action("ask_clarify", {"say": "Could you say that again?"})

    greet_hello = store.add_rule(hello, say_hi, goal="sociality", strength=0.9, importance=0.6,
                                 alias="greet-hello", topic="greeting")
    store.add_rule(hello, wave, goal="sociality", strength=0.8, importance=0.6, topic="greeting")
    greet_name = store.add_rule(hello_name, say_hi_name, goal="sociality", strength=0.9, importance=0.6,
                                alias="greet-name", topic="greeting")
    farewell = store.add_rule(bye, say_bye, goal="sociality", strength=1.0, importance=0.5,
                              alias="farewell", topic="farewell")
    track = store.add_rule(face_new, look_at_face, goal="attention", strength=0.7, importance=0.8,
                           alias="track-face", topic="tracking")
    chat = store.add_rule(any_one, small_talk, goal="sociality", strength=0.3, importance=0.2,
                          alias="small-talk", topic="chatter")
    clarify = store.add_rule(any_two, ask_clarify, goal="understanding", strength=0.2, importance=0.1,
                             alias="clarify", topic="chatter")

    store.set_focus([track, chat])

    ids: Dict[str, object] = {
        "hello": hello, "hello_name": hello_name, "bye": bye, "face_new": face_new,
        "any_one": any_one, "any_two": any_two,
        "say_hi": say_hi, "wave": wave, "say_hi_name": say_hi_name, "say_bye": say_bye,
        "look_at_face": look_at_face, "small_talk": small_talk, "ask_clarify": ask_clarify,
        "greet-hello": greet_hello, "greet-name": greet_name, "farewell": farewell,
        "track-face": track, "small-talk": chat, "clarify": clarify,
    }
    return store, facts, ids
