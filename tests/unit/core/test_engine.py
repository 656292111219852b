# tests/unit/core/test_engine.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from unittest.mock import MagicMock

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fsmachine.core.builder import enter, exit, immediate, internal, state, transition
from fsmachine.core.engine import RuntimeState, apply_reducers, check_guards, step
from fsmachine.core.events import INITIAL_EVENT, Event
from fsmachine.core.hooks import NO_CHANGE
from fsmachine.core.machine import compile_machine
from fsmachine.core.effects import EffectHandle


def start(machine, context=None):
    settled, _ = step(machine, RuntimeState(name=None, context={} if context is None else context), INITIAL_EVENT)
    return settled


def test_initial_transition_enters_first_state():
    machine = compile_machine([state("a", transition("go", "b")), state("b")])
    settled, effects = step(machine, RuntimeState(name=None, context={"x": 1}), INITIAL_EVENT)

    assert settled == RuntimeState(name="a", context={"x": 1}, final=False)
    assert effects == []


def test_initial_transition_runs_enter_hooks_and_collects_effects():
    effect = MagicMock(return_value=None)
    machine = compile_machine([state("a", enter(assign={"entered": True}, effect=effect))])
    settled, effects = step(machine, RuntimeState(name=None, context={}), INITIAL_EVENT)

    assert settled.context == {"entered": True}
    assert settled.final is True
    assert [e.run for e in effects] == [effect]
    assert effects[0].event == INITIAL_EVENT
    effect.assert_not_called()


def test_empty_machine_initial_step_is_a_no_op():
    machine = compile_machine()
    current = RuntimeState(name=None, context={})
    assert step(machine, current, INITIAL_EVENT) == (current, None)


def test_transition_to_final_state():
    machine = compile_machine([state("a", transition("go", "b")), state("b")])
    settled, effects = step(machine, start(machine), "go")

    assert settled.name == "b"
    assert settled.final is True
    assert effects == []


def test_transition_out_of_a_state_is_not_final():
    machine = compile_machine([state("a", transition("go", "b")), state("b", transition("back", "a"))])
    settled, _ = step(machine, start(machine), "go")
    assert settled.final is False


def test_event_forms_are_equivalent():
    machine = compile_machine([state("a", transition("go", "b", assign=True)), state("b")])
    current = start(machine)

    by_name, _ = step(machine, current, "go")
    by_event, _ = step(machine, current, Event("go"))
    by_mapping, _ = step(machine, current, {"type": "go"})
    assert by_name == by_event == by_mapping


def test_event_payload_is_assigned():
    machine = compile_machine([state("a", transition("go", "b", assign=True)), state("b")])
    settled, _ = step(machine, start(machine, {"x": 0}), {"type": "go", "x": 1})
    assert settled.context == {"x": 1}


@pytest.mark.parametrize("event", ["unknown", Event("unknown", data=1)])
def test_unmatched_event_returns_identical_state(event):
    machine = compile_machine([state("a", transition("go", "b")), state("b")])
    current = start(machine)

    settled, effects = step(machine, current, event)
    assert settled is current
    assert effects is None


def test_unknown_current_state_returns_identical_state():
    machine = compile_machine([state("a", transition("go", "b")), state("b")])
    current = RuntimeState(name="elsewhere", context={})
    settled, effects = step(machine, current, "go")
    assert settled is current
    assert effects is None


def test_first_passing_guard_wins_and_short_circuits():
    calls = []

    def guard(name, result):
        def check(context, event):
            calls.append(name)
            return result

        return check

    machine = compile_machine(
        [
            state(
                "a",
                transition("go", "b", guard=guard("first", False)),
                transition("go", "c", guard=[guard("second", True), guard("second-extra", True)]),
                transition("go", "d", guard=guard("third", True)),
            ),
            state("b"),
            state("c"),
            state("d"),
        ]
    )
    settled, _ = step(machine, start(machine), "go")

    assert settled.name == "c"
    assert calls == ["first", "second", "second-extra"]


def test_all_guards_failing_leaves_state_unchanged(failing_guard):
    machine = compile_machine([state("a", transition("go", "b", guard=failing_guard)), state("b")])
    current = start(machine)
    settled, effects = step(machine, current, "go")

    assert settled is current
    assert effects is None
    failing_guard.assert_called_once_with({}, Event("go"))


def test_guards_see_context_and_event():
    machine = compile_machine(
        [
            state("a", transition("go", "b", guard=lambda c, e: c["armed"] and e.data == 42)),
            state("b"),
        ]
    )
    assert step(machine, start(machine, {"armed": True}), Event("go", data=1))[0].name == "a"
    assert step(machine, start(machine, {"armed": True}), Event("go", data=42))[0].name == "b"


def test_exit_runs_before_and_enter_after_the_transition():
    machine = compile_machine(
        [
            state("a", transition("go", "b", assign=lambda c, e: {"x": c["x"] + 1}), exit(assign={"x": 0})),
            state("b", enter(assign=lambda c, e: {"name": f"b-{c['x']}"})),
        ]
    )
    settled, _ = step(machine, start(machine, {"x": 5}), "go")

    assert settled.context == {"x": 1, "name": "b-1"}


def test_self_transition_runs_exit_and_enter():
    log = []
    machine = compile_machine(
        [
            state(
                "a",
                transition("again", "a"),
                enter(action=lambda c, e: log.append("enter")),
                exit(action=lambda c, e: log.append("exit")),
            )
        ]
    )
    current = start(machine)
    log.clear()

    _, effects = step(machine, current, "again")
    assert log == ["exit", "enter"]
    assert effects == []


def test_internal_transition_skips_exit_and_enter():
    enter_action = MagicMock()
    exit_action = MagicMock()
    machine = compile_machine(
        [
            state(
                "a",
                internal("tick", assign=lambda c, e: {"ticks": c["ticks"] + 1}),
                enter(action=enter_action),
                exit(action=exit_action),
            )
        ]
    )
    current = start(machine, {"ticks": 0})
    enter_action.reset_mock()

    settled, effects = step(machine, current, "tick")

    assert settled.name == "a"
    assert settled.context == {"ticks": 1}
    assert effects is None
    enter_action.assert_not_called()
    exit_action.assert_not_called()


def test_internal_transition_re_evaluates_immediates():
    machine = compile_machine(
        [
            state(
                "counting",
                internal("tick", assign=lambda c, e: {"n": c["n"] + 1}),
                immediate("done", guard=lambda c, e: c["n"] >= 2),
            ),
            state("done", enter(effect=lambda c, e, s: None)),
        ]
    )
    current = start(machine, {"n": 0})

    current, effects = step(machine, current, "tick")
    assert (current.name, effects) == ("counting", None)

    current, effects = step(machine, current, "tick")
    assert current.name == "done"
    assert current.final is True
    assert len(effects) == 1


def test_immediate_chain_collects_effects_of_settled_state_only():
    effect_a = MagicMock(name="a")
    effect_b = MagicMock(name="b")
    effect_c = MagicMock(name="c")
    machine = compile_machine(
        [
            state("start", transition("go", "a")),
            state("a", enter(effect=effect_a), exit(assign={"left_a": True}), immediate("b")),
            state("b", enter(effect=effect_b, assign={"entered_b": True}), immediate("c")),
            state("c", enter(effect=effect_c, assign={"entered_c": True})),
        ]
    )
    settled, effects = step(machine, start(machine), "go")

    assert settled.name == "c"
    assert settled.context == {"left_a": True, "entered_b": True, "entered_c": True}
    assert [e.run for e in effects] == [effect_c]
    assert effects[0].event == Event("go")


def test_immediate_guards_pick_first_passing():
    machine = compile_machine(
        [
            state("start", transition("go", "router")),
            state(
                "router",
                immediate("small", guard=lambda c, e: e.n < 10),
                immediate("large"),
            ),
            state("small"),
            state("large"),
        ]
    )
    assert step(machine, start(machine), Event("go", n=3))[0].name == "small"
    assert step(machine, start(machine), Event("go", n=30))[0].name == "large"


def test_immediate_reducers_run_during_chain():
    machine = compile_machine(
        [
            state("a", immediate("b", assign={"via": "immediate"})),
            state("b"),
        ]
    )
    assert start(machine) == RuntimeState(name="b", context={"via": "immediate"}, final=True)


def test_invokes_are_collected_before_effects():
    async def load(context, event):
        return 1

    effect = MagicMock()
    machine = compile_machine([state("a", enter(effect=effect, invoke=load))])
    _, effects = step(machine, RuntimeState(name=None, context={}), INITIAL_EVENT)

    assert all(isinstance(e, EffectHandle) for e in effects)
    assert effects[0].run.__qualname__.startswith("invoke(")
    assert effects[1].run is effect


def test_effects_follow_enter_block_order():
    first, second, third = MagicMock(), MagicMock(), MagicMock()
    machine = compile_machine([state("a", enter(effect=[first, second]), enter(effect=third))])
    _, effects = step(machine, RuntimeState(name=None, context={}), INITIAL_EVENT)
    assert [e.run for e in effects] == [first, second, third]


def test_action_does_not_change_context():
    action = MagicMock(return_value={"ignored": True})
    machine = compile_machine([state("a", transition("go", "b", action=action)), state("b")])
    current = start(machine, {"kept": True})

    settled, _ = step(machine, current, "go")
    assert settled.context == {"kept": True}
    action.assert_called_once_with({"kept": True}, Event("go"))


def test_hook_exception_propagates():
    def explode(context, event):
        raise RuntimeError("boom")

    machine = compile_machine([state("a", transition("go", "b", reduce=explode)), state("b")])
    current = start(machine)
    with pytest.raises(RuntimeError, match="boom"):
        step(machine, current, "go")


def test_check_guards_with_no_guards():
    (candidate,) = compile_machine([state("a", transition("go", "a"))])["a"].candidates("go")
    assert check_guards({}, Event("go"), candidate) is True


def test_apply_reducers_skips_no_change():
    reducers = [lambda c, e: {"n": 1}, lambda c, e: NO_CHANGE, lambda c, e: {"n": c["n"] + 1}]
    assert apply_reducers({}, Event("go"), reducers) == {"n": 2}


def test_step_does_not_mutate_given_state():
    machine = compile_machine([state("a", transition("go", "b", assign=True)), state("b")])
    context = {"x": 1}
    current = start(machine, context)

    step(machine, current, Event("go", x=2))
    assert current.name == "a"
    assert context == {"x": 1}


# -----------------------------------------------------------------------------
# PROPERTY TESTS
# -----------------------------------------------------------------------------

known_events = {"go", "back"}


@pytest.mark.property
@given(event_type=st.text(min_size=1).filter(lambda text: text not in known_events))
def test_unmatched_events_never_change_state(event_type):
    machine = compile_machine([state("a", transition("go", "b")), state("b", transition("back", "a"))])
    current = start(machine)

    settled, effects = step(machine, current, event_type)
    assert settled is current
    assert effects is None


@pytest.mark.property
@given(events=st.lists(st.sampled_from(["go", "back", "noise"]), max_size=20))
def test_toggle_walk_matches_event_parity(events):
    machine = compile_machine([state("a", transition("go", "b")), state("b", transition("back", "a"))])
    current = start(machine)

    expected = "a"
    for event in events:
        current, _ = step(machine, current, event)
        if expected == "a" and event == "go":
            expected = "b"
        elif expected == "b" and event == "back":
            expected = "a"
        assert current.name == expected
