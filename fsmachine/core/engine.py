# fsmachine/core/engine.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
The transition function.

``step`` is pure with respect to the machine and the given state: it returns
the next state and, when an external transition happened, the list of effects
that should now be running. ``None`` as effects means the running effects must
be left alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple, Union

from fsmachine.core.builder import ImmediateSpec, TransitionSpec
from fsmachine.core.events import Event, to_event
from fsmachine.core.hooks import HookSpec, NoChange
from fsmachine.core.machine import Machine, StateNode
from fsmachine.core.effects import EffectHandle, invoke_effect

logger = logging.getLogger(__name__)

Candidate = Union[TransitionSpec, ImmediateSpec]
StepResult = Tuple["RuntimeState", Optional[List[EffectHandle]]]


@dataclass(frozen=True)
class RuntimeState:
    """
    Externally observable snapshot of a machine. ``name`` is None only before
    the initial transition. ``final`` is True when the state has no way out.
    """

    name: Optional[str]
    context: Any
    final: bool = False


def check_guards(context: Any, event: Event, candidate: Candidate) -> bool:
    """True if every guard passes; an empty guard list always passes."""
    return all(guard(context, event) for guard in candidate.guards)


def apply_reducers(context: Any, event: Event, reducers: Iterable) -> Any:
    """Thread the context through reducers, skipping NO_CHANGE results."""
    for reduce in reducers:
        result = reduce(context, event)
        if not isinstance(result, NoChange):
            context = result
    return context


def step(machine: Machine, state: RuntimeState, event: Any) -> StepResult:
    """
    Compute the next state for an event.

    :param machine: The compiled machine.
    :param state: The current state snapshot.
    :param event: An Event, an event name, or a mapping with a "type" key.
    :return: ``(next_state, effects)``. ``effects`` is None when no external
             transition took place.
    """
    event = to_event(event)

    if state.name is None and event.type is None:
        initial = machine.initial
        if initial is None:
            return state, None
        return _apply(machine, state, event, ImmediateSpec(target=initial, hooks=HookSpec()))

    node = machine.get(state.name) if state.name is not None else None
    if node is None:
        return state, None

    for candidate in node.candidates(event.type):
        if check_guards(state.context, event, candidate):
            logger.debug("Event %r selected transition %s -> %s", event.type, state.name, candidate.target)
            return _apply(machine, state, event, candidate)

    return state, None


def _apply(machine: Machine, current: RuntimeState, event: Event, candidate: Candidate) -> StepResult:
    # Exit, transition, enter, then follow immediates until the state settles.
    external = not candidate.internal
    context = current.context
    source: Optional[StateNode] = machine.get(current.name) if current.name is not None else None

    if source is not None and external:
        for block in source.exit:
            context = apply_reducers(context, event, block.hooks.reducers)

    name = candidate.target if external else current.name
    target = machine[name]

    context = apply_reducers(context, event, candidate.reducers)

    if external:
        for block in target.enter:
            context = apply_reducers(context, event, block.hooks.reducers)

    working = RuntimeState(name=name, context=context)

    for follow_up in target.immediates:
        if check_guards(context, event, follow_up):
            logger.debug("Immediate transition %s -> %s", name, follow_up.target)
            return _apply(machine, working, event, follow_up)

    settled = RuntimeState(name=name, context=context, final=target.final)
    logger.debug("Settled in state %r", name)

    if not external:
        return settled, None
    return settled, _collect_effects(target, event)


def _collect_effects(node: StateNode, event: Event) -> List[EffectHandle]:
    effects: List[EffectHandle] = []
    for block in node.enter:
        for invoke in block.hooks.invokes:
            effects.append(EffectHandle(invoke_effect(invoke), event))
        for effect in block.hooks.effects:
            effects.append(EffectHandle(effect, event))
    return effects
