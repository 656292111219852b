# fsmachine/core/builder.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Builder products for machine descriptions.

A description is either a list of ``state(...)`` values built with the plain
constructors below, or a callable that receives a :class:`MachineBuilder` and
declares its states through it::

    def traffic_light(b):
        b.state("green", b.transition("timer", "yellow"))
        b.state("yellow", b.transition("timer", "red"))
        b.state("red", b.transition("timer", "green"))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from fsmachine.core.errors import InvalidArgument
from fsmachine.core.hooks import ENTER_HOOKS, EXIT_HOOKS, TRANSITION_HOOKS, HookSpec, lower_hooks


@dataclass(frozen=True)
class TransitionSpec:
    """A named-event transition. Internal transitions have no target."""

    event: str
    target: Optional[str]
    hooks: HookSpec
    internal: bool = False

    @property
    def guards(self) -> Tuple:
        return self.hooks.guards

    @property
    def reducers(self) -> Tuple:
        return self.hooks.reducers


@dataclass(frozen=True)
class ImmediateSpec:
    """A transition taken automatically when its state becomes current."""

    target: str
    hooks: HookSpec

    internal = False

    @property
    def guards(self) -> Tuple:
        return self.hooks.guards

    @property
    def reducers(self) -> Tuple:
        return self.hooks.reducers


@dataclass(frozen=True)
class EnterSpec:
    hooks: HookSpec


@dataclass(frozen=True)
class ExitSpec:
    hooks: HookSpec


Part = Union[TransitionSpec, ImmediateSpec, EnterSpec, ExitSpec]


@dataclass(frozen=True)
class StateSpec:
    """A state declaration: its name and the parts passed to ``state()``."""

    name: str
    parts: Tuple[Part, ...]


def _require_name(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgument(message)
    return value


def state(name: str, *parts: Part) -> StateSpec:
    """
    Declare a state.

    :param name: Name of the state, unique within the machine.
    :param parts: Any number of transition(), immediate(), internal(), enter()
                  and exit() values.
    :raises InvalidArgument: If the name is not a string or a part is not a
                             builder product.
    """
    _require_name(name, "First argument of the state must be its name")
    for part in parts:
        if not isinstance(part, (TransitionSpec, ImmediateSpec, EnterSpec, ExitSpec)):
            raise InvalidArgument(
                f"State '{name}' should be passed one of enter(), exit(), transition(), immediate() or internal()"
            )
    return StateSpec(name=name, parts=tuple(parts))


def transition(event: str, target: str, **hooks: Any) -> TransitionSpec:
    """
    Declare an external transition taken when ``event`` arrives.

    :param event: Name of the triggering event.
    :param target: Name of the destination state.
    :param hooks: guard, reduce, assign and action hooks, each a value or a list.
    """
    _require_name(event, "First argument of the transition must be the name of the event")
    _require_name(target, "Second argument of the transition must be the name of the target state")
    return TransitionSpec(event=event, target=target, hooks=lower_hooks(hooks, TRANSITION_HOOKS))


def internal(event: str, **hooks: Any) -> TransitionSpec:
    """
    Declare an internal transition: the state stays current and its enter and
    exit hooks do not run.
    """
    _require_name(event, "First argument of the internal transition must be the name of the event")
    return TransitionSpec(event=event, target=None, hooks=lower_hooks(hooks, TRANSITION_HOOKS), internal=True)


def immediate(target: str, **hooks: Any) -> ImmediateSpec:
    """
    Declare an immediate transition, evaluated whenever the owning state
    becomes current.
    """
    _require_name(target, "First argument of the immediate transition must be the name of the target state")
    return ImmediateSpec(target=target, hooks=lower_hooks(hooks, TRANSITION_HOOKS))


def enter(**hooks: Any) -> EnterSpec:
    """Declare hooks run on entering a state: reduce, assign, action, invoke, effect."""
    return EnterSpec(hooks=lower_hooks(hooks, ENTER_HOOKS))


def exit(**hooks: Any) -> ExitSpec:
    """Declare hooks run on leaving a state: reduce, assign, action."""
    return ExitSpec(hooks=lower_hooks(hooks, EXIT_HOOKS))


class MachineBuilder:
    """
    Builder handed to callback-style descriptions. ``state()`` registers the
    declared state; a later declaration with the same name replaces the earlier
    one but keeps its position.
    """

    transition = staticmethod(transition)
    internal = staticmethod(internal)
    immediate = staticmethod(immediate)
    enter = staticmethod(enter)
    exit = staticmethod(exit)

    def __init__(self) -> None:
        self._states: Dict[str, StateSpec] = {}

    def state(self, name: str, *parts: Part) -> StateSpec:
        spec = state(name, *parts)
        self._states[name] = spec
        return spec

    @property
    def states(self) -> List[StateSpec]:
        """Registered states in declaration order."""
        return list(self._states.values())
