# fsmachine/core/machine.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from fsmachine.core.builder import (
    EnterSpec,
    ExitSpec,
    ImmediateSpec,
    MachineBuilder,
    StateSpec,
    TransitionSpec,
)
from fsmachine.core.errors import InvalidArgument
from fsmachine.core.validations import Validator

logger = logging.getLogger(__name__)

Description = Union[Callable[[MachineBuilder], object], Iterable[StateSpec], None]


@dataclass(frozen=True)
class StateNode:
    """
    A compiled state. Transitions are grouped by event name; every collection
    keeps declaration order.
    """

    name: str
    transitions: Mapping[str, Tuple[TransitionSpec, ...]]
    immediates: Tuple[ImmediateSpec, ...]
    enter: Tuple[EnterSpec, ...]
    exit: Tuple[ExitSpec, ...]

    @property
    def final(self) -> bool:
        """A state is final when nothing can leave it."""
        return not self.transitions and not self.immediates

    def candidates(self, event_type: Optional[str]) -> Tuple[TransitionSpec, ...]:
        """Transitions for an event type, in declaration order."""
        return self.transitions.get(event_type, ())


class Machine(Mapping):
    """
    An immutable, compiled machine: a read-only mapping from state name to
    StateNode in declaration order. The first declared state is the initial
    one. A Machine holds no runtime state and may be shared by any number of
    sessions.
    """

    def __init__(self, states: Iterable[StateNode] = ()) -> None:
        self._states: Mapping[str, StateNode] = MappingProxyType({node.name: node for node in states})

    @property
    def initial(self) -> Optional[str]:
        """Name of the entry state, or None for an empty machine."""
        return next(iter(self._states), None)

    @property
    def states(self) -> Mapping[str, StateNode]:
        return self._states

    def __getitem__(self, name: str) -> StateNode:
        return self._states[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        return f"Machine({list(self._states)!r})"


def _build_node(spec: StateSpec) -> StateNode:
    transitions: Dict[str, List[TransitionSpec]] = {}
    immediates: List[ImmediateSpec] = []
    enters: List[EnterSpec] = []
    exits: List[ExitSpec] = []

    for part in spec.parts:
        if isinstance(part, TransitionSpec):
            transitions.setdefault(part.event, []).append(part)
        elif isinstance(part, ImmediateSpec):
            immediates.append(part)
        elif isinstance(part, EnterSpec):
            enters.append(part)
        elif isinstance(part, ExitSpec):
            exits.append(part)
        else:
            raise InvalidArgument(
                f"State '{spec.name}' should be passed one of enter(), exit(), transition(), immediate() or internal()"
            )

    return StateNode(
        name=spec.name,
        transitions=MappingProxyType({event: tuple(items) for event, items in transitions.items()}),
        immediates=tuple(immediates),
        enter=tuple(enters),
        exit=tuple(exits),
    )


def _collect(description: Description) -> List[StateSpec]:
    if description is None:
        return []
    if callable(description):
        builder = MachineBuilder()
        description(builder)
        return builder.states

    # Same overwrite rule as the callback builder
    specs: Dict[str, StateSpec] = {}
    for spec in description:
        if not isinstance(spec, StateSpec):
            raise InvalidArgument(f"Machine descriptions must contain state() values, got {spec!r}")
        specs[spec.name] = spec
    return list(specs.values())


def compile_machine(description: Description = None, validator: Optional[Validator] = None) -> Machine:
    """
    Compile a description into an immutable Machine.

    :param description: A callable taking a MachineBuilder, an iterable of
                        state() values, or None for an empty machine.
    :param validator: Optional validator; the default checks that every
                      transition target exists.
    :raises InvalidArgument: If the description contains malformed parts.
    :raises InvalidTransitionTarget: If a target names an unknown state.
    """
    machine = Machine(_build_node(spec) for spec in _collect(description))
    (validator or Validator()).validate_machine(machine)
    logger.debug("Compiled machine with states %s", list(machine))
    return machine
