# fsmachine/runtime/host.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Binding between a machine and a host that renders it, such as a UI component.

Unlike a Session, a host does not start effects while handling ``send``. The
host calls ``commit()`` once it has applied the new state (after a render, in a
UI) and the effects computed by the last settle are started then, exactly
once. ``teardown()`` disposes whatever is running when the host goes away.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, List, Optional, Union

from fsmachine.config import HostOptions
from fsmachine.core.engine import RuntimeState, step
from fsmachine.core.events import INITIAL_EVENT, Event
from fsmachine.core.machine import Description, Machine, compile_machine
from fsmachine.runtime.effects import EffectHandle, start_effects, stop_effects

logger = logging.getLogger(__name__)

_MISSING = object()


class MachineHost:
    """
    Holds a machine's state on behalf of a host and reconciles its effects on
    ``commit()``.
    """

    def __init__(
        self,
        machine: Union[Machine, Description],
        context: Any = None,
        options: Union[HostOptions, Mapping, None] = None,
    ) -> None:
        """
        :param machine: A compiled Machine or a description to compile.
        :param context: Initial context; also the first recorded inputs when it
                        is a mapping.
        :param options: HostOptions or a mapping accepted by
                        HostOptions.from_mapping().
        """
        if not isinstance(machine, Machine):
            machine = compile_machine(machine)
        if not isinstance(options, HostOptions):
            options = HostOptions.from_mapping(options)

        self.machine = machine
        self.options = options
        self._lock = threading.RLock()
        self._listeners: List[Callable[[RuntimeState], Any]] = []
        self._running_effects: List[EffectHandle] = []
        self._committed: Optional[List[EffectHandle]] = None
        self._inputs: Any = dict(context) if isinstance(context, Mapping) else _MISSING
        self._active = True

        initial = RuntimeState(name=None, context={} if context is None else context)
        self._state, effects = step(machine, initial, INITIAL_EVENT)
        self._effects: List[EffectHandle] = effects or []

    @property
    def state(self) -> RuntimeState:
        return self._state

    @property
    def running_effects(self) -> List[EffectHandle]:
        return list(self._running_effects)

    @property
    def active(self) -> bool:
        return self._active

    def send(self, event: Any) -> None:
        """
        Compute the next state. Effects of a new settle wait for ``commit()``.
        """
        with self._lock:
            if not self._active:
                return
            state, effects = step(self.machine, self._state, event)
            self._state = state
            if effects is not None:
                self._effects = effects

            for listener in list(self._listeners):
                listener(state)

    def subscribe(self, listener: Callable[[RuntimeState], Any]) -> Callable[[], None]:
        """Call ``listener(state)`` after every ``send``; returns an unsubscribe."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def commit(self) -> bool:
        """
        Start the effects of the latest settle if they have not been started.

        :return: True if effects were reconciled, False if nothing changed.
        """
        with self._lock:
            if not self._active or self._effects is self._committed:
                return False
            effects = self._committed = self._effects
            self._running_effects = stop_effects(self._running_effects)
            started = start_effects(effects, self._state, self.send)
            if effects is self._effects and self._active:
                self._running_effects = started
            else:
                # A send during start settled again; the next commit picks it up.
                stop_effects(started)
            return True

    def update_inputs(self, inputs: Mapping) -> bool:
        """
        Record externally owned inputs and send the configured assign event
        when a watched key changed since the previous call.

        :return: True if an assign event was sent.
        """
        with self._lock:
            previous, self._inputs = self._inputs, dict(inputs)
            event_type = self.options.assign_event
            if previous is _MISSING or not event_type or not self._active:
                return False
            if not self._changed(previous, self._inputs):
                return False
            payload = {key: value for key, value in self._inputs.items() if key != "type"}

        logger.debug("Inputs changed, sending %r", event_type)
        self.send(Event(event_type, **payload))
        return True

    def _changed(self, previous: Mapping, current: Mapping) -> bool:
        keys = self.options.deps
        if keys is None:
            keys = set(previous) | set(current)
        return any(previous.get(key, _MISSING) != current.get(key, _MISSING) for key in keys)

    def teardown(self) -> None:
        """Dispose running effects and make the host inert. Idempotent."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            self._listeners = []
            self._running_effects = stop_effects(self._running_effects)
