# fsmachine/runtime/session.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Union

from fsmachine.core.engine import RuntimeState, step
from fsmachine.core.events import INITIAL_EVENT
from fsmachine.core.machine import Description, Machine, compile_machine
from fsmachine.runtime.effects import EffectHandle, start_effects, stop_effects

logger = logging.getLogger(__name__)

Listener = Callable[[RuntimeState], Any]


class Session:
    """
    A running instance of a machine. Holds the current state and the effects
    started for it, and drives the transition function on every ``send``.

    Sessions are meant to be driven from one thread at a time; ``send`` and
    ``stop`` are serialized with a re-entrant lock so that effects may send
    events synchronously while being started or cleaned up.
    """

    def __init__(self, machine: Machine, context: Any = None) -> None:
        """
        Run the initial transition and start its effects.

        :param machine: The compiled machine to run.
        :param context: Initial context; defaults to an empty dict.
        """
        self.machine = machine
        self.prev: Optional[RuntimeState] = None
        self.pending_effects: List[EffectHandle] = []
        self.running_effects: List[EffectHandle] = []
        self._listeners: List[Listener] = []
        self._running = True
        self._lock = threading.RLock()

        initial = RuntimeState(name=None, context={} if context is None else context)
        self.state, effects = step(machine, initial, INITIAL_EVENT)
        with self._lock:
            self.pending_effects = effects or []
            self._run_effects()

    @property
    def running(self) -> bool:
        """False once the session has been stopped."""
        return self._running

    def send(self, event: Any) -> None:
        """
        Send an event to the machine. No-op once the session is stopped.

        The next state is assigned only after the transition function returns,
        so an exception raised by a hook leaves the session unchanged.

        :param event: An event name, Event, or mapping with a "type" key.
        """
        with self._lock:
            if not self._running:
                return

            prev = self.state
            state, effects = step(self.machine, prev, event)
            self.prev = prev
            self.state = state

            if effects is not None:
                self.pending_effects = effects
                self._run_effects()

            for listener in list(self._listeners):
                listener(self.state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener(state)`` after every ``send``.

        :return: A function that removes the listener; safe to call repeatedly.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def stop(self) -> None:
        """Dispose running effects and make the session inert."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._listeners = []
            self.pending_effects = []
            self.running_effects = stop_effects(self.running_effects)
            logger.debug("Session stopped in state %r", self.state.name)

    def _run_effects(self) -> None:
        effects = self.pending_effects
        self.running_effects = stop_effects(self.running_effects)
        started = start_effects(effects, self.state, self.send)
        if effects is self.pending_effects and self._running:
            self.running_effects = started
        else:
            # An effect sent an event that settled somewhere else, or stopped
            # the session, while this batch was starting.
            stop_effects(started)

    def __repr__(self) -> str:
        return f"Session(state={self.state!r}, running={self._running})"


def create_session(machine: Union[Machine, Description], context: Any = None) -> Session:
    """
    Create a session for a machine, compiling it first if a description is
    given.

    :param machine: A compiled Machine or a description accepted by
                    compile_machine().
    :param context: Initial context; defaults to an empty dict.
    """
    if not isinstance(machine, Machine):
        machine = compile_machine(machine)
    return Session(machine, context)
