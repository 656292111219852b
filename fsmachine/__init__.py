"""fsmachine: flat finite state machines with managed side effects

This package compiles declarative machine descriptions into immutable machine
graphs and runs them, starting and disposing side effects as states are
entered and left.

Responsibilities:
    - Machine description and compilation
    - Guarded event dispatch with internal and immediate transitions
    - Context reduction through reduce, assign and action hooks
    - Effect and async invoke lifecycle management

Interactions:
    - Client code through the public API re-exported here
    - Host runtimes (UI components, services) through Session and MachineHost
    - asyncio for invoked coroutines
    - Logging system for diagnostics

Cross-cutting Concerns:
    Thread Safety:
        - Machines are immutable and shareable
        - Sessions and hosts serialize send/stop per instance

    Error Handling:
        - Malformed descriptions fail at compile time
        - Event dispatch never raises for unmatched events
        - Exceptions from user hooks propagate unchanged

    Logging:
        - Standard library logging, one logger per module
        - Diagnostics for leaking effects at WARNING level
"""

import logging

from fsmachine.config import HostOptions
from fsmachine.core.builder import MachineBuilder, enter, exit, immediate, internal, state, transition
from fsmachine.core.effects import EffectHandle, EffectStatus, invoke_effect
from fsmachine.core.engine import RuntimeState, step
from fsmachine.core.errors import Diagnostic, InvalidArgument, InvalidTransitionTarget, MachineError
from fsmachine.core.events import DONE, ERROR, Event, to_event
from fsmachine.core.hooks import NO_CHANGE, HookKind, NoChange
from fsmachine.core.machine import Machine, StateNode, compile_machine
from fsmachine.runtime.effects import start_effects, stop_effects
from fsmachine.runtime.host import MachineHost
from fsmachine.runtime.session import Session, create_session

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Description
    "MachineBuilder",
    "state",
    "transition",
    "internal",
    "immediate",
    "enter",
    "exit",
    "HookKind",
    "NoChange",
    "NO_CHANGE",
    # Compilation and transition
    "Machine",
    "StateNode",
    "compile_machine",
    "RuntimeState",
    "step",
    # Events
    "Event",
    "to_event",
    "DONE",
    "ERROR",
    # Effects and sessions
    "EffectHandle",
    "EffectStatus",
    "invoke_effect",
    "start_effects",
    "stop_effects",
    "Session",
    "create_session",
    "MachineHost",
    "HostOptions",
    # Errors
    "MachineError",
    "InvalidArgument",
    "InvalidTransitionTarget",
    "Diagnostic",
]
