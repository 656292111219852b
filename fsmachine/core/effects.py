# fsmachine/core/effects.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Effect values produced by the transition function.

An EffectHandle pairs an effect function with the event that entered its
state. The handles only record their lifecycle; starting and disposing them
against a session is the job of ``fsmachine.runtime.effects``.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import logging
from enum import Enum, auto
from typing import Any, Callable, Optional

from fsmachine.core.events import DONE, ERROR, Event

logger = logging.getLogger(__name__)

SendFunction = Callable[[Any], None]
EffectFunction = Callable[[Any, Event, SendFunction], Optional[Callable[[], Any]]]


class EffectStatus(Enum):
    """Lifecycle of an effect handle."""

    PENDING = auto()  # computed by a transition, not started
    RUNNING = auto()  # run() has been called
    DISPOSED = auto()  # cleanup requested; sends are dropped


class EffectHandle:
    """
    One effect to run for one settle of a state. Handles are created fresh each
    time a state is entered through an external transition.
    """

    __slots__ = ("run", "event", "status", "_cleanup")

    def __init__(self, run: EffectFunction, event: Event) -> None:
        """
        :param run: Effect function called as ``run(context, event, send)``.
        :param event: The event that caused the state to be entered.
        """
        self.run = run
        self.event = event
        self.status = EffectStatus.PENDING
        self._cleanup: Optional[Callable[[], Any]] = None

    @property
    def disposed(self) -> bool:
        return self.status is EffectStatus.DISPOSED

    @property
    def has_cleanup(self) -> bool:
        return self._cleanup is not None

    def start(self, context: Any, send: SendFunction) -> Any:
        """Mark the handle running and call the effect function."""
        self.status = EffectStatus.RUNNING
        return self.run(context, self.event, send)

    def retain(self, cleanup: Callable[[], Any]) -> None:
        self._cleanup = cleanup

    def dispose(self) -> Any:
        """
        Mark the handle disposed, then call its cleanup. Sends issued from the
        cleanup itself are therefore dropped. Calling dispose again is a no-op.
        """
        if self.status is EffectStatus.DISPOSED:
            return None
        self.status = EffectStatus.DISPOSED
        if self._cleanup is None:
            return None
        logger.debug("Disposing effect %s", name_of(self.run))
        return self._cleanup()

    def __repr__(self) -> str:
        return f"EffectHandle({name_of(self.run)}, event={self.event!r}, status={self.status.name})"


def name_of(fn: Callable) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


# Strong references to scheduled tasks until they finish
_background_tasks: set = set()


def schedule(awaitable: Any) -> "asyncio.Future":
    """Run an awaitable on the running loop, keeping the task referenced."""
    task = asyncio.ensure_future(awaitable)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


def running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _as_future(value: Any):
    """Treat an invoke result like a promise: anything awaitable, or a plain value."""
    loop = running_loop()
    if isinstance(value, asyncio.Future):
        return value
    if isinstance(value, concurrent.futures.Future):
        # Deliver completions on the loop, not on the worker thread
        return asyncio.wrap_future(value, loop=loop) if loop is not None else value
    if inspect.isawaitable(value):
        if loop is not None:
            return schedule(value)
        if inspect.iscoroutine(value):
            value.close()
        future = concurrent.futures.Future()
        future.set_exception(RuntimeError("Awaitable invoke results need a running event loop"))
        return future

    future = loop.create_future() if loop is not None else concurrent.futures.Future()
    future.set_result(value)
    return future


def invoke_effect(fn: Callable[[Any, Event], Any]) -> EffectFunction:
    """
    Convert an async function into an effect that sends ``done`` and ``error``
    events.

    ``fn(context, event)`` may return a coroutine or other awaitable (scheduled
    on the running event loop), an ``asyncio``/``concurrent.futures`` future, or
    a plain value. On completion the effect sends ``Event("done", data=result)``
    or ``Event("error", error=exc)``; while a loop is running the event is
    delivered on the loop's thread. Disposing the effect does not cancel the
    work; a result that arrives after disposal is dropped.
    """

    def run(context: Any, event: Event, send: SendFunction) -> Callable[[], None]:
        disposed = False

        def settle(future) -> None:
            if disposed:
                logger.debug("Dropping result of %s: effect was disposed", name_of(fn))
                return
            if future.cancelled():
                logger.debug("Invocation of %s was cancelled", name_of(fn))
                return
            error = future.exception()
            if error is not None:
                send(Event(ERROR, error=error))
            else:
                send(Event(DONE, data=future.result()))

        _as_future(fn(context, event)).add_done_callback(settle)

        def dispose() -> None:
            nonlocal disposed
            disposed = True

        return dispose

    run.__qualname__ = f"invoke({name_of(fn)})"
    return run
