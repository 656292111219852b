# fsmachine/runtime/effects.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Effect lifecycle: starting effects when a state settles and disposing them
when it is left.

The machine and the transition function are pure. After each external
transition the owner of the running effects must stop the old ones and start
the newly computed ones; ``Session`` and ``MachineHost`` do this.
"""

from __future__ import annotations

import concurrent.futures
import inspect
import logging
from typing import Any, Iterable, List, Optional

from fsmachine.core.effects import (
    EffectHandle,
    EffectStatus,
    SendFunction,
    invoke_effect,
    name_of,
    running_loop,
    schedule,
)
from fsmachine.core.errors import Diagnostic

logger = logging.getLogger(__name__)

__all__ = [
    "EffectHandle",
    "EffectStatus",
    "invoke_effect",
    "start_effects",
    "stop_effects",
    "POST_DISPOSAL_SEND_MESSAGE",
    "UNGUARDED_ASYNC_EFFECT_MESSAGE",
]

POST_DISPOSAL_SEND_MESSAGE = (
    "Can't send events in an effect after it has been cleaned up. "
    "This is a no-op, but indicates a memory leak in your application. "
    "To fix, cancel all subscriptions and asynchronous tasks in the effect's cleanup function."
)
UNGUARDED_ASYNC_EFFECT_MESSAGE = (
    "Effect function must return a cleanup function or nothing. "
    "Use invoke instead of effect for async functions, "
    "or call the async function inside the synchronous effect function."
)


def _guarded_send(effect: EffectHandle, send: SendFunction) -> SendFunction:
    """A send that turns into a no-op once ``effect`` is disposed."""

    def guarded_send(event: Any) -> None:
        if effect.status is EffectStatus.DISPOSED:
            logger.warning(POST_DISPOSAL_SEND_MESSAGE, extra={"diagnostic": Diagnostic.POST_DISPOSAL_SEND})
            return
        send(event)

    return guarded_send


def start_effects(effects: Optional[Iterable[EffectHandle]], state: Any, send: SendFunction) -> List[EffectHandle]:
    """
    Start effects against the settled state's context.

    If an effect function raises, the effects of the batch started so far are
    disposed before the exception propagates.

    :param effects: Handles computed by a transition.
    :param state: The settled RuntimeState.
    :param send: Function used by effects to send events back.
    :return: The handles that returned a cleanup function, in start order.
    """
    running: List[EffectHandle] = []

    try:
        for effect in effects or ():
            result = effect.start(state.context, _guarded_send(effect, send))

            if result is None:
                continue
            if inspect.isawaitable(result) or isinstance(result, concurrent.futures.Future):
                logger.warning(
                    UNGUARDED_ASYNC_EFFECT_MESSAGE, extra={"diagnostic": Diagnostic.UNGUARDED_ASYNC_EFFECT}
                )
                _detach(result)
            elif callable(result):
                effect.retain(result)
                running.append(effect)
            else:
                logger.warning(
                    "Effect %s returned %r; expected a cleanup function or nothing.",
                    name_of(effect.run),
                    result,
                    extra={"diagnostic": Diagnostic.INVALID_CLEANUP},
                )
    except BaseException:
        logger.debug("Effect failed to start in state %r, disposing %d", getattr(state, "name", None), len(running))
        stop_effects(running)
        raise

    if running:
        logger.debug("Started %d effect(s) in state %r", len(running), getattr(state, "name", None))
    return running


def _detach(awaitable: Any) -> None:
    # A bare coroutine only runs once scheduled.
    if not inspect.iscoroutine(awaitable):
        return
    if running_loop() is not None:
        schedule(awaitable)
    else:
        awaitable.close()


def stop_effects(running: Optional[Iterable[EffectHandle]]) -> List[EffectHandle]:
    """
    Dispose every running effect, in start order.

    :return: An empty list, to replace the caller's running list.
    """
    for effect in running or ():
        effect.dispose()
    return []
