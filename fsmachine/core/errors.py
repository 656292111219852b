# fsmachine/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from enum import Enum


class MachineError(Exception):
    """
    Base exception class for errors raised by the state machine library.
    """


class InvalidArgument(MachineError, ValueError):
    """
    Raised when a builder call is malformed: a non-string event or target name,
    an unrecognized value passed to ``state()``, a non-callable hook, or a value
    that cannot be turned into an event.
    """


class InvalidTransitionTarget(MachineError):
    """
    Raised at compile time when a transition or immediate names a target state
    that is not part of the compiled machine.
    """

    def __init__(self, target: str) -> None:
        """
        :param target: Name of the missing target state.
        """
        super().__init__(f"Invalid transition target '{target}'")
        self.target = target


class Diagnostic(Enum):
    """
    Non-fatal conditions reported on the warning channel. These are logged,
    never raised.
    """

    UNGUARDED_ASYNC_EFFECT = "unguarded_async_effect"  # effect returned an awaitable
    POST_DISPOSAL_SEND = "post_disposal_send"  # send() through a disposed effect
    INVALID_CLEANUP = "invalid_cleanup"  # effect returned a non-callable value
