# fsmachine/core/hooks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Hook registry: the recognized hook kinds, which kinds each builder call
accepts, and the lowering of ``assign``/``action`` into reducers.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Dict, NamedTuple, Tuple

from fsmachine.core.errors import InvalidArgument

logger = logging.getLogger(__name__)


class HookKind(Enum):
    """
    Recognized hook kinds. Declaration order is the fixed lowering order.
    """

    GUARD = "guard"
    REDUCE = "reduce"
    ASSIGN = "assign"
    ACTION = "action"
    INVOKE = "invoke"
    EFFECT = "effect"


TRANSITION_HOOKS = (HookKind.GUARD, HookKind.REDUCE, HookKind.ASSIGN, HookKind.ACTION)
ENTER_HOOKS = (HookKind.REDUCE, HookKind.ASSIGN, HookKind.ACTION, HookKind.INVOKE, HookKind.EFFECT)
EXIT_HOOKS = (HookKind.REDUCE, HookKind.ASSIGN, HookKind.ACTION)


class NoChange:
    """
    Result of a reducer that ran for its side effect only. The context is left
    as it was.
    """

    _instance = None

    def __new__(cls) -> "NoChange":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_CHANGE"


NO_CHANGE = NoChange()


class HookSpec(NamedTuple):
    """Hooks of one builder call, normalized into ordered lists."""

    guards: Tuple[Callable[..., bool], ...] = ()
    reducers: Tuple[Callable[..., Any], ...] = ()
    effects: Tuple[Callable[..., Any], ...] = ()
    invokes: Tuple[Callable[..., Any], ...] = ()


def merge_context(context: Any, partial: Mapping) -> Any:
    """
    Return a new context with ``partial`` merged over ``context``. Dataclass
    instances are copied with ``dataclasses.replace``; anything else is treated
    as a mapping.
    """
    if dataclasses.is_dataclass(context) and not isinstance(context, type):
        return dataclasses.replace(context, **partial)
    return {**(context or {}), **partial}


def assign_to_reduce(assign: Any) -> Callable[[Any, Any], Any]:
    """
    Lower an ``assign`` hook into a reducer. ``assign`` may be:

    - ``True``: merge the whole event payload into the context
    - a callable ``(context, payload) -> partial``: merge its result
    - a mapping: merge the constant value
    """
    if assign is True:

        def reduce(context, event):
            return merge_context(context, event.payload)

    elif callable(assign):

        def reduce(context, event):
            return merge_context(context, assign(context, dict(event.payload)))

    elif isinstance(assign, Mapping):
        constant = dict(assign)

        def reduce(context, event):
            return merge_context(context, constant)

    else:
        raise InvalidArgument(f"assign must be True, a mapping or a callable, got {assign!r}")

    return reduce


def action_to_reduce(action: Callable[[Any, Any], Any]) -> Callable[[Any, Any], NoChange]:
    """Lower an ``action`` hook into a reducer that never changes the context."""
    _require_callable(HookKind.ACTION, action)

    def reduce(context, event):
        action(context, event)
        return NO_CHANGE

    return reduce


def _require_callable(kind: HookKind, value: Any) -> Any:
    if not callable(value):
        raise InvalidArgument(f"{kind.value} hooks must be callable, got {value!r}")
    return value


def _identity(kind: HookKind) -> Callable[[Any], Any]:
    return lambda value: _require_callable(kind, value)


# kind -> (normalized slot, transform)
_LOWERING: Dict[HookKind, Tuple[str, Callable[[Any], Any]]] = {
    HookKind.GUARD: ("guards", _identity(HookKind.GUARD)),
    HookKind.REDUCE: ("reducers", _identity(HookKind.REDUCE)),
    HookKind.ASSIGN: ("reducers", assign_to_reduce),
    HookKind.ACTION: ("reducers", action_to_reduce),
    HookKind.INVOKE: ("invokes", _identity(HookKind.INVOKE)),
    HookKind.EFFECT: ("effects", _identity(HookKind.EFFECT)),
}


def _to_list(value: Any) -> list:
    # None and False both mean "no hook"
    if value is None or value is False:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def lower_hooks(options: Mapping, allowed: Tuple[HookKind, ...]) -> HookSpec:
    """
    Normalize a hook option mapping into a HookSpec.

    Each option may be a single value or a list. Kinds are processed in the
    registry's order, so reducers are always ``reduce`` entries, then lowered
    ``assign`` entries, then lowered ``action`` entries. Known kinds that do
    not apply at this call site (a guard on enter, say) are ignored.

    :param options: Mapping of hook name to value(s), e.g. ``{"guard": fn}``.
    :param allowed: Hook kinds accepted at this call site.
    :raises InvalidArgument: If a hook name is unknown or a value has the wrong
                             shape.
    """
    known = {kind.value for kind in HookKind}
    unknown = [name for name in options if name not in known]
    if unknown:
        raise InvalidArgument(f"Unknown hook(s): {', '.join(sorted(unknown))}")

    ignored = [name for name in options if HookKind(name) not in allowed]
    if ignored:
        logger.debug("Ignoring hook(s) not applicable here: %s", ", ".join(sorted(ignored)))

    merged: Dict[str, list] = {slot: [] for slot in HookSpec._fields}
    for kind in HookKind:
        if kind not in allowed:
            continue
        slot, transform = _LOWERING[kind]
        merged[slot].extend(transform(value) for value in _to_list(options.get(kind.value)))

    return HookSpec(**{slot: tuple(values) for slot, values in merged.items()})
