# fsmachine/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterator, Optional, Union

from fsmachine.core.errors import InvalidArgument

# Event types emitted by invoked async operations.
DONE = "done"
ERROR = "error"


class Event(Mapping):
    """
    Represents a signal sent to a machine. An event has a symbolic ``type`` and
    an arbitrary, read-only payload. It behaves as a mapping of its payload plus
    the ``type`` key, so ``event["type"]`` and ``event["data"]`` both work.
    """

    __slots__ = ("_type", "_payload")

    def __init__(self, type: Optional[str], **payload: Any) -> None:
        """
        Create an event identified by a type name.

        :param type: A string identifying this kind of event. ``None`` is reserved
                     for the initial transition.
        :param payload: Additional event data.
        """
        self._type = type
        self._payload = MappingProxyType(dict(payload))

    @property
    def type(self) -> Optional[str]:
        """The name of the event."""
        return self._type

    @property
    def payload(self) -> Mapping:
        """Event data without the ``type`` key."""
        return self._payload

    def __getitem__(self, key: str) -> Any:
        if key == "type":
            return self._type
        return self._payload[key]

    def __iter__(self) -> Iterator[str]:
        yield "type"
        yield from self._payload

    def __len__(self) -> int:
        return len(self._payload) + 1

    def __getattr__(self, key: str) -> Any:
        # Payload fields are readable as attributes: event.data, event.error
        if key.startswith("_"):
            raise AttributeError(key)
        try:
            return self._payload[key]
        except KeyError:
            raise AttributeError(key) from None

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Event):
            return self._type == other._type and self._payload == other._payload
        return Mapping.__eq__(self, other)

    __hash__ = None

    def __repr__(self) -> str:
        fields = "".join(f", {k}={v!r}" for k, v in self._payload.items())
        return f"Event({self._type!r}{fields})"


INITIAL_EVENT = Event(None)


def to_event(value: Union[str, Mapping, Event]) -> Event:
    """
    Coerce a bare event name or a mapping with a ``type`` key into an Event.

    :param value: An Event, an event type name, or a mapping with a "type" key.
    :raises InvalidArgument: If the value cannot be interpreted as an event.
    """
    if isinstance(value, Event):
        return value
    if isinstance(value, str):
        return Event(value)
    if isinstance(value, Mapping) and "type" in value:
        payload = {k: v for k, v in value.items() if k != "type"}
        if not all(isinstance(key, str) for key in payload):
            raise InvalidArgument(f"Cannot send {value!r}: event fields must be named by strings")
        return Event(value["type"], **payload)
    raise InvalidArgument(f"Cannot send {value!r}: expected an event name or an event with a 'type'")
