# fsmachine/config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Tuple, Union

from fsmachine.core.errors import InvalidArgument

DEFAULT_ASSIGN_EVENT = "assign"


@dataclass(frozen=True)
class HostOptions:
    """
    Options for a MachineHost.

    :param assign: Event type sent when watched inputs change; False, None or
                   "" disables the auto-assign event.
    :param deps: Input keys to compare; None compares every key.
    """

    assign: Union[str, bool, None] = DEFAULT_ASSIGN_EVENT
    deps: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        if self.assign is True:
            object.__setattr__(self, "assign", DEFAULT_ASSIGN_EVENT)
        elif self.assign not in (False, None, "") and not isinstance(self.assign, str):
            raise InvalidArgument(f"assign must be an event name or False, got {self.assign!r}")
        if self.deps is not None:
            object.__setattr__(self, "deps", tuple(self.deps))

    @property
    def assign_event(self) -> Optional[str]:
        return self.assign or None

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "HostOptions":
        """
        Build options from a plain mapping, e.g. loaded from a settings file.

        :raises InvalidArgument: If the mapping has unknown keys.
        """
        values = dict(values or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise InvalidArgument(f"Unknown host option(s): {', '.join(unknown)}")
        return cls(**values)
