# fsmachine/core/validations.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING

from fsmachine.core.errors import InvalidTransitionTarget

if TYPE_CHECKING:
    from fsmachine.core.machine import Machine


class Validator:
    """
    Performs construction-time validation of a compiled machine, ensuring every
    transition resolves to a known state.
    """

    def __init__(self) -> None:
        self._rules_engine = _ValidationRulesEngine()

    def validate_machine(self, machine: "Machine") -> None:
        """
        Check the machine's transitions for consistency.

        :param machine: The compiled machine to validate.
        :raises InvalidTransitionTarget: If a target names an unknown state.
        """
        self._rules_engine.validate_machine(machine)


class _ValidationRulesEngine:
    """
    Internal engine applying the validation rules to a machine. Subclass and
    replace ``_rules`` to add checks.
    """

    def __init__(self) -> None:
        self._rules = (_DefaultValidationRules.validate_targets,)

    def validate_machine(self, machine: "Machine") -> None:
        for rule in self._rules:
            rule(machine)


class _DefaultValidationRules:
    """
    Built-in rules ensuring basic correctness of a machine out of the box.
    """

    @staticmethod
    def validate_targets(machine: "Machine") -> None:
        """
        Walk states in declaration order and fail on the first immediate or
        external transition whose target is not a compiled state.
        """
        for node in machine.values():
            for candidate in node.immediates:
                if candidate.target not in machine:
                    raise InvalidTransitionTarget(candidate.target)

            for transitions in node.transitions.values():
                for candidate in transitions:
                    if not candidate.internal and candidate.target not in machine:
                        raise InvalidTransitionTarget(candidate.target)
