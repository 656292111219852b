# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import logging
from unittest.mock import MagicMock

import pytest

from fsmachine import Event, compile_machine, create_session


@pytest.fixture
def toggle_description():
    """Two states flipping on a single event."""

    def describe(b):
        b.state("off", b.transition("toggle", "on"))
        b.state("on", b.transition("toggle", "off"))

    return describe


@pytest.fixture
def toggle_machine(toggle_description):
    return compile_machine(toggle_description)


@pytest.fixture
def toggle_session(toggle_machine):
    session = create_session(toggle_machine)
    yield session
    session.stop()


@pytest.fixture
def go_event():
    """A generic event for testing transitions."""
    return Event("go")


@pytest.fixture
def passing_guard():
    """A guard mock that always passes."""
    return MagicMock(return_value=True)


@pytest.fixture
def failing_guard():
    """A guard mock that always fails."""
    return MagicMock(return_value=False)


@pytest.fixture
def effect_log():
    """Records effect starts and cleanups as (kind, name) tuples."""
    return []


@pytest.fixture
def tracked_effect(effect_log):
    """Factory for effects that log their start and cleanup."""

    def make(name):
        def effect(context, event, send):
            effect_log.append(("start", name))

            def cleanup():
                effect_log.append(("cleanup", name))

            return cleanup

        effect.__qualname__ = name
        return effect

    return make


@pytest.fixture
def diagnostics(caplog):
    """Capture warning-level diagnostics emitted by the effect runtime."""
    caplog.set_level(logging.WARNING, logger="fsmachine.runtime.effects")

    def collect():
        return [getattr(record, "diagnostic", None) for record in caplog.records if record.levelno >= logging.WARNING]

    return collect
