"""Shared fixtures for pyptree tests."""

import pytest

from pyptree.source import StaticProcess, StaticProcessSource


@pytest.fixture
def scenario_source() -> StaticProcessSource:
    """Four processes: init with children a and b, and c under a."""
    return StaticProcessSource.from_tuples(
        [
            (4, "c", None, 2),
            (3, "b", None, 1),
            (1, "init", None, None),
            (2, "a", None, 1),
        ]
    )


@pytest.fixture
def degraded_source() -> StaticProcessSource:
    """Processes with failing lookups, a vanished pid and an orphan."""
    return StaticProcessSource(
        {
            1: StaticProcess(name="init", cwd="/"),
            5: StaticProcess(name=None, cwd="/srv", ppid=1),
            6: StaticProcess(name="worker", cwd="", ppid=5),
            9: StaticProcess(name="orphan", ppid=42),
        },
        vanished=[7],
    )
