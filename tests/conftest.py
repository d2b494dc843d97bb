"""Pytest configuration and fixtures."""

import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for graph_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from graph_mock import FakeGraphDirectory, SleepRecorder  # noqa: E402

from websignin.poller import ExistencePoller  # noqa: E402
from websignin.reconciler import WebSignInReconciler  # noqa: E402


@pytest.fixture
def directory() -> FakeGraphDirectory:
    """Empty in-memory directory."""
    return FakeGraphDirectory()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def poller(directory: FakeGraphDirectory, sleeper: SleepRecorder) -> ExistencePoller:
    """Poller with the default 30 x 1s schedule that never actually sleeps."""
    return ExistencePoller(directory, max_attempts=30, interval_seconds=1.0, sleep=sleeper)


@pytest.fixture
def reconciler(directory: FakeGraphDirectory, poller: ExistencePoller) -> WebSignInReconciler:
    return WebSignInReconciler(directory, poller)


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Entry points reconfigure the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
