"""Graph API mock for reconciler testing.

Provides an in-memory stand-in for the `az rest` backed Graph client so the
reconciler, poller and provider can be tested without Azure connectivity.

Usage:
    from graph_mock import FakeGraphDirectory, SleepRecorder

    directory = FakeGraphDirectory()
    directory.register("abc-123", hidden_probes=2)
    poller = ExistencePoller(directory, sleep=SleepRecorder())
"""

from .directory import (
    FORBIDDEN_DIAGNOSTIC,
    NOT_FOUND_DIAGNOSTIC,
    FakeGraphDirectory,
    MockApplication,
    RecordedCall,
)
from .sleep import SleepRecorder

__all__ = [
    "FORBIDDEN_DIAGNOSTIC",
    "NOT_FOUND_DIAGNOSTIC",
    "FakeGraphDirectory",
    "MockApplication",
    "RecordedCall",
    "SleepRecorder",
]
