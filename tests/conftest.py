from __future__ import annotations

import pytest
from _fakes import FakeStore, RecordingPublisher

from pytankctl.config import PollProfile, TankCtlConfig
from pytankctl.exceptions import TankCtlPublishError


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def failing_publisher() -> RecordingPublisher:
    return RecordingPublisher(error=TankCtlPublishError("broker unreachable", topic="x"))


@pytest.fixture
def fast_config() -> TankCtlConfig:
    """Production windows with short intervals and budgets."""
    return TankCtlConfig(
        slave_reply=PollProfile(interval=0.02, window=15.0, budget=0.4),
        alive_reply=PollProfile(interval=0.02, window=10.0, budget=0.2),
        sensor_update=PollProfile(interval=0.02, window=10.0, budget=0.3),
    )
