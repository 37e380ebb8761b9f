import pytest

from fakes import RecordingLimiter, RecordingSleep


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def recording_limiter() -> RecordingLimiter:
    return RecordingLimiter()
