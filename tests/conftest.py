import pytest

from src.edit_session.config import EditSessionConfig
from src.edit_session.session import EditSession
from tests.builders import PROBE_DURATIONS
from tests.fakes import EventRecorder, FakeProber


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber(PROBE_DURATIONS)


@pytest.fixture
def config() -> EditSessionConfig:
    return EditSessionConfig()


@pytest.fixture
def session(config: EditSessionConfig, prober: FakeProber) -> EditSession:
    return EditSession(config=config, prober=prober)


@pytest.fixture
def recorder(session: EditSession) -> EventRecorder:
    return EventRecorder(session.events)
