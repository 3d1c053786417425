import pytest

from applog.registry import reset_logger


class FakeClock:
    """Deterministic millisecond clock that advances on every read."""

    def __init__(self, start: int = 1_705_307_025_000, step: int = 5):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


class RecordingSink:
    def __init__(self):
        self.received = []

    async def send(self, entry):
        self.received.append(entry)


class FailingSink:
    def __init__(self):
        self.calls = 0

    async def send(self, entry):
        self.calls += 1
        raise ConnectionError("remote unreachable")


class SyncRaisingSink:
    """A sink whose send blows up before returning an awaitable."""

    def send(self, entry):
        raise RuntimeError("sink misconfigured")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return FailingSink()


@pytest.fixture
def sync_raising_sink():
    return SyncRaisingSink()


@pytest.fixture(autouse=True)
def _reset_global_logger():
    reset_logger()
    yield
    reset_logger()
