import asyncio
import markovtext
import pytest
import sqlite_utils
from markovtext.errors import FetchError


def pytest_configure(config):
    import sys

    sys._called_from_test = True


@pytest.fixture
def user_path(tmpdir):
    dir = tmpdir / "markovtext"
    dir.mkdir()
    return dir


@pytest.fixture
def texts_db(user_path):
    return sqlite_utils.Database(str(user_path / "texts.db"))


@pytest.fixture(autouse=True)
def env_setup(monkeypatch, user_path):
    monkeypatch.setenv("MARKOVTEXT_USER_PATH", str(user_path))


CORPUS = [
    "the moon rose slowly over the quiet harbour tonight",
    "the moon was a pale coin above the black water",
    "we walked along the harbour wall until the lights went out",
    "the lights of the town flickered like a slow heartbeat",
    "a slow heartbeat of rain against the window all night",
]


@pytest.fixture
def corpus():
    return list(CORPUS)


class FakeSource(markovtext.TextSource):
    """
    TextSource serving queued batches of corpus lines.

    Set ``gate`` to an asyncio.Event to hold fetches until it is set.
    """

    def __init__(self, batches=None, available=True):
        self.batches = list(batches or [])
        self.available = available
        self.fetch_calls = []
        self.check_calls = 0
        self.gate = None
        self.closed = False

    def enqueue(self, lines):
        assert isinstance(lines, list)
        self.batches.append(lines)

    async def fetch_batch(self, count=20):
        self.fetch_calls.append(count)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if not self.batches:
            self.exhausted = True
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch[:count]

    async def check(self):
        self.check_calls += 1
        if isinstance(self.available, Exception):
            raise self.available
        return self.available

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def failing_source():
    return FakeSource(batches=[FetchError("Could not reach fake: boom")])
