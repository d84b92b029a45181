"""Shared fixtures for keyscope tests."""
import os
from pathlib import Path

import pytest

from keyscope.analyzer.key_index import KeyIndex
from keyscope.config import Config

FIXTURE_APP = Path(__file__).parent / 'fixtures' / 'flutter_app'


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep KEYSCOPE_* variables from the outer shell (or a loaded .env) out of tests."""
    for name in list(os.environ):
        if name.startswith('KEYSCOPE_'):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixture_app() -> Path:
    return FIXTURE_APP


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def index(clock) -> KeyIndex:
    """Key index over the fixture app, already scanned."""
    key_index = KeyIndex(FIXTURE_APP, Config(FIXTURE_APP), clock=clock)
    key_index.scan()
    return key_index
