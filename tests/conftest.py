"""Shared fixtures: in-memory remotes, a controllable clock and an isolated cache."""
from pathlib import Path

import pytest

from ksecret.secrets.domains.cache_store import CacheStore
from ksecret.secrets.domains.memory_clients import InMemoryEnvironmentTarget, InMemorySecretSource
from ksecret.secrets.domains.naming import NamingScheme


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_path(tmp_path) -> Path:
    return tmp_path / "ksecret" / "cache.json"


@pytest.fixture
def cache(cache_path, clock):
    store = CacheStore(cache_path, clock=clock)
    store.load()
    return store


@pytest.fixture
def naming():
    return NamingScheme()


@pytest.fixture
def source():
    return InMemorySecretSource()


@pytest.fixture
def target():
    return InMemoryEnvironmentTarget({"dev": {}})
