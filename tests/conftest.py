"""
Shared fixtures.
"""

import itertools

import pendulum
import pytest

from clinicslots.services.waitlist import InMemoryWaitlistRepository, WaitlistQueue

TZ = "America/Sao_Paulo"


def at(value: str):
    """Clinic-local instant from 'YYYY-MM-DD HH:mm'."""
    return pendulum.parse(value, tz=TZ)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now.add(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(at("2026-03-02 08:00"))


@pytest.fixture
def repository():
    return InMemoryWaitlistRepository()


@pytest.fixture
def queue(repository, clock):
    counter = itertools.count(1)
    return WaitlistQueue(repository, clock=clock, id_factory=lambda: f"w{next(counter)}")
