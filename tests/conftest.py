import random

import pytest

from rps_arcade.controller import GameController
from rps_arcade.events import EventBus
from rps_arcade.timers import ManualScheduler


class ScriptedRandom(random.Random):
    """Random source whose choice() returns a fixed script of values."""

    def __init__(self, *picks):
        super().__init__(0)
        self.picks = list(picks)

    def choice(self, seq):
        if self.picks:
            return self.picks.pop(0)
        return seq[0]


class Recorder:
    """Collects every event emitted on a bus."""

    def __init__(self, bus: EventBus):
        self.events = []
        bus.subscribe(None, self.events.append)

    def of(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_controller(scheduler):
    def factory(*picks, **kwargs):
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("rng", ScriptedRandom(*picks))
        kwargs.setdefault("clock", lambda: "2024-01-01T12:00:00")
        return GameController(**kwargs)
    return factory
