"""Shared fixtures: a deterministic main loop and a scripted status source."""

import pytest

from nb_cli import StatusUnavailable


class FakeLoop:
    """Main loop stand-in with a manual clock.

    Workers are queued until run_workers() is called so that tests can
    look at the controller while a check is in flight.
    """

    def __init__(self):
        self.now = 0.0
        self.timers = {}
        self.workers = []
        self._next_handle = 1

    def call_later(self, seconds, callback):
        handle = self._next_handle
        self._next_handle += 1
        self.timers[handle] = (self.now + seconds, callback)
        return handle

    def cancel(self, handle):
        self.timers.pop(handle, None)

    def call_soon(self, callback, *args):
        callback(*args)

    def spawn(self, target):
        self.workers.append(target)

    def run_workers(self):
        while self.workers:
            self.workers.pop(0)()

    def advance(self, seconds):
        self.now += seconds
        due = sorted(
            (when, handle)
            for handle, (when, _) in self.timers.items()
            if when <= self.now
        )
        for _, handle in due:
            if handle in self.timers:
                _, callback = self.timers.pop(handle)
                callback()

    def pending_delays(self):
        return sorted(when - self.now for when, _ in self.timers.values())


class ScriptedSource:
    """Status source returning canned reports, or raising StatusUnavailable."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = IDLE_REPORT
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSink:
    def __init__(self):
        self.updates = []

    def update(self, state, snapshot, last_checked):
        self.updates.append((state, snapshot, last_checked))

    @property
    def states(self):
        return [u[0] for u in self.updates]


ACTIVE_REPORT = (
    "Under /Cloud/Documents\n"
    "sz:10.0 MB (10000000)\n"
    "> upload{...}\n"
    "needs-sync\n"
)

IDLE_REPORT = "Under /Cloud/Documents\nall good\n"

FAILURE = StatusUnavailable("status command failed")


@pytest.fixture
def loop():
    return FakeLoop()


@pytest.fixture
def sink():
    return RecordingSink()
