"""
Shared fixtures: a throwaway state file, settings without any environment,
and a recording stand-in for the Last.fm client.
"""

import pytest

from kink_scrobbler.config import Settings
from kink_scrobbler.controller import ScrobblerContext, TransitionController
from kink_scrobbler.lastfm_client import LastFMNetworkError, TrackMatch
from kink_scrobbler.store import StateStore

PLACEHOLDER = "KINK - No alternative"


class FakeLastFM:
    """Records every call; search answers come from `matches`."""

    def __init__(self):
        self.calls = []
        self.matches = {}
        self.fail = set()   # method names that raise a network error

    def _maybe_fail(self, name):
        if name in self.fail:
            raise LastFMNetworkError(f"{name} unreachable")

    def search_track(self, artist, title):
        self.calls.append(("search", artist, title))
        self._maybe_fail("search")
        return self.matches.get((artist, title))

    def update_now_playing(self, *, artist, title):
        self.calls.append(("now_playing", artist, title))
        self._maybe_fail("now_playing")
        return True

    def scrobble(self, *, artist, title, timestamp):
        self.calls.append(("scrobble", artist, title, timestamp))
        self._maybe_fail("scrobble")
        return {"scrobbles": {"@attr": {"accepted": 1, "ignored": 0}}}

    def of(self, kind):
        return [c[1:] for c in self.calls if c[0] == kind]


class FakeClock:
    def __init__(self, start=1_700_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds=60):
        self.now += seconds


@pytest.fixture
def store(tmp_path):
    return StateStore(str(tmp_path / "state.json"))


@pytest.fixture
def settings(tmp_path):
    return Settings(api_key="KEY", api_secret="SECRET", session_key="SK",
                    state_path=str(tmp_path / "state.json"))


@pytest.fixture
def lastfm():
    return FakeLastFM()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_controller(store, lastfm, clock, settings):
    def _make(**overrides):
        ctx = ScrobblerContext(
            settings=overrides.pop("settings", settings),
            store=store,
            client=overrides.pop("client", lastfm),
            clock=clock,
            **overrides,
        )
        return TransitionController(ctx)
    return _make


@pytest.fixture
def controller(make_controller):
    return make_controller()


def play(controller, clock, labels, spacing=60):
    """Feed one label per tick, advancing the clock between ticks."""
    for label in labels:
        controller.process_sample(label)
        clock.advance(spacing)
