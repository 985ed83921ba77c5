import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .config import NOW_PLAYING_EVERY_TICK, Settings
from .dedup import HISTORY_KEY, RecentHistory, is_default, should_treat_as_new
from .lastfm_client import AUTH_ERROR_CODES, LastFMAuthError, LastFMClient, LastFMError
from .notifier import Notifier
from .scraper import ScrapeDispatcher
from .state import SESSION_SLOTS, SessionTracker, TrackSession

log = logging.getLogger("controller")

PREVIOUS_KEY = "prev_scraped_string"


@dataclass
class ScrobblerContext:
    """Everything a tick needs, passed in instead of living in module globals."""
    settings: Settings
    store: object
    client: LastFMClient
    dispatcher: ScrapeDispatcher | None = None
    notifier: Notifier = field(default_factory=Notifier)
    clock: Callable[[], float] = time.time


class TransitionController:
    """Turns one scraped label per tick into Last.fm calls.

    Per tick: if the label is a real change, the open track is closed first
    (and scrobbled if it still needs to be), then the new one is opened,
    resolved via search and announced as now playing. The label is then
    remembered as the previous sample, whatever happened.
    """

    def __init__(self, ctx: ScrobblerContext):
        self.ctx = ctx
        self.settings = ctx.settings
        self.store = ctx.store
        self.client = ctx.client
        self.tracker = SessionTracker(ctx.store)
        self._epoch = 0
        self._epoch_lock = threading.Lock()

    # -------------------------
    # Entry points
    # -------------------------
    def tick(self) -> bool:
        """Scrape once and process the result. False if nothing changed or no sample arrived."""
        if self.ctx.dispatcher is None:
            raise RuntimeError("tick() needs a scrape dispatcher in the context")
        target = self.settings.stream_urls[0]
        result = self.ctx.dispatcher.dispatch(target)
        if result is None:
            log.info("No sample this tick")
            return False
        if result.source not in self.settings.stream_urls:
            log.warning("Ignoring sample from unexpected source %s", result.source)
            return False
        return self.process_sample(result.label)

    def process_sample(self, sample: str | None) -> bool:
        epoch = self._epoch
        placeholders = self.settings.placeholder_labels
        previous = self.store.get(PREVIOUS_KEY)
        history = RecentHistory.load(self.store, self.settings.history_size)
        session = self.tracker.current()

        changed = should_treat_as_new(sample, previous, history, placeholders)
        if changed and session is not None and sample == session.display_label:
            # Back to the open track after a glitch; it never ended.
            changed = False

        if changed:
            log.info("Scraped new text: %r", sample)
            self._close(session, history, epoch)
            if not is_default(sample, placeholders):
                self._open(sample, epoch)
        elif session is not None and self.settings.now_playing_policy == NOW_PLAYING_EVERY_TICK:
            self._announce(session)
        else:
            log.debug("Unchanged: %r", sample)

        with self._epoch_lock:
            if not self._stale(epoch):
                self.store.set(PREVIOUS_KEY, sample)
        return changed

    def reset(self) -> None:
        """Forget the open track, the previous sample and the history.

        The stored Last.fm session key is kept. Work from a tick that began
        before the reset is not written back.
        """
        with self._epoch_lock:
            self._epoch += 1
            self.store.remove(PREVIOUS_KEY, HISTORY_KEY, *SESSION_SLOTS)
        log.info("State reset")

    # -------------------------
    # Session transitions
    # -------------------------
    def _stale(self, epoch: int) -> bool:
        return epoch != self._epoch

    def _close(self, session: TrackSession | None, history: RecentHistory, epoch: int) -> None:
        if session is None:
            return
        if not session.scrobbled and not is_default(session.display_label, self.settings.placeholder_labels):
            try:
                reply = self.client.scrobble(artist=session.artist, title=session.title,
                                             timestamp=session.started_at)
            except LastFMError as e:
                self._report("scrobble", session, e)
            else:
                log.info("Scrobbled: %s - %s (started %s)", session.artist, session.title,
                         session.started_at)
                if reply.get("error") in AUTH_ERROR_CODES:
                    self._report("scrobble", session,
                                 LastFMAuthError(reply.get("message", "authentication failed")))
                with self._epoch_lock:
                    if self._stale(epoch):
                        return
                    self.tracker.mark_scrobbled()
                    history.push(session.display_label)
                    history.save(self.store)
        with self._epoch_lock:
            if not self._stale(epoch):
                self.tracker.clear()

    def _open(self, sample: str, epoch: int) -> None:
        with self._epoch_lock:
            if self._stale(epoch):
                return
            session = self.tracker.open(sample, started_at=int(self.ctx.clock()))
        try:
            match = self.client.search_track(session.artist, session.title)
        except LastFMError as e:
            self._report("search", session, e)
            match = None

        if match is not None:
            with self._epoch_lock:
                resolved = None if self._stale(epoch) else \
                    self.tracker.resolve(session, match.artist, match.title)
            if resolved is None:
                return
            if (resolved.artist, resolved.title) != (session.artist, session.title):
                log.info("Resolved %r to %s - %s", sample, resolved.artist, resolved.title)
            session = resolved

        if self._stale(epoch):
            return
        self._announce(session)

    def _announce(self, session: TrackSession) -> bool:
        try:
            return self.client.update_now_playing(artist=session.artist, title=session.title)
        except LastFMError as e:
            self._report("now playing", session, e)
            return False

    def _report(self, what: str, session: TrackSession, err: LastFMError) -> None:
        log.warning("%s failed for %s - %s: %s (%s)", what, session.artist, session.title,
                    err, type(err).__name__)
        if isinstance(err, LastFMAuthError):
            self.ctx.notifier.send("ERROR", "Last.fm authentication failed", str(err),
                                   {"call": what, "artist": session.artist, "title": session.title})
