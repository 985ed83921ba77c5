import logging
from dataclasses import dataclass
from enum import Enum

log = logging.getLogger("state")

SEPARATOR = " - "

# Flat storage slots for the one open track
SLOT_LABEL = "song_string"
SLOT_ARTIST = "song_artist"
SLOT_TITLE = "song_track"
SLOT_START = "song_start"
SLOT_SCROBBLED = "song_scrobbled"
SLOT_RESOLVED = "song_resolved"
SESSION_SLOTS = (SLOT_LABEL, SLOT_ARTIST, SLOT_TITLE, SLOT_START, SLOT_SCROBBLED, SLOT_RESOLVED)


class SessionStateError(Exception): ...


class SessionState(Enum):
    NONE = "none"
    OPEN_UNRESOLVED = "open_unresolved"
    OPEN_RESOLVED = "open_resolved"


def split_label(label: str) -> tuple[str, str]:
    """'Artist - Title' -> ('Artist', 'Title'). Only the first separator splits."""
    artist, _, title = label.partition(SEPARATOR)
    return artist.strip(), title.strip()


# -------------------------
# One candidate "currently playing" interval
# -------------------------
@dataclass(frozen=True)
class TrackSession:
    display_label: str
    artist: str
    title: str
    started_at: int
    scrobbled: bool = False
    resolved: bool = False

    @property
    def state(self) -> SessionState:
        return SessionState.OPEN_RESOLVED if self.resolved else SessionState.OPEN_UNRESOLVED


class SessionTracker:
    """Owns the open track session in durable storage.

    At most one session exists. It is opened from a new label with a naive
    artist/title split, optionally resolved once against a search result,
    marked scrobbled when its scrobble went out, and cleared when it closes.
    """

    def __init__(self, store):
        self.store = store

    def current(self) -> TrackSession | None:
        slots = self.store.get_many(SESSION_SLOTS)
        if slots.get(SLOT_LABEL) is None or slots.get(SLOT_START) is None:
            return None
        return TrackSession(
            display_label=slots[SLOT_LABEL],
            artist=slots.get(SLOT_ARTIST) or "",
            title=slots.get(SLOT_TITLE) or "",
            started_at=int(slots[SLOT_START]),
            scrobbled=bool(slots.get(SLOT_SCROBBLED, False)),
            resolved=bool(slots.get(SLOT_RESOLVED, False)),
        )

    def state(self) -> SessionState:
        session = self.current()
        return session.state if session else SessionState.NONE

    def open(self, label: str, started_at: int) -> TrackSession:
        if self.current() is not None:
            raise SessionStateError("a track session is already open; close it first")
        artist, title = split_label(label)
        session = TrackSession(display_label=label, artist=artist, title=title,
                               started_at=int(started_at))
        self.store.update({
            SLOT_LABEL: session.display_label,
            SLOT_ARTIST: session.artist,
            SLOT_TITLE: session.title,
            SLOT_START: session.started_at,
            SLOT_SCROBBLED: False,
            SLOT_RESOLVED: False,
        })
        log.debug("Opened session %r at %s", label, session.started_at)
        return session

    def resolve(self, session: TrackSession, artist: str, title: str) -> TrackSession | None:
        """Overwrite the naive names with canonical ones.

        Returns None (and writes nothing) when the stored session is no longer
        the one the lookup was made for.
        """
        stored = self.current()
        if (stored is None or stored.display_label != session.display_label
                or stored.started_at != session.started_at):
            log.debug("Dropping resolution for %r; session no longer open", session.display_label)
            return None
        self.store.update({SLOT_ARTIST: artist, SLOT_TITLE: title, SLOT_RESOLVED: True})
        return TrackSession(stored.display_label, artist, title, stored.started_at,
                            stored.scrobbled, True)

    def mark_scrobbled(self) -> None:
        if self.current() is not None:
            self.store.set(SLOT_SCROBBLED, True)

    def clear(self) -> None:
        self.store.remove(*SESSION_SLOTS)
