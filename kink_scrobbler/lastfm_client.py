import logging
from dataclasses import dataclass

import requests

from . import __version__
from .config import LASTFM_BASE_URL
from .signature import signed

log = logging.getLogger("lastfm")

USER_AGENT = f"kink-scrobbler/{__version__}"


# Custom error classes so callers can branch
class LastFMError(Exception): ...
class LastFMAuthError(LastFMError): ...
class LastFMRateLimitError(LastFMError): ...
class LastFMNetworkError(LastFMError): ...
class LastFMUnknownError(LastFMError): ...


AUTH_ERROR_CODES = (4, 9, 14)  # 4=Auth failed, 9=Invalid session, 14=Token not authorized
RATE_LIMIT_CODES = (29,)


@dataclass(frozen=True)
class TrackMatch:
    artist: str
    title: str


def _raise_api_error(payload: dict):
    code = payload.get("error")
    msg = payload.get("message", "")
    if code in AUTH_ERROR_CODES:
        raise LastFMAuthError(msg)
    if code in RATE_LIMIT_CODES:
        raise LastFMRateLimitError(msg)
    raise LastFMUnknownError(f"Last.fm API error {code}: {msg}")


class LastFMClient:
    """Last.fm web service calls used by the scrobbler: track.search,
    track.updateNowPlaying and track.scrobble.

    Authenticated calls are signed with the API secret (see signature.py).
    Every failure is raised as a LastFMError subclass; callers decide how
    much it matters.
    """

    def __init__(self, api_key: str, api_secret: str, session_key: str | None,
                 base_url: str = LASTFM_BASE_URL, timeout: int = 10,
                 session: requests.Session | None = None):
        self.api_key = api_key
        self.api_secret = api_secret
        self.session_key = session_key
        self.base_url = base_url
        self.timeout = timeout
        self.http = session or requests.Session()
        self.http.headers.update({"User-Agent": USER_AGENT})

    def _authenticated(self, params: dict) -> dict:
        if not self.session_key:
            raise LastFMAuthError("No Last.fm session key; run `kink-scrobbler auth` first")
        params = dict(params, api_key=self.api_key, sk=self.session_key, format="json")
        return signed(params, self.api_secret)

    def _call(self, http_method: str, params: dict, strict: bool = True) -> dict:
        """Send one request and return the decoded JSON object.

        With strict=False any 2xx response is returned as-is, error body
        included, and a non-object body comes back as {}.
        """
        try:
            if http_method == "GET":
                resp = self.http.get(self.base_url, params=params, timeout=self.timeout)
            else:
                resp = self.http.post(self.base_url, data=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise LastFMNetworkError(str(e)) from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise LastFMNetworkError(f"Undecodable response (HTTP {resp.status_code})") from e

        if not strict and resp.ok:
            return payload if isinstance(payload, dict) else {}
        if isinstance(payload, dict) and "error" in payload:
            _raise_api_error(payload)
        if not resp.ok:
            raise LastFMUnknownError(f"HTTP {resp.status_code} from {params.get('method')}")
        if not isinstance(payload, dict):
            raise LastFMNetworkError(f"Unexpected response body for {params.get('method')}")
        return payload

    def search_track(self, artist: str, title: str) -> TrackMatch | None:
        """Best single match for artist/title, or None when nothing matches."""
        payload = self._call("GET", {
            "method": "track.search",
            "artist": artist,
            "track": title,
            "limit": "1",
            "api_key": self.api_key,
            "format": "json",
        })
        results = payload.get("results")
        if not isinstance(results, dict):
            raise LastFMNetworkError("Unexpected response body for track.search: no results object")
        # Last.fm sends a bare string instead of an object when nothing matched
        matches = results.get("trackmatches")
        tracks = matches.get("track") if isinstance(matches, dict) else None
        if isinstance(tracks, dict):  # single result can come back unwrapped
            tracks = [tracks]
        if not tracks:
            log.debug("No search match for %s - %s", artist, title)
            return None
        if not isinstance(tracks, list) or not isinstance(tracks[0], dict):
            raise LastFMNetworkError("Unexpected response body for track.search: bad track entry")
        best = tracks[0]
        if not best.get("artist") or not best.get("name"):
            return None
        return TrackMatch(artist=str(best["artist"]), title=str(best["name"]))

    def update_now_playing(self, *, artist: str, title: str) -> bool:
        """Push a Now Playing update. False when Last.fm didn't acknowledge it."""
        payload = self._call("POST", self._authenticated({
            "method": "track.updateNowPlaying",
            "artist": artist,
            "track": title,
        }))
        if not payload.get("nowplaying"):
            log.warning("update_now_playing not acknowledged for %s - %s: %s", artist, title, payload)
            return False
        log.info("Now playing: %s - %s", artist, title)
        return True

    def scrobble(self, *, artist: str, title: str, timestamp: int) -> dict:
        """Submit a scrobble with a start timestamp (unix seconds).

        Any 2xx response counts as submitted, even one carrying an error
        code; the body is returned so the caller can look at it. Transport
        failures and non-2xx responses raise.
        """
        payload = self._call("POST", self._authenticated({
            "method": "track.scrobble",
            "artist": artist,
            "track": title,
            "timestamp": int(timestamp),
            "chosenByUser": "0",
        }), strict=False)
        if "error" in payload:
            log.warning("Scrobble of %s - %s answered with error %s: %s", artist, title,
                        payload.get("error"), payload.get("message", ""))
            return payload
        scrobbles = payload.get("scrobbles")
        attr = scrobbles.get("@attr") if isinstance(scrobbles, dict) else None
        if not isinstance(attr, dict):
            log.debug("Scrobble response without counts: %s", payload)
            return payload
        log.debug("Scrobble response: accepted=%s ignored=%s",
                  attr.get("accepted", "?"), attr.get("ignored", "?"))
        return payload
