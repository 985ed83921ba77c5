from unittest.mock import MagicMock

import pytest
import requests

from kink_scrobbler.lastfm_client import (
    LastFMAuthError, LastFMClient, LastFMNetworkError, LastFMRateLimitError,
    LastFMUnknownError, TrackMatch,
)
from kink_scrobbler.signature import sign


def _response(payload=None, status=200, bad_json=False):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    if bad_json:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def client(http):
    return LastFMClient("KEY", "SECRET", "SK", base_url="http://lastfm.test/2.0/", session=http)


@pytest.mark.unit
class TestSearchTrack:
    def test_best_match(self, client, http):
        http.get.return_value = _response({"results": {"trackmatches": {"track": [
            {"name": "Song A", "artist": "Artist A"}]}}})
        assert client.search_track("artist a", "song a") == TrackMatch("Artist A", "Song A")

        params = http.get.call_args.kwargs["params"]
        assert params["method"] == "track.search"
        assert params["limit"] == "1"
        assert params["artist"] == "artist a"
        assert params["track"] == "song a"
        assert "api_sig" not in params
        assert "sk" not in params

    def test_no_match(self, client, http):
        http.get.return_value = _response({"results": {"trackmatches": {"track": []}}})
        assert client.search_track("nobody", "nothing") is None

    def test_empty_trackmatches_string(self, client, http):
        http.get.return_value = _response({"results": {"trackmatches": "\n"}})
        assert client.search_track("nobody", "nothing") is None

    def test_network_error(self, client, http):
        http.get.side_effect = requests.ConnectionError("down")
        with pytest.raises(LastFMNetworkError):
            client.search_track("a", "b")


@pytest.mark.unit
class TestNowPlaying:
    def test_signed_post(self, client, http):
        http.post.return_value = _response({"nowplaying": {"track": {"#text": "Song A"}}})
        assert client.update_now_playing(artist="Artist A", title="Song A") is True

        data = http.post.call_args.kwargs["data"]
        assert data["method"] == "track.updateNowPlaying"
        assert data["sk"] == "SK"
        assert data["format"] == "json"
        unsigned = {k: v for k, v in data.items() if k != "api_sig"}
        assert data["api_sig"] == sign(unsigned, "SECRET")

    def test_missing_acknowledgement_is_soft_failure(self, client, http):
        http.post.return_value = _response({})
        assert client.update_now_playing(artist="A", title="a") is False

    def test_without_session_key(self, http):
        client = LastFMClient("KEY", "SECRET", None, session=http)
        with pytest.raises(LastFMAuthError):
            client.update_now_playing(artist="A", title="a")
        http.post.assert_not_called()


@pytest.mark.unit
class TestScrobble:
    def test_request(self, client, http):
        http.post.return_value = _response({"scrobbles": {"@attr": {"accepted": 1, "ignored": 0}}})
        client.scrobble(artist="Artist A", title="Song A", timestamp=1700000000)

        data = http.post.call_args.kwargs["data"]
        assert data["method"] == "track.scrobble"
        assert data["chosenByUser"] == "0"
        assert data["timestamp"] == "1700000000"
        assert data["api_sig"] == "999d9119d97ed184106f795db2ee6fe4"

    @pytest.mark.parametrize("code,exc", [
        (9, LastFMAuthError),
        (4, LastFMAuthError),
        (29, LastFMRateLimitError),
        (16, LastFMUnknownError),
    ])
    def test_api_errors_are_typed(self, client, http, code, exc):
        http.post.return_value = _response({"error": code, "message": "nope"}, status=403)
        with pytest.raises(exc):
            client.scrobble(artist="A", title="a", timestamp=1)

    def test_undecodable_body(self, client, http):
        http.post.return_value = _response(status=502, bad_json=True)
        with pytest.raises(LastFMNetworkError):
            client.scrobble(artist="A", title="a", timestamp=1)

    def test_http_error_without_error_body(self, client, http):
        http.post.return_value = _response({}, status=500)
        with pytest.raises(LastFMUnknownError):
            client.scrobble(artist="A", title="a", timestamp=1)


@pytest.mark.unit
class TestMalformedBodies:
    @pytest.mark.parametrize("payload", [
        {"results": {"trackmatches": {"track": ["garbage"]}}},
        {"results": "nothing here"},
        {"results": {"trackmatches": {"track": "garbage"}}},
    ])
    def test_search_raises_typed_error(self, client, http, payload):
        http.get.return_value = _response(payload)
        with pytest.raises(LastFMNetworkError):
            client.search_track("a", "b")

    @pytest.mark.parametrize("payload", [{"scrobbles": "ok"}, {"scrobbles": {"@attr": 1}}, ["x"]])
    def test_scrobble_with_odd_body_still_counts(self, client, http, payload):
        http.post.return_value = _response(payload)
        client.scrobble(artist="A", title="a", timestamp=1)

    def test_scrobble_error_body_with_http_200_is_returned(self, client, http):
        http.post.return_value = _response({"error": 16, "message": "Try again later"})
        reply = client.scrobble(artist="A", title="a", timestamp=1)
        assert reply["error"] == 16
