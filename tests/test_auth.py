from unittest.mock import MagicMock, patch

import pylast
import pytest

from kink_scrobbler.auth import authorize


def _not_yet_authorized():
    return pylast.WSError(MagicMock(), "14", "Unauthorized Token")


@pytest.mark.unit
class TestAuthorize:
    def test_stores_session_key_once_approved(self, store):
        generator = MagicMock()
        generator.get_web_auth_url.return_value = "https://last.fm/api/auth?token=t"
        generator.get_web_auth_session_key.side_effect = [_not_yet_authorized(), "SESSION"]
        printed = []

        with patch("pylast.LastFMNetwork"), \
                patch("pylast.SessionKeyGenerator", return_value=generator), \
                patch("time.sleep"):
            key = authorize("KEY", "SECRET", store, out=printed.append)

        assert key == "SESSION"
        assert store.get("session_key") == "SESSION"
        assert "https://last.fm/api/auth?token=t" in printed[0]

    def test_other_errors_propagate(self, store):
        generator = MagicMock()
        generator.get_web_auth_url.return_value = "u"
        generator.get_web_auth_session_key.side_effect = pylast.WSError(MagicMock(), "10", "Invalid API key")

        with patch("pylast.LastFMNetwork"), \
                patch("pylast.SessionKeyGenerator", return_value=generator):
            with pytest.raises(pylast.WSError):
                authorize("KEY", "SECRET", store, out=lambda _: None)
        assert store.get("session_key") is None
