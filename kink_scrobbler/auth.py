"""
One-time Last.fm web authorization.

Prints the Last.fm auth URL, waits until the user has approved the app there,
then stores the resulting session key in the state file (slot 'session_key').
"""

from __future__ import annotations
import logging
import time

import pylast

log = logging.getLogger("auth")

SESSION_KEY = "session_key"


def authorize(api_key: str, api_secret: str, store, poll_interval: float = 2,
              max_wait: float = 300, out=print) -> str:
    network = pylast.LastFMNetwork(api_key=api_key, api_secret=api_secret)
    generator = pylast.SessionKeyGenerator(network)
    url = generator.get_web_auth_url()
    out(f"Open this URL and allow access:\n  {url}")

    deadline = time.monotonic() + max_wait
    while True:
        try:
            session_key = generator.get_web_auth_session_key(url)
            break
        except pylast.WSError as e:
            # 14 = token not yet authorized by the user
            if str(getattr(e, "status", "")) != "14" or time.monotonic() >= deadline:
                raise
            time.sleep(poll_interval)

    store.set(SESSION_KEY, session_key)
    log.info("Stored Last.fm session key")
    return session_key
