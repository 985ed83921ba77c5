"""
Alerts for the few things a listener should hear about: the bridge starting
and Last.fm rejecting our session. Sent as a JSON POST to NOTIFY_WEBHOOK_URL
(Slack/Discord-compatible hooks accept it). Without a URL nothing is sent.
"""

from __future__ import annotations
import logging
import os

import requests

log = logging.getLogger("notifier")

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Notifier:
    def __init__(self, webhook_url: str | None = None, min_level: str = "WARNING",
                 tag: str = "KINK→Last.fm", timeout: int = 5):
        self.webhook_url = (webhook_url or "").strip() or None
        self.min_level = min_level.upper() if min_level.upper() in LEVELS else "WARNING"
        self.tag = tag
        self.timeout = timeout

    def wants(self, level: str) -> bool:
        level = level.upper()
        return (self.webhook_url is not None and level in LEVELS
                and LEVELS.index(level) >= LEVELS.index(self.min_level))

    def send(self, level: str, title: str, message: str, extra: dict | None = None):
        if not self.wants(level):
            return
        try:
            requests.post(self.webhook_url, timeout=self.timeout, json={
                "level": level.upper(),
                "title": f"{self.tag}: {title}",
                "message": message,
                "extra": extra or {},
            })
        except requests.RequestException as e:
            log.debug("Alert %r not delivered: %s", title, e)


def from_env(env=None) -> Notifier:
    env = os.environ if env is None else env
    return Notifier(
        webhook_url=env.get("NOTIFY_WEBHOOK_URL"),
        min_level=env.get("NOTIFY_MIN_LEVEL", "WARNING"),
        tag=env.get("APP_TAG", "KINK→Last.fm"),
    )
