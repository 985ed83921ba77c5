import os
from dataclasses import dataclass, replace

# -------------------------
# Defaults
# -------------------------
LASTFM_BASE_URL = "https://ws.audioscrobbler.com/2.0/"
DEFAULT_STREAM_URLS = (
    "https://kink.nl/player/stream.kink",
    "https://kink.nl/player?stream=stream.kink",
)
# Tried in order; first non-empty text wins
DEFAULT_SELECTORS = (
    "[data-testid=now-playing]",
    ".now-playing",
    ".player-track",
    "#now-playing",
)
DEFAULT_PLACEHOLDERS = ("KINK - No alternative",)

NOW_PLAYING_EVERY_TICK = "every_tick"
NOW_PLAYING_ONCE = "once"
NOW_PLAYING_POLICIES = (NOW_PLAYING_EVERY_TICK, NOW_PLAYING_ONCE)


class SettingsError(Exception): ...


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    api_secret: str | None
    session_key: str | None
    base_url: str = LASTFM_BASE_URL
    stream_urls: tuple[str, ...] = DEFAULT_STREAM_URLS
    selectors: tuple[str, ...] = DEFAULT_SELECTORS
    placeholder_labels: tuple[str, ...] = DEFAULT_PLACEHOLDERS
    poll_interval: int = 60        # seconds
    scrape_timeout: int = 20
    http_timeout: int = 10
    state_path: str = "/data/state.json"
    history_size: int = 5
    now_playing_policy: str = NOW_PLAYING_EVERY_TICK
    reset_on_exit: bool = True
    log_level: str = "INFO"


def _split(value: str | None, sep: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    items = tuple(v.strip() for v in value.split(sep) if v.strip())
    return items or default


def _flag(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def from_env(env=None) -> Settings:
    env = os.environ if env is None else env
    policy = (env.get("NOW_PLAYING_POLICY") or NOW_PLAYING_EVERY_TICK).strip().lower()
    if policy not in NOW_PLAYING_POLICIES:
        raise SettingsError(
            f"NOW_PLAYING_POLICY must be one of {', '.join(NOW_PLAYING_POLICIES)} (got {policy!r})"
        )
    return Settings(
        api_key=env.get("LASTFM_API_KEY") or None,
        api_secret=env.get("LASTFM_API_SECRET") or None,
        session_key=env.get("LASTFM_SESSION_KEY") or None,
        base_url=env.get("LASTFM_BASE_URL", LASTFM_BASE_URL),
        stream_urls=_split(env.get("STREAM_URLS"), ",", DEFAULT_STREAM_URLS),
        selectors=_split(env.get("NOW_PLAYING_SELECTORS"), ",", DEFAULT_SELECTORS),
        placeholder_labels=_split(env.get("PLACEHOLDER_LABELS"), "|", DEFAULT_PLACEHOLDERS),
        poll_interval=max(1, int(env.get("POLL_INTERVAL", "60"))),
        scrape_timeout=max(1, int(env.get("SCRAPE_TIMEOUT", "20"))),
        http_timeout=max(1, int(env.get("HTTP_TIMEOUT", "10"))),
        state_path=env.get("STATE_PATH", "/data/state.json"),
        history_size=max(1, int(env.get("HISTORY_SIZE", "5"))),
        now_playing_policy=policy,
        reset_on_exit=_flag(env.get("RESET_ON_EXIT"), True),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )


def with_credentials(settings: Settings, store) -> Settings:
    """Fill in the session key from the state file when the env doesn't carry one.

    Raises SettingsError when the API key/secret pair is incomplete.
    """
    if not settings.api_key or not settings.api_secret:
        raise SettingsError("LASTFM_API_KEY and LASTFM_API_SECRET are required")
    if settings.session_key:
        return settings
    stored = store.get("session_key")
    return replace(settings, session_key=stored) if stored else settings
