import argparse
import logging
import signal
import sys

from . import __version__
from . import config
from .auth import authorize
from .controller import ScrobblerContext, TransitionController
from .lastfm_client import LastFMClient
from .notifier import from_env as notifier_from_env
from .poller import Poller
from .scraper import ScrapeDispatcher, StreamScraper
from .store import StateStore

log = logging.getLogger("kink-lastfm")


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,  # ensure our config is used even if libs pre-configure logging
    )


def build_controller(settings: config.Settings, store: StateStore) -> TransitionController:
    settings = config.with_credentials(settings, store)
    if not settings.session_key:
        log.warning("No Last.fm session key yet; run `kink-scrobbler auth`. "
                    "Now playing and scrobbles will fail until then.")
    client = LastFMClient(
        api_key=settings.api_key,
        api_secret=settings.api_secret,
        session_key=settings.session_key,
        base_url=settings.base_url,
        timeout=settings.http_timeout,
    )
    dispatcher = ScrapeDispatcher(
        StreamScraper(settings.selectors, timeout=settings.http_timeout),
        timeout=settings.scrape_timeout,
    )
    return TransitionController(ScrobblerContext(
        settings=settings,
        store=store,
        client=client,
        dispatcher=dispatcher,
        notifier=notifier_from_env(),
    ))


def _interrupt(signum, frame):
    raise KeyboardInterrupt


def run(settings: config.Settings, store: StateStore) -> int:
    controller = build_controller(settings, store)
    poller = Poller(controller, settings.poll_interval)
    signal.signal(signal.SIGTERM, _interrupt)

    log.info("Starting KINK → Last.fm bridge %s. Stream: %s | State: %s",
             __version__, settings.stream_urls[0], settings.state_path)
    controller.ctx.notifier.send("INFO", "Bridge started",
                                 f"Polling {settings.stream_urls[0]} every {settings.poll_interval}s.")
    poller.arm()
    try:
        while poller.armed:
            poller.join(1.0)
    except KeyboardInterrupt:
        log.info("Shutting down…")
    finally:
        poller.cancel(reset=settings.reset_on_exit)
        controller.ctx.dispatcher.shutdown()
    return 0


def tick_once(settings: config.Settings, store: StateStore) -> int:
    controller = build_controller(settings, store)
    try:
        controller.tick()
    finally:
        controller.ctx.dispatcher.shutdown()
    return 0


def cli(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="kink-scrobbler",
        description="Scrobble the KINK radio stream to Last.fm. Configured through environment variables.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("command", nargs="?", default="run",
                        choices=("run", "tick", "reset", "auth"),
                        help="run: poll forever (default); tick: poll once; "
                             "reset: forget the open track; auth: authorize with Last.fm")
    args = parser.parse_args(argv)

    try:
        settings = config.from_env()
    except (config.SettingsError, ValueError) as e:
        raise SystemExit(f"Invalid configuration: {e}")
    setup_logging(settings.log_level)
    store = StateStore(settings.state_path)

    if args.command == "reset":
        TransitionController(ScrobblerContext(settings=settings, store=store, client=None)).reset()
        return 0

    if not settings.api_key or not settings.api_secret:
        raise SystemExit("LASTFM_API_KEY and LASTFM_API_SECRET are required")

    if args.command == "auth":
        authorize(settings.api_key, settings.api_secret, store)
        return 0
    if args.command == "tick":
        return tick_once(settings, store)
    return run(settings, store)


if __name__ == "__main__":
    sys.exit(cli())
