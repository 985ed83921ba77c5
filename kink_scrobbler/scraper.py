import logging
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup

from .config import DEFAULT_SELECTORS

log = logging.getLogger("scraper")


@dataclass
class ScrapeResult:
    label: str | None    # None: page loaded but nothing identifiable is playing
    source: str | None   # URL the label was actually read from


class StreamScraper:
    """
    Reads the "now playing" label from the stream's player page.
    CSS selector fallbacks, first one with text wins.
    """
    def __init__(self, selectors: tuple[str, ...] = DEFAULT_SELECTORS, timeout: int = 10):
        self.selectors = selectors
        self.timeout = timeout

    def _findtext_any(self, soup: BeautifulSoup, *selectors: str):
        for sel in selectors:
            el = soup.select_one(sel)
            if el is not None:
                text = " ".join(el.get_text(" ").split())
                if text:
                    return text
        return None

    def scrape(self, target: str) -> ScrapeResult | None:
        try:
            resp = requests.get(target, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            log.warning("Fetching %s failed: %s", target, e)
            return None

        soup = BeautifulSoup(resp.text, "html.parser")
        return ScrapeResult(label=self._findtext_any(soup, *self.selectors), source=resp.url)


class ScrapeDispatcher:
    """Runs one scrape at a time on a worker thread and waits for it with a timeout.

    A scrape that overran its timeout keeps the dispatcher busy; no new scrape
    is started until it has finished.
    """

    def __init__(self, scraper: StreamScraper, timeout: float = 20):
        self.scraper = scraper
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scraper")
        self._pending: Future | None = None

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def dispatch(self, target: str) -> ScrapeResult | None:
        if self.busy:
            log.info("Previous scrape of %s still outstanding; not dispatching another", target)
            return None
        if self._pending is not None:
            log.debug("Discarding late scrape result")
        self._pending = self._executor.submit(self.scraper.scrape, target)
        try:
            result = self._pending.result(timeout=self.timeout)
        except FutureTimeout:
            log.warning("Scrape of %s timed out after %ss", target, self.timeout)
            return None
        except Exception as e:
            log.warning("Scrape of %s failed: %s", target, e)
            self._pending = None
            return None
        self._pending = None
        return result

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
