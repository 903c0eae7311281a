"""
Fixed-interval feed scraper.

Every tick services exactly one feed: the one fetched least recently
(never-fetched feeds first). The feed is marked as fetched before the
network call so a slow fetch can't get the same feed picked twice.
"""

from __future__ import annotations

import logging
import math
import os
import re
import signal
import threading
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from .errors import GatorError, InvalidIntervalError, NoFeedsError
from .rss import RSSFeed, fetch_feed
from .store import Feed, Store, utc_now

logger = logging.getLogger("gator.scraper")

DEFAULT_GRACE_PERIOD = 2.0
EXIT_INTERRUPTED = 130

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_interval(value: Union[str, int, float]) -> float:
    """
    Parse a duration such as "500ms", "10s", "1m" or "1h30m" into
    seconds. Plain numbers are taken as seconds. Must be positive and
    no longer than threading.TIMEOUT_MAX.
    """
    if isinstance(value, bool):
        raise InvalidIntervalError(value)
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        if not text:
            raise InvalidIntervalError(value)
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            while pos < len(text):
                m = _PART_RE.match(text, pos)
                if m is None:
                    raise InvalidIntervalError(value)
                seconds += float(m.group(1)) * _UNITS[m.group(2)]
                pos = m.end()

    if not (seconds > 0 and math.isfinite(seconds)) or seconds > threading.TIMEOUT_MAX:
        raise InvalidIntervalError(value)
    return seconds


def format_interval(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:g}ms"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    return out + f"{secs:g}s"


class Scraper:
    def __init__(
        self,
        store: Store,
        fetch: Callable[[str], RSSFeed] = fetch_feed,
        clock: Callable[[], datetime] = utc_now,
        grace_period: Optional[float] = DEFAULT_GRACE_PERIOD,
    ):
        self.store = store
        self.fetch = fetch
        self.clock = clock
        self.grace_period = grace_period
        self.stop = threading.Event()
        self._grace_timer: Optional[threading.Timer] = None
        self._signalled = False

    # ---- One tick ----

    def scrape_next(self) -> Optional[RSSFeed]:
        """
        Fetch the stalest feed. Failures are logged and swallowed so the
        loop keeps running; returns the parsed feed or None.
        """
        try:
            feed = self.store.next_feed_to_fetch()
        except NoFeedsError:
            logger.info("no feeds registered, waiting for next tick")
            return None
        except GatorError as exc:
            logger.warning("could not pick next feed: %s", exc)
            return None

        try:
            self.store.mark_feed_fetched(feed.id, self.clock())
        except GatorError as exc:
            logger.warning("could not mark %s as fetched: %s", feed.url, exc)
            return None

        try:
            parsed = self.fetch(feed.url)
        except GatorError as exc:
            logger.warning("fetching %s (%s) failed: %s", feed.name, feed.url, exc)
            return None

        self._report(feed, parsed)
        return parsed

    def _report(self, feed: Feed, parsed: RSSFeed) -> None:
        logger.info("fetched %s: %d item(s)", feed.name, len(parsed.items))
        print(f"{feed.name}: {parsed.title or feed.url}")
        for item in parsed.items:
            print(f"  * {item.title}")

    # ---- Loop ----

    def run(self, interval: Union[str, int, float], stop: Optional[threading.Event] = None) -> None:
        """
        Tick immediately, then once per interval, until stop is set.
        Only an unparsable interval raises.
        """
        seconds = parse_interval(interval)
        stop = stop if stop is not None else self.stop
        try:
            while not stop.is_set():
                self.scrape_next()
                if stop.wait(seconds):
                    break
        finally:
            if self._grace_timer is not None:
                self._grace_timer.cancel()
        logger.info("scraper stopped")

    # ---- Cancellation ----

    def install_signal_handlers(self, signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM)) -> None:
        for sig in signals:
            signal.signal(sig, self._on_signal)

    def _on_signal(self, signum: int, _frame: object) -> None:
        # Runs on the main thread, possibly while it holds the stop event's
        # internal lock inside stop.wait(); set it from another thread.
        if self._signalled:
            return
        self._signalled = True
        logger.warning("received %s, stopping", signal.Signals(signum).name)
        threading.Thread(target=self.request_stop, name="gator-stop", daemon=True).start()

    def request_stop(self) -> None:
        """
        Ask the loop to stop. An in-flight fetch is not interrupted; if
        the loop hasn't returned after grace_period the process exits.
        """
        if self.grace_period is not None:
            self._grace_timer = threading.Timer(self.grace_period, self._force_exit)
            self._grace_timer.daemon = True
            self._grace_timer.start()
        self.stop.set()

    def _force_exit(self) -> None:
        logger.error("still busy %.1fs after stop request, exiting", self.grace_period)
        logging.shutdown()
        os._exit(EXIT_INTERRUPTED)
