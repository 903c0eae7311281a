"""Fetch an RSS/Atom document over HTTP and decode it into RSSFeed."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import feedparser
import requests

from .errors import NetworkError, ParseError

logger = logging.getLogger("gator.rss")

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class RSSItem:
    title: str
    link: str
    description: str
    pub_date: str


@dataclass(frozen=True)
class RSSFeed:
    title: str
    link: str
    description: str
    items: List[RSSItem] = field(default_factory=list)


def _text(d: Dict[str, Any], *keys: str) -> str:
    for k in keys:
        v = d.get(k)
        if v:
            return str(v).strip()
    return ""


def unescape_feed(feed: RSSFeed) -> RSSFeed:
    """HTML-unescape title and description at channel and item level."""
    items = [
        replace(it, title=html.unescape(it.title), description=html.unescape(it.description))
        for it in feed.items
    ]
    return replace(
        feed,
        title=html.unescape(feed.title),
        description=html.unescape(feed.description),
        items=items,
    )


def parse_feed(content: bytes) -> RSSFeed:
    d = feedparser.parse(content)
    if not d.get("version"):
        reason = d.get("bozo_exception") or "not an RSS/Atom document"
        raise ParseError(f"cannot decode feed: {reason}")

    channel = d.get("feed", {})
    items = [
        RSSItem(
            title=_text(e, "title"),
            link=_text(e, "link"),
            description=_text(e, "summary", "description"),
            pub_date=_text(e, "published", "updated"),
        )
        for e in d.get("entries", [])
    ]
    feed = RSSFeed(
        title=_text(channel, "title"),
        link=_text(channel, "link"),
        description=_text(channel, "subtitle", "description"),
        items=items,
    )
    return unescape_feed(feed)


def fetch_feed(
    url: str,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> RSSFeed:
    """
    GET url and parse the body. No retries: transport failures and
    non-2xx responses raise NetworkError, bad payloads ParseError.
    """
    getter = session.get if session is not None else requests.get
    try:
        resp = getter(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise NetworkError(f"GET {url} failed: {exc}") from exc

    logger.debug("GET %s -> %s (%d bytes)", url, resp.status_code, len(resp.content))
    return parse_feed(resp.content)
