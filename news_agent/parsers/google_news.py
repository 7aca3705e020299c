"""
Google News search parser.

This module provides the GoogleNewsParser class, which runs a keyword search
against the Google News RSS endpoint for one region and language.
"""

import calendar
import datetime
import html
import logging
import re
import time
from typing import Callable, List, Optional
from urllib.parse import quote

import requests
import feedparser  # type: ignore
from news_agent.models import Article, FetchError
from news_agent.parsers.base import FeedParser

logger = logging.getLogger(__name__)

SEARCH_URL = "https://news.google.com/rss/search?q={query}&hl={lang}&gl={region}&ceid={region}:{lang}"
DEFAULT_SOURCE = "Google News"
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0


class GoogleNewsParser(FeedParser):
    """Fetches keyword search results from Google News."""

    def __init__(
        self,
        max_age_hours: int = 24,
        timeout: int = 10,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_age_hours = max_age_hours
        self.timeout = timeout
        self._sleep = sleep

    def build_url(self, keyword: str, region: str, language: str) -> str:
        """Builds the search feed URL for a keyword."""
        return SEARCH_URL.format(
            query=quote(keyword, safe=""), lang=language, region=region
        )

    def _clean_html(self, raw_html: str) -> str:
        """Removes HTML tags from a string."""
        if not raw_html:
            return ""
        cleaner = re.compile("<.*?>")
        text = html.unescape(re.sub(cleaner, "", raw_html))
        return " ".join(text.split())

    def _description(self, raw_html: str, title: str, source: str) -> str:
        """
        Returns the cleaned description, or "" when it only repeats the
        title and source, as Google News search results usually do.
        """
        text = self._clean_html(raw_html)
        remainder = text
        # Titles come as "Headline - Source"; the description may carry either form
        headline = title.rsplit(" - ", 1)[0]
        for part in sorted({title, headline, source}, key=len, reverse=True):
            if part:
                remainder = remainder.replace(" ".join(part.split()), "")
        if not re.search(r"\w", remainder):
            return ""
        return text

    def _download(self, url: str, keyword: str) -> bytes:
        """Downloads the feed, retrying with a linear backoff."""
        last_error: Optional[Exception] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                # Add a user-agent; the search endpoint rejects bare clients
                resp = requests.get(
                    url, timeout=self.timeout, headers={"User-Agent": "NewsAgentBot/1.0"}
                )
                resp.raise_for_status()
                return resp.content
            except requests.RequestException as req_err:
                last_error = req_err
                logger.warning(
                    "Attempt %d/%d failed for '%s': %s",
                    attempt,
                    MAX_ATTEMPTS,
                    keyword,
                    req_err,
                )
                if attempt < MAX_ATTEMPTS:
                    self._sleep(RETRY_DELAY_SECONDS * attempt)
        raise FetchError(f"Network error fetching '{keyword}': {last_error}") from last_error

    def _published_at(self, entry) -> Optional[datetime.datetime]:
        """Returns the entry's publication time in UTC, if the feed has one."""
        parsed = entry.get("published_parsed")
        if not parsed:
            return None
        return datetime.datetime.fromtimestamp(
            calendar.timegm(parsed), tz=datetime.timezone.utc
        )

    def _is_stale(self, published_at: Optional[datetime.datetime]) -> bool:
        if not self.max_age_hours or published_at is None:
            return False
        cutoff = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(
            hours=self.max_age_hours
        )
        return published_at < cutoff

    def fetch(self, keyword: str, region: str, language: str) -> List[Article]:
        """Fetches and parses search results for a keyword."""
        url = self.build_url(keyword, region, language)
        feed = feedparser.parse(self._download(url, keyword))

        if feed.bozo and not feed.entries:
            raise FetchError(
                f"Malformed feed for '{keyword}' ({region}): {feed.get('bozo_exception')}"
            )

        items: List[Article] = []
        for entry in feed.entries:
            link = entry.get("link")
            if not link:
                continue

            published_at = self._published_at(entry)
            if self._is_stale(published_at):
                continue

            title = entry.get("title", "")
            source = (entry.get("source") or {}).get("title") or DEFAULT_SOURCE
            items.append(
                Article(
                    keyword="",
                    title=title,
                    link=link,
                    summary=self._description(entry.get("summary", ""), title, source),
                    source=source,
                    published_at=published_at,
                    discovered_at=None,
                    sent=False,
                )
            )

        logger.debug(
            "Fetched %d items for '%s' (%s/%s).", len(items), keyword, region, language
        )
        return items
