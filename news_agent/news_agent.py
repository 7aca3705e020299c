"""
News Agent orchestrator.

Crawls news searches for every configured keyword and region, keeps only
articles whose links are not stored yet, and later delivers unsent articles
as a single briefing grouped by keyword.
"""

import datetime
import logging
import time
from typing import Callable, Dict, List, Optional

from news_agent.models import UNCATEGORIZED, Article, Config
from news_agent.parsers.base import FeedParser
from news_agent.services.base import (
    ArticleStore,
    BriefingDispatcher,
    ConfigSource,
    KeywordSource,
)

# Courtesy throttle for the rate-limited search endpoint
FETCH_DELAY_SECONDS = 0.5


def group_by_keyword(articles: List[Article], limit: int) -> Dict[str, List[Article]]:
    """
    Groups articles by keyword, keeping at most `limit` per keyword.

    Keyword order and article order follow the input. Articles without a
    keyword go under UNCATEGORIZED.
    """
    grouped: Dict[str, List[Article]] = {}
    for article in articles:
        keyword = article["keyword"] or UNCATEGORIZED
        bucket = grouped.setdefault(keyword, [])
        if len(bucket) < limit:
            bucket.append(article)
    return {keyword: items for keyword, items in grouped.items() if items}


class NewsAgent:
    """Sequences crawling and briefing delivery over injected services."""

    def __init__(
        self,
        config_source: ConfigSource,
        keyword_source: KeywordSource,
        store: ArticleStore,
        fetcher: FeedParser,
        dispatcher: BriefingDispatcher,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
        fetch_delay: float = FETCH_DELAY_SECONDS,
    ):
        self.config_source = config_source
        self.keyword_source = keyword_source
        self.store = store
        self.fetcher = fetcher
        self.dispatcher = dispatcher
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self.fetch_delay = fetch_delay

    def crawl(self) -> int:
        """
        Fetches every (keyword, region) pair and stores unseen articles.

        A failing pair is logged and skipped. Config, keyword and save
        failures propagate. Returns the number of articles stored.
        """
        config = self.config_source.load_config()
        keywords = self.keyword_source.get_keywords()
        self.logger.info(
            "--- Starting crawl: %d keywords x %d regions ---",
            len(keywords),
            len(config["regions"]),
        )

        new_items: List[Article] = []
        failed = 0

        for keyword in keywords:
            for region in config["regions"]:
                self._sleep(self.fetch_delay)

                try:
                    items = self.fetcher.fetch(keyword, region, config["language"])
                except Exception as e:  # pylint: disable=broad-exception-caught
                    failed += 1
                    self.logger.warning(
                        "Fetch error for '%s' (%s): %s", keyword, region, e
                    )
                    continue

                for item in items:
                    if not self.store.url_exists(item["link"]):
                        item["keyword"] = keyword
                        item["discovered_at"] = datetime.datetime.now(
                            datetime.timezone.utc
                        )
                        item["sent"] = False
                        new_items.append(item)

        if new_items:
            self.store.save_articles(new_items)

        self.logger.info(
            "Crawl finished: %d new articles, %d failed sources.",
            len(new_items),
            failed,
        )
        return len(new_items)

    def dispatch_unsent(self) -> int:
        """
        Sends unsent articles as one briefing, then marks them sent.

        Nothing is marked if delivery fails, so the next call retries the
        same articles. Returns the number of articles marked sent.
        """
        unsent = self.store.get_unsent_articles()
        if not unsent:
            self.logger.info("No unsent articles.")
            return 0

        config = self.config_source.load_config()
        grouped = group_by_keyword(unsent, config["limit"])
        briefed = sum(len(items) for items in grouped.values())

        self.dispatcher.send_briefing(grouped, config)

        if config["mark_excluded_as_sent"]:
            # Articles cut by the per-keyword limit are retired as well
            to_mark = unsent
        else:
            to_mark = [a for items in grouped.values() for a in items]

        if to_mark:
            self.store.mark_as_sent(to_mark)

        self.logger.info(
            "Briefing sent: %d of %d unsent articles included, %d marked sent.",
            briefed,
            len(unsent),
            len(to_mark),
        )
        return len(to_mark)

    def check_and_dispatch(self, now: Optional[datetime.datetime] = None) -> Optional[int]:
        """Dispatches only during a configured delivery hour."""
        config: Config = self.config_source.load_config()
        hour = (now or datetime.datetime.now()).hour

        if hour not in config["delivery_hours"]:
            self.logger.info(
                "Skipping dispatch at hour %d (delivery hours: %s).",
                hour,
                config["delivery_hours"],
            )
            return None
        return self.dispatch_unsent()
