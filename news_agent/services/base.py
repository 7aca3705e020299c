"""
Interfaces for the services the News Agent depends on.

Each protocol describes one capability. NewsAgent receives concrete
implementations at construction time, so any of them can be replaced
by a test double or an alternative backend.
"""

from typing import Dict, List, Protocol
from news_agent.models import Article, Config


class ConfigSource(Protocol):
    """Supplies the current settings. Raises ConfigError on failure."""

    def load_config(self) -> Config:
        """Returns the current settings."""


class KeywordSource(Protocol):
    """Supplies the ordered keyword list. Raises ConfigError on failure."""

    def get_keywords(self) -> List[str]:
        """Returns the keywords to crawl."""


class ArticleStore(Protocol):
    """
    Persistence for discovered articles.

    The article link is the identity: no two stored articles share one.
    All write and read failures raise StorageError.
    """

    def url_exists(self, link: str) -> bool:
        """Returns True if an article with this link is already stored."""

    def save_articles(self, articles: List[Article]) -> None:
        """Stores new articles."""

    def get_unsent_articles(self) -> List[Article]:
        """Returns every stored article that has not been sent yet."""

    def mark_as_sent(self, articles: List[Article]) -> None:
        """Flags the given articles as sent."""


class BriefingDispatcher(Protocol):
    """Delivers a briefing. Raises DispatchError on failure."""

    def send_briefing(self, grouped: Dict[str, List[Article]], config: Config) -> None:
        """Sends articles grouped by keyword as one briefing."""


class Summarizer(Protocol):
    """Produces a short reader-facing summary of an article."""

    def summarize(self, article: Article) -> str:
        """Returns a summary, or an empty string if none could be made."""
