"""
Base classes and interfaces for feed parsers.

This module defines the contract that all feed parsers must follow.
"""

from typing import Protocol, List
from news_agent.models import Article


class FeedParser(Protocol):
    """
    Protocol for feed parsers.

    Classes implementing this protocol search a news source for a keyword
    within one region and language, and return the matching items as
    Article objects. The returned articles carry an empty keyword; the
    caller assigns it.

    Implementations raise FetchError when the source cannot be reached or
    its response cannot be parsed.
    """

    def fetch(self, keyword: str, region: str, language: str) -> List[Article]:
        """Fetches and parses search results for a keyword."""
