"""
Data models for the News Agent application.
"""

import datetime
from typing import List, Optional, TypedDict

# Bucket name for articles stored without a keyword
UNCATEGORIZED = "uncategorized"


class Article(TypedDict):
    """Type definition for an article."""

    keyword: str  # Stamped by the crawler, never by the parser
    title: str
    link: str
    summary: str
    source: str
    published_at: Optional[datetime.datetime]
    discovered_at: Optional[datetime.datetime]
    sent: bool


class Config(TypedDict):
    """Runtime settings, re-read on every crawl or dispatch."""

    regions: List[str]
    language: str
    limit: int
    mail_to: str
    user_name: str
    delivery_hours: List[int]
    mark_excluded_as_sent: bool
    max_age_hours: int


class NewsAgentError(Exception):
    """Base class for all News Agent errors."""


class ConfigError(NewsAgentError):
    """Configuration or keyword list could not be loaded."""


class FetchError(NewsAgentError):
    """A single feed source could not be fetched or parsed."""


class StorageError(NewsAgentError):
    """The article store failed to read or write."""


class DispatchError(NewsAgentError):
    """The briefing could not be delivered."""
