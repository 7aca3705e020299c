"""
Database service for article persistence and deduplication.

This module provides the FirestoreArticleStore class which keeps every
discovered article in Google Firestore, keyed by a hash of its link, and
tracks which articles have already been delivered in a briefing.
"""

import hashlib
import datetime
import logging
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import GoogleAPIError  # type: ignore
from google.cloud import firestore  # type: ignore
from news_agent.models import Article, StorageError

logger = logging.getLogger(__name__)

# Firestore batches are limited to 500 writes
BATCH_LIMIT = 400

_EPOCH = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


class FirestoreArticleStore:
    """Stores articles in a Firestore collection."""

    def __init__(self, project_id: Optional[str], collection: str = "articles"):
        if not project_id:
            raise StorageError("GCP_PROJECT_ID not set. Cannot open article store.")

        try:
            self.db = firestore.Client(project=project_id)
            self.collection = self.db.collection(collection)
            logger.info("Connected to Firestore collection '%s'.", collection)
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise StorageError(f"Firestore connection failed: {e}") from e

    def get_id(self, url: str) -> str:
        """Creates a deterministic hash of the URL."""
        return hashlib.md5(url.encode("utf-8")).hexdigest()

    def url_exists(self, link: str) -> bool:
        """Returns True if an article with this link is already stored."""
        try:
            return self.collection.document(self.get_id(link)).get().exists
        except GoogleAPIError as e:
            raise StorageError(f"Lookup failed for {link}: {e}") from e

    def _commit_in_batches(self, writes: List[Any]) -> None:
        """Applies (ref, op, data) writes, committing every BATCH_LIMIT."""
        batch = self.db.batch()
        count = 0

        for ref, op, data in writes:
            getattr(batch, op)(ref, data)
            count += 1

            if count >= BATCH_LIMIT:
                batch.commit()
                batch = self.db.batch()
                count = 0

        if count > 0:
            batch.commit()

    def save_articles(self, articles: List[Article]) -> None:
        """Stores new articles."""
        writes = []
        for article in articles:
            ref = self.collection.document(self.get_id(article["link"]))
            writes.append((ref, "set", dict(article)))

        try:
            self._commit_in_batches(writes)
        except GoogleAPIError as e:
            raise StorageError(f"Saving {len(articles)} articles failed: {e}") from e
        logger.info("Saved %d articles.", len(articles))

    def _to_article(self, data: Dict[str, Any]) -> Article:
        return Article(
            keyword=data.get("keyword") or "",
            title=data.get("title", ""),
            link=data.get("link", ""),
            summary=data.get("summary", ""),
            source=data.get("source", ""),
            published_at=data.get("published_at"),
            discovered_at=data.get("discovered_at"),
            sent=bool(data.get("sent", False)),
        )

    def get_unsent_articles(self) -> List[Article]:
        """Returns unsent articles, oldest discovery first."""
        try:
            snapshots = self.collection.where("sent", "==", False).stream()
            articles = [self._to_article(snap.to_dict()) for snap in snapshots]
        except GoogleAPIError as e:
            raise StorageError(f"Reading unsent articles failed: {e}") from e

        # Sorted here so the query does not need a composite index
        articles.sort(key=lambda a: a["discovered_at"] or _EPOCH)
        logger.info("Found %d unsent articles.", len(articles))
        return articles

    def mark_as_sent(self, articles: List[Article]) -> None:
        """Flags the given articles as sent."""
        sent_at = datetime.datetime.now(datetime.timezone.utc)
        writes = [
            (
                self.collection.document(self.get_id(article["link"])),
                "update",
                {"sent": True, "sent_at": sent_at},
            )
            for article in articles
        ]

        try:
            self._commit_in_batches(writes)
        except GoogleAPIError as e:
            raise StorageError(f"Marking {len(articles)} articles failed: {e}") from e
        logger.info("Marked %d articles as sent.", len(articles))
