"""
News Agent command line entry point.

Wires the JSON config, Google News parser, Firestore store and email
service into a NewsAgent and runs one operation:

    news-agent crawl        # collect new articles
    news-agent send         # deliver unsent articles now
    news-agent check-send   # deliver only during a configured delivery hour
    news-agent run          # crawl, then send
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from news_agent.models import NewsAgentError
from news_agent.news_agent import NewsAgent
from news_agent.parsers.google_news import GoogleNewsParser
from news_agent.services.config import JsonConfigSource
from news_agent.services.db import FirestoreArticleStore
from news_agent.services.email_service import EmailService
from news_agent.services.llm import LLMService

logger = logging.getLogger(__name__)


def build_agent(config_path: str) -> NewsAgent:
    """Creates a NewsAgent from the config file and environment."""
    sender = os.environ.get("EMAIL_USER")
    password = os.environ.get("EMAIL_PASS")
    if not sender or not password:
        raise NewsAgentError("EMAIL_USER or EMAIL_PASS not set.")

    config_source = JsonConfigSource(config_path)
    max_age_hours = config_source.load_config()["max_age_hours"]

    summarizer = None
    gemini_key = os.environ.get("GEMINI_KEY")
    if gemini_key:
        summarizer = LLMService(gemini_key)
    else:
        logger.info("GEMINI_KEY not set. Briefing will not include AI summaries.")

    email_service = EmailService(
        os.environ.get("SMTP_SERVER", "smtp.gmail.com"),
        int(os.environ.get("SMTP_PORT", "587")),
        sender,
        password,
        summarizer=summarizer,
    )

    return NewsAgent(
        config_source=config_source,
        keyword_source=config_source,
        store=FirestoreArticleStore(os.environ.get("GCP_PROJECT_ID")),
        fetcher=GoogleNewsParser(max_age_hours=max_age_hours),
        dispatcher=email_service,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="news-agent", description="Collect news by keyword and email briefings."
    )
    parser.add_argument(
        "command",
        choices=["crawl", "send", "check-send", "run"],
        help="operation to run",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("NEWS_AGENT_CONFIG", "config.json"),
        help="path to the JSON config file (default: $NEWS_AGENT_CONFIG or config.json)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = parse_args(argv)

    try:
        agent = build_agent(args.config)

        if args.command in ("crawl", "run"):
            count = agent.crawl()
            logger.info("Collected %d new articles.", count)

        if args.command in ("send", "run"):
            count = agent.dispatch_unsent()
            logger.info("Delivered %d articles.", count)

        if args.command == "check-send":
            result = agent.check_and_dispatch()
            if result is not None:
                logger.info("Delivered %d articles.", result)
    except NewsAgentError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
