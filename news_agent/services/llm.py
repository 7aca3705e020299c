"""
LLM Service Module.

This module provides the LLMService class, which uses the Google Gemini API
to write short summaries of the articles that go into a briefing.
"""

import logging
from typing import Optional
from google import genai
from news_agent.models import Article

logger = logging.getLogger(__name__)


class LLMService:
    """
    Service for interacting with the Google Gemini API.

    Summaries are best-effort: every failure is logged and reported as an
    empty string, so a briefing can always go out without them.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        self.api_key = api_key
        self.model = model
        self.client: Optional[genai.Client] = None
        try:
            self.client = genai.Client(api_key=api_key)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Failed to initialize Gemini client: %s", e)
            self.client = None

    _SUMMARY_PROMPT = """
        Task: Summarize the following news article for a busy executive.
        Infer the content from the title, source and URL if needed.

        Article Title: {title}
        Source: {source}
        Article URL: {link}

        Output Format:
        - Exactly 3 short bullet points, one per line, each starting with "- ".
        - Plain text only. No headings, no Markdown code blocks.
        """

    def _get_prompt(self, article: Article) -> str:
        """Returns the summary prompt for one article."""
        return self._SUMMARY_PROMPT.format(
            title=article["title"], source=article["source"], link=article["link"]
        )

    def summarize(self, article: Article) -> str:
        """Asks Gemini for a three-bullet summary of an article."""
        if not self.client:
            logger.error("Gemini client not initialized.")
            return ""

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=self._get_prompt(article),
            )
            return (response.text or "").strip()
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Gemini API error for %s: %s", article["link"], e)
            return ""
