"""
Email service module for generating and sending news briefings.

This module provides the EmailService class which handles:
- Generating HTML content for a briefing, one section per keyword
- Optionally adding AI summaries to the articles
- Sending the briefing via SMTP
"""

import datetime
import html
import smtplib
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, List, Optional
from news_agent.models import Article, Config, DispatchError
from news_agent.services.base import Summarizer

logger = logging.getLogger(__name__)


class EmailService:
    """Service for handling briefing generation and sending."""

    _EMAIL_STYLES = {
        "body": "font-family: -apple-system, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; "
        "background-color: #f6f6f6; padding: 20px; margin: 0;",
        "container": "max-width: 600px; margin: 0 auto; background: #ffffff; border-radius: 8px;",
        "header": "background-color: #1a73e8; padding: 20px; color: white;",
        "header_h1": "margin: 0; font-size: 20px;",
        "header_p": "margin: 5px 0 0; opacity: 0.9; font-size: 13px;",
        "section": "padding: 20px;",
        "keyword": "background: #e8f0fe; color: #1967d2; padding: 8px 12px; border-radius: 6px; "
        "font-size: 14px; display: inline-block;",
        "article": "padding: 8px 0; border-bottom: 1px solid #f1f3f4;",
        "link": "text-decoration: none; color: #202124; font-weight: 600; font-size: 15px;",
        "meta": "color: #5f6368; font-size: 12px; margin-top: 4px;",
        "summary": "font-size: 13px; color: #444; margin-top: 5px;",
        "footer": "background: #f8f9fa; padding: 15px 20px; text-align: center; "
        "font-size: 11px; color: #9aa0a6;",
    }

    def __init__(
        self,
        smtp_server: str,
        smtp_port: int,
        sender_email: str,
        sender_password: str,
        summarizer: Optional[Summarizer] = None,
    ):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.sender_email = sender_email
        self.sender_password = sender_password
        self.summarizer = summarizer

    def _summary_for(self, item: Article) -> str:
        if item["summary"] or not self.summarizer:
            return item["summary"]
        try:
            return self.summarizer.summarize(item)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Summary failed for %s: %s", item["link"], e)
            return ""

    def _render_article(self, item: Article) -> str:
        published = item["published_at"]
        meta = html.escape(item["source"])
        if published:
            meta += f" &bull; {published.strftime('%m/%d %H:%M')}"

        summary = self._summary_for(item)
        summary_html = ""
        if summary:
            summary_html = (
                f"<p style=\"{self._EMAIL_STYLES['summary']}\">"
                f"{html.escape(summary).replace(chr(10), '<br>')}</p>"
            )

        return f"""
            <div style="{self._EMAIL_STYLES['article']}">
                <a href="{html.escape(item['link'], quote=True)}"
                   style="{self._EMAIL_STYLES['link']}">{html.escape(item['title'])}</a>
                <div style="{self._EMAIL_STYLES['meta']}">{meta}</div>
                {summary_html}
            </div>
            """

    def _render_section(self, keyword: str, items: List[Article]) -> str:
        """Renders one keyword section of the briefing."""
        if not items:
            return ""

        section_html = (
            f"<div style='margin-top: 20px;'>"
            f"<h3 style=\"{self._EMAIL_STYLES['keyword']}\"># {html.escape(keyword)}</h3>"
        )
        for item in items:
            section_html += self._render_article(item)
        return section_html + "</div>"

    def generate_email_html(
        self, grouped: Dict[str, List[Article]], config: Config, date_str: str
    ) -> str:
        """Generates the HTML content for the briefing."""
        total_articles = sum(len(items) for items in grouped.values())
        user_name = html.escape(config["user_name"])
        html_content = f"""
        <html>
        <body style="{self._EMAIL_STYLES['body']}">
            <div style="{self._EMAIL_STYLES['container']}">
                <div style="{self._EMAIL_STYLES['header']}">
                    <h1 style="{self._EMAIL_STYLES['header_h1']}">News Briefing</h1>
                    <p style="{self._EMAIL_STYLES['header_p']}">{date_str} | {total_articles} New Articles</p>
                </div>
                <div style="{self._EMAIL_STYLES['section']}">
                    <p>Hi <strong>{user_name}</strong>,<br>
                    Here are the latest updates based on your interests.</p>
        """

        for keyword, items in grouped.items():
            html_content += self._render_section(keyword, items)

        regions = ", ".join(config["regions"])
        hours = ", ".join(str(h) for h in config["delivery_hours"])
        html_content += f"""
                </div>
                <div style="{self._EMAIL_STYLES['footer']}">
                    Region: {html.escape(regions)} | Delivery: {hours}
                </div>
            </div>
        </body>
        </html>
        """
        return html_content

    def build_subject(self, grouped: Dict[str, List[Article]]) -> str:
        """Lists the first three keywords of the briefing."""
        keywords = list(grouped)
        if not keywords:
            return "[News] Briefing"
        subject = f"[News] {', '.join(keywords[:3])}"
        if len(keywords) > 3:
            subject += "..."
        return subject

    def send_briefing(self, grouped: Dict[str, List[Article]], config: Config) -> None:
        """Formats and sends the briefing via email."""
        recipient = config["mail_to"]
        if not recipient:
            raise DispatchError("No recipient configured for the briefing.")

        date_str = datetime.datetime.now().strftime("%Y/%m/%d %H:%M")
        html_content = self.generate_email_html(grouped, config, date_str)

        msg = MIMEMultipart()
        msg["From"] = self.sender_email
        msg["To"] = recipient
        msg["Subject"] = self.build_subject(grouped)
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls()
                server.login(self.sender_email, self.sender_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchError(f"Email failed: {e}") from e
        logger.info("Briefing sent to %s.", recipient)
