"""Unit tests for the config, storage, email and LLM services."""

import datetime
import json
import os
import smtplib
import tempfile
import unittest
from unittest.mock import ANY, MagicMock, patch

from google.api_core.exceptions import GoogleAPIError  # type: ignore

from news_agent.models import ConfigError, DispatchError, StorageError
from news_agent.services.config import JsonConfigSource
from news_agent.services.db import FirestoreArticleStore
from news_agent.services.email_service import EmailService
from news_agent.services.llm import LLMService


def make_article(link, keyword="ai", summary=""):
    return {
        "keyword": keyword,
        "title": f"Title {link}",
        "link": link,
        "summary": summary,
        "source": "Example News",
        "published_at": datetime.datetime(2026, 3, 1, 8, 30, tzinfo=datetime.timezone.utc),
        "discovered_at": None,
        "sent": False,
    }


class TestJsonConfigSource(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "config.json")
        self.source = JsonConfigSource(self.path, environ={"EMAIL_USER": "bot@example.com"})

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, data):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def test_defaults(self):
        self.write({"keywords": ["ai"]})

        config = self.source.load_config()

        self.assertEqual(config["regions"], ["JP"])
        self.assertEqual(config["language"], "ja")
        self.assertEqual(config["limit"], 3)
        self.assertEqual(config["delivery_hours"], [7])
        self.assertTrue(config["mark_excluded_as_sent"])
        self.assertEqual(config["mail_to"], "bot@example.com")

    def test_comma_separated_values_are_split_and_trimmed(self):
        self.write({"regions": " JP, US ,,", "delivery_hours": "7, 18"})

        config = self.source.load_config()

        self.assertEqual(config["regions"], ["JP", "US"])
        self.assertEqual(config["delivery_hours"], [7, 18])

    def test_keywords_drop_blank_entries(self):
        self.write({"keywords": [" Generative AI ", "", "   ", "Rust"]})

        self.assertEqual(self.source.get_keywords(), ["Generative AI", "Rust"])

    def test_file_is_reread_on_each_call(self):
        self.write({"limit": 2})
        self.assertEqual(self.source.load_config()["limit"], 2)

        self.write({"limit": 5})
        self.assertEqual(self.source.load_config()["limit"], 5)

    def test_missing_file_raises(self):
        with self.assertRaises(ConfigError):
            self.source.load_config()
        with self.assertRaises(ConfigError):
            self.source.get_keywords()

    def test_invalid_json_raises(self):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")

        with self.assertRaises(ConfigError):
            self.source.load_config()

    def test_invalid_values_raise(self):
        for bad in ({"limit": -1}, {"limit": "many"}, {"delivery_hours": [25]}):
            self.write(bad)
            with self.assertRaises(ConfigError, msg=str(bad)):
                self.source.load_config()

    def test_mark_excluded_as_sent_accepts_json_booleans(self):
        self.write({"mark_excluded_as_sent": False})
        self.assertFalse(self.source.load_config()["mark_excluded_as_sent"])

        self.write({"mark_excluded_as_sent": True})
        self.assertTrue(self.source.load_config()["mark_excluded_as_sent"])

    def test_mark_excluded_as_sent_rejects_non_booleans(self):
        for bad in ("false", "no", "0", 0, 1, None):
            self.write({"mark_excluded_as_sent": bad})
            with self.assertRaises(ConfigError, msg=repr(bad)):
                self.source.load_config()


class TestFirestoreArticleStore(unittest.TestCase):
    def setUp(self):
        patcher = patch("news_agent.services.db.firestore.Client")
        self.mock_client_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.mock_client_cls.return_value
        self.collection = self.client.collection.return_value
        self.batch = self.client.batch.return_value
        self.store = FirestoreArticleStore("test-project")

    def test_requires_project_id(self):
        with self.assertRaises(StorageError):
            FirestoreArticleStore(None)

    def test_get_id_is_deterministic(self):
        url = "http://example.com/article"
        self.assertEqual(self.store.get_id(url), self.store.get_id(url))
        self.assertEqual(len(self.store.get_id(url)), 32)  # MD5 is 32 hex chars

    def test_url_exists(self):
        self.collection.document.return_value.get.return_value.exists = True

        self.assertTrue(self.store.url_exists("http://a.com/1"))
        self.collection.document.assert_called_with(self.store.get_id("http://a.com/1"))

    def test_url_exists_wraps_api_errors(self):
        self.collection.document.return_value.get.side_effect = GoogleAPIError("down")

        with self.assertRaises(StorageError):
            self.store.url_exists("http://a.com/1")

    def test_save_articles_commits_in_batches(self):
        articles = [make_article(f"http://a.com/{i}") for i in range(401)]

        self.store.save_articles(articles)

        self.assertEqual(self.batch.set.call_count, 401)
        self.assertEqual(self.batch.commit.call_count, 2)
        stored = self.batch.set.call_args_list[0][0][1]
        self.assertEqual(stored["link"], "http://a.com/0")
        self.assertFalse(stored["sent"])

    def test_save_articles_wraps_api_errors(self):
        self.batch.commit.side_effect = GoogleAPIError("quota")

        with self.assertRaises(StorageError):
            self.store.save_articles([make_article("http://a.com/1")])

    def test_get_unsent_articles_sorted_by_discovery(self):
        older = make_article("http://a.com/old")
        older["discovered_at"] = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)
        newer = make_article("http://a.com/new", keyword=None)
        newer["discovered_at"] = datetime.datetime(2026, 1, 2, tzinfo=datetime.timezone.utc)
        snaps = []
        for data in (newer, older):
            snap = MagicMock()
            snap.to_dict.return_value = data
            snaps.append(snap)
        self.collection.where.return_value.stream.return_value = snaps

        articles = self.store.get_unsent_articles()

        self.collection.where.assert_called_once_with("sent", "==", False)
        self.assertEqual([a["link"] for a in articles], ["http://a.com/old", "http://a.com/new"])
        self.assertEqual(articles[1]["keyword"], "")

    def test_get_unsent_articles_wraps_api_errors(self):
        self.collection.where.return_value.stream.side_effect = GoogleAPIError("down")

        with self.assertRaises(StorageError):
            self.store.get_unsent_articles()

    def test_mark_as_sent_updates_flag(self):
        self.store.mark_as_sent([make_article("http://a.com/1"), make_article("http://a.com/2")])

        self.assertEqual(self.batch.update.call_count, 2)
        self.batch.update.assert_called_with(ANY, {"sent": True, "sent_at": ANY})
        self.batch.commit.assert_called_once()


class TestEmailService(unittest.TestCase):
    def setUp(self):
        self.config = {
            "regions": ["JP", "US"],
            "language": "ja",
            "limit": 3,
            "mail_to": "to@example.com",
            "user_name": "Alice",
            "delivery_hours": [7],
            "mark_excluded_as_sent": True,
            "max_age_hours": 24,
        }
        self.grouped = {
            "Generative AI": [make_article("http://a.com/1", "Generative AI", "Short take")],
            "uncategorized": [make_article("http://b.com/1", "")],
        }

    def sent_message(self, mock_smtp):
        instance = mock_smtp.return_value.__enter__.return_value
        self.assertTrue(instance.send_message.called)
        return instance.send_message.call_args[0][0]

    def test_send_briefing_formatting(self):
        service = EmailService("smtp.server", 587, "user", "pass")

        with patch("smtplib.SMTP") as mock_smtp:
            service.send_briefing(self.grouped, self.config)

            msg = self.sent_message(mock_smtp)
            html_content = msg.get_payload(0).get_payload(decode=True).decode("utf-8")

        self.assertEqual(msg["To"], "to@example.com")
        self.assertEqual(msg["Subject"], "[News] Generative AI, uncategorized")
        self.assertIn("# Generative AI", html_content)
        self.assertIn("# uncategorized", html_content)
        self.assertIn("Title http://a.com/1", html_content)
        self.assertIn("Short take", html_content)
        self.assertIn("Alice", html_content)
        self.assertIn("2 New Articles", html_content)
        self.assertLess(
            html_content.index("# Generative AI"), html_content.index("# uncategorized")
        )

    def test_subject_truncates_after_three_keywords(self):
        service = EmailService("smtp.server", 587, "user", "pass")
        grouped = {kw: [make_article(f"http://{kw}.com", kw)] for kw in "abcd"}

        self.assertEqual(service.build_subject(grouped), "[News] a, b, c...")

    def test_smtp_failure_raises_dispatch_error(self):
        service = EmailService("smtp.server", 587, "user", "pass")

        with patch("smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad")
            with self.assertRaises(DispatchError):
                service.send_briefing(self.grouped, self.config)

            # The connection is closed even though login failed
            mock_smtp.return_value.__exit__.assert_called_once()
            server.send_message.assert_not_called()

    def test_missing_recipient_raises_dispatch_error(self):
        service = EmailService("smtp.server", 587, "user", "pass")
        self.config["mail_to"] = ""

        with patch("smtplib.SMTP") as mock_smtp:
            with self.assertRaises(DispatchError):
                service.send_briefing(self.grouped, self.config)
            mock_smtp.assert_not_called()

    def test_summarizer_fills_missing_summaries_only(self):
        summarizer = MagicMock()
        summarizer.summarize.return_value = "- point one\n- point two"
        service = EmailService("smtp.server", 587, "user", "pass", summarizer=summarizer)

        html_content = service.generate_email_html(self.grouped, self.config, "2026/03/01 07:00")

        summarizer.summarize.assert_called_once_with(self.grouped["uncategorized"][0])
        self.assertIn("- point one<br>- point two", html_content)

    def test_summarizer_failure_does_not_block_rendering(self):
        summarizer = MagicMock()
        summarizer.summarize.side_effect = RuntimeError("quota exceeded")
        service = EmailService("smtp.server", 587, "user", "pass", summarizer=summarizer)

        html_content = service.generate_email_html(self.grouped, self.config, "2026/03/01 07:00")

        self.assertIn("Title http://b.com/1", html_content)


class TestLLMService(unittest.TestCase):
    @patch("news_agent.services.llm.genai.Client")
    def test_summarize_returns_text(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.return_value.text = " - a\n- b\n- c "
        service = LLMService("fake_key")

        summary = service.summarize(make_article("http://a.com/1"))

        self.assertEqual(summary, "- a\n- b\n- c")
        kwargs = mock_client_cls.return_value.models.generate_content.call_args[1]
        self.assertIn("Title http://a.com/1", kwargs["contents"])

    @patch("news_agent.services.llm.genai.Client")
    def test_summarize_returns_empty_on_api_error(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.side_effect = RuntimeError("boom")
        service = LLMService("fake_key")

        self.assertEqual(service.summarize(make_article("http://a.com/1")), "")

    @patch("news_agent.services.llm.genai.Client", side_effect=ValueError("bad key"))
    def test_summarize_without_client(self, _mock_client_cls):
        service = LLMService("fake_key")

        self.assertIsNone(service.client)
        self.assertEqual(service.summarize(make_article("http://a.com/1")), "")


if __name__ == "__main__":
    unittest.main()
