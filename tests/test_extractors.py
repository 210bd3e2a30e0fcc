"""Tests for the Diffbot and HTML article extractors."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from newsroom.clients.diffbot import DiffbotExtractor
from newsroom.clients.errors import ExtractionError
from newsroom.clients.html_extractor import HtmlExtractor

ARTICLE_HTML = """
<html>
  <head>
    <title>Fallback title</title>
    <meta property="og:title" content="  Models get cheaper " />
    <meta property="og:image" content="https://example.com/hero.png" />
    <meta property="og:site_name" content="Example News" />
    <script>var tracking = true;</script>
  </head>
  <body>
    <nav>Home | About</nav>
    <article>
      <p>Prices for frontier models fell again this week.</p>
      <p>Analysts expect the trend to continue.</p>
    </article>
    <footer>Copyright</footer>
  </body>
</html>
"""


class TestDiffbotParsing:
    def test_parse_article(self):
        data = {
            "objects": [
                {
                    "title": "Models get cheaper",
                    "text": "Prices fell.",
                    "siteName": " - example.com",
                    "pageUrl": "https://example.com/final",
                    "date": "Mon, 06 Jan 2025 10:00:00 GMT",
                    "images": [
                        {"url": "https://example.com/thumb.png"},
                        {"url": "https://example.com/hero.png", "primary": True},
                    ],
                }
            ]
        }

        article = DiffbotExtractor.parse_article(data, "https://t.co/abc")

        assert article.title == "Models get cheaper"
        assert article.text == "Prices fell."
        assert article.source == "example.com"
        assert article.image_url == "https://example.com/hero.png"
        assert article.resolved_url == "https://example.com/final"
        assert article.date == "Mon, 06 Jan 2025 10:00:00 GMT"

    def test_parse_article_defaults_to_request_url(self):
        article = DiffbotExtractor.parse_article(
            {"objects": [{"text": "Body"}]}, "https://example.com/a"
        )

        assert article.resolved_url == "https://example.com/a"
        assert article.image_url is None

    @pytest.mark.parametrize(
        "data",
        [{"error": "Could not download page", "errorCode": 404}, {"objects": []}, {}],
    )
    def test_parse_article_errors(self, data):
        with pytest.raises(ExtractionError) as exc_info:
            DiffbotExtractor.parse_article(data, "https://example.com/a")

        assert exc_info.value.url == "https://example.com/a"

    @pytest.mark.asyncio
    async def test_extract_sends_token_and_fields(self, mock_settings):
        extractor = DiffbotExtractor(mock_settings.diffbot_token, settings=mock_settings)
        with patch.object(
            extractor,
            "_get_json",
            new=AsyncMock(return_value={"objects": [{"text": "Body"}]}),
        ) as get_json:
            article = await extractor.extract("https://example.com/a")

        assert article.text == "Body"
        endpoint, params, url = get_json.call_args.args
        assert endpoint == "https://api.diffbot.com/v3/article"
        assert params["token"] == "test_token"
        assert params["fields"] == DiffbotExtractor.fields
        assert extractor.timeout == mock_settings.extraction_timeout

    @pytest.mark.asyncio
    async def test_extract_without_token(self):
        extractor = DiffbotExtractor(None)

        with pytest.raises(ExtractionError):
            await extractor.extract("https://example.com/a")

    @pytest.mark.asyncio
    async def test_timeout_becomes_extraction_error(self):
        extractor = DiffbotExtractor("token", timeout=1)
        with patch.object(aiohttp.ClientSession, "get", side_effect=asyncio.TimeoutError()):
            with pytest.raises(ExtractionError) as exc_info:
                await extractor.extract("https://example.com/a")

        assert "timed out" in str(exc_info.value)


class TestHtmlExtractor:
    def test_parse_html(self):
        article = HtmlExtractor().parse_html(ARTICLE_HTML, "https://example.com/a")

        assert article.title == "Models get cheaper"
        assert article.text == (
            "Prices for frontier models fell again this week. "
            "Analysts expect the trend to continue."
        )
        assert article.source == "Example News"
        assert article.image_url == "https://example.com/hero.png"
        assert article.resolved_url == "https://example.com/a"

    def test_parse_html_without_article_tag(self):
        html = "<html><head><title>Plain</title></head><body><div>Just text.</div></body></html>"

        article = HtmlExtractor().parse_html(html, "https://www.techcrunch.com/x")

        assert article.title == "Plain"
        assert "Just text." in article.text
        assert article.source == "TechCrunch"

    def test_parse_html_truncates_long_pages(self):
        html = f"<article>{'word ' * 100}</article>"

        article = HtmlExtractor(max_chars=20).parse_html(html, "https://example.com/a")

        assert article.text == "word word word word ..."

    def test_parse_html_without_text_raises(self):
        with pytest.raises(ExtractionError):
            HtmlExtractor().parse_html("<html><script>x()</script></html>", "https://example.com/a")

    @pytest.mark.asyncio
    async def test_extract_uses_final_url(self):
        extractor = HtmlExtractor()
        with patch.object(
            extractor,
            "_fetch",
            new=AsyncMock(return_value=(ARTICLE_HTML, "https://example.com/final")),
        ):
            article = await extractor.extract("https://t.co/abc")

        assert article.resolved_url == "https://example.com/final"
