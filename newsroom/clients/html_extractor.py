"""Direct page fetch extractor used when no extraction API is configured."""

import asyncio
import logging

import aiohttp
from bs4 import BeautifulSoup

from newsroom.clients.errors import ExtractionError
from newsroom.core.interfaces import ArticleExtractor
from newsroom.core.utils import collapse_whitespace, extract_source_from_url
from newsroom.models.extraction import ExtractedArticle

logger = logging.getLogger(__name__)

CONTENT_SELECTORS = [
    "article",
    ".article-content",
    ".post-content",
    ".entry-content",
    "main",
]
NOISE_TAGS = ["script", "style", "nav", "footer", "aside", "iframe"]


class HtmlExtractor(ArticleExtractor):
    """Fetches a page and pulls the article body out with BeautifulSoup."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "Mozilla/5.0 (compatible; Newsroom-Bot/1.0)",
        max_chars: int = 8000,
    ):
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}
        self.max_chars = max_chars

    @property
    def provider_name(self) -> str:
        return "html"

    async def extract(self, url: str) -> ExtractedArticle:
        html, final_url = await self._fetch(url)
        return self.parse_html(html, final_url)

    async def _fetch(self, url: str):
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    headers=self.headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise ExtractionError(
                            f"Failed to fetch article: HTTP {response.status}",
                            url=url,
                            status=response.status,
                        )
                    try:
                        html = await response.text()
                    except UnicodeDecodeError:
                        raw_content = await response.read()
                        html = raw_content.decode("latin-1", errors="ignore")
                    return html, str(response.url)

        except asyncio.TimeoutError as e:
            raise ExtractionError(
                f"Article fetch timed out after {self.timeout:g}s", url=url
            ) from e
        except aiohttp.ClientError as e:
            raise ExtractionError(f"Network error fetching article: {e}", url=url) from e

    def parse_html(self, html: str, url: str) -> ExtractedArticle:
        """Extract title and body text from an HTML document."""
        soup = BeautifulSoup(html, "html.parser")

        for tag in soup(NOISE_TAGS):
            tag.decompose()

        title = ""
        og_title = soup.find("meta", attrs={"property": "og:title"})
        if og_title and og_title.get("content"):
            title = og_title["content"].strip()
        elif soup.title and soup.title.string:
            title = soup.title.string.strip()

        image = soup.find("meta", attrs={"property": "og:image"})
        site_name = soup.find("meta", attrs={"property": "og:site_name"})

        body = None
        for selector in CONTENT_SELECTORS:
            node = soup.select_one(selector)
            if node:
                body = node.get_text(" ", strip=True)
                break
        if not body:
            body = soup.get_text(" ", strip=True)

        text = collapse_whitespace(body, limit=self.max_chars)
        if not text:
            raise ExtractionError("Page contained no article text.", url=url)

        return ExtractedArticle(
            text=text,
            title=title,
            source=(site_name.get("content", "").strip() if site_name else "")
            or extract_source_from_url(url),
            image_url=image.get("content") if image else None,
            resolved_url=url,
        )
