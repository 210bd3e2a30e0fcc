"""Diffbot article API client."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from newsroom.clients.errors import ExtractionError
from newsroom.core.interfaces import ArticleExtractor
from newsroom.core.utils import clean_source_name
from newsroom.models.extraction import ExtractedArticle

logger = logging.getLogger(__name__)


class DiffbotExtractor(ArticleExtractor):
    """Extracts article text and metadata with the Diffbot v3 article API.

    Diffbot enforces a request-rate ceiling per token, which is why callers
    run extractions one at a time through the extraction queue.
    """

    fields = "title,text,siteName,pageUrl,images,date"

    def __init__(self, token: Optional[str], timeout: float = 30.0, settings=None):
        """Initialize Diffbot client.

        Args:
            token: Diffbot API token
            timeout: Request timeout in seconds
            settings: Settings instance for configuration values
        """
        self.token = token
        self.base_url = "https://api.diffbot.com/v3"
        self.headers = {"Accept": "application/json"}
        self.timeout = settings.extraction_timeout if settings else timeout

    @property
    def provider_name(self) -> str:
        return "diffbot"

    async def extract(self, url: str) -> ExtractedArticle:
        if not self.token:
            raise ExtractionError("Diffbot token is not configured.", url=url)

        params = {"token": self.token, "url": url, "fields": self.fields}
        data = await self._get_json(f"{self.base_url}/article", params, url)
        return self.parse_article(data, url)

    async def _get_json(
        self, endpoint: str, params: Dict[str, str], url: str
    ) -> Dict[str, Any]:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    endpoint,
                    headers=self.headers,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(
                            f"Diffbot API error for {url}: {response.status} - {error_text}"
                        )
                        raise ExtractionError(
                            f"Diffbot API error: {response.status} - {error_text}",
                            url=url,
                            status=response.status,
                        )
                    return await response.json()

        except asyncio.TimeoutError as e:
            raise ExtractionError(
                f"Diffbot request timed out after {self.timeout:g}s", url=url
            ) from e
        except aiohttp.ClientError as e:
            raise ExtractionError(f"Network error calling Diffbot: {e}", url=url) from e
        except ValueError as e:
            raise ExtractionError(f"Malformed Diffbot response: {e}", url=url) from e

    @staticmethod
    def parse_article(data: Dict[str, Any], url: str) -> ExtractedArticle:
        """Map the first object of a Diffbot response onto an article."""
        if data.get("error"):
            raise ExtractionError(f"Diffbot error: {data['error']}", url=url)

        objects = data.get("objects") or []
        if not objects:
            raise ExtractionError("Diffbot did not return article content.", url=url)

        article = objects[0]
        images = article.get("images") or []
        primary_image = next((img for img in images if img.get("primary")), None)

        return ExtractedArticle(
            text=article.get("text") or "",
            title=article.get("title") or "",
            source=clean_source_name(
                article.get("siteName") or article.get("publisher") or ""
            ),
            image_url=primary_image.get("url") if primary_image else None,
            resolved_url=article.get("pageUrl") or url,
            date=article.get("date"),
        )
