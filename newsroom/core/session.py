"""Per-session wiring of the generation service and extraction queue."""

import logging
from typing import Any, Optional

from newsroom.clients.diffbot import DiffbotExtractor
from newsroom.clients.generation import GenerationService
from newsroom.clients.html_extractor import HtmlExtractor
from newsroom.core.extraction_queue import ExtractionQueue
from newsroom.core.flows import ArticleSummarizer
from newsroom.core.interfaces import ArticleExtractor, ArticleStore
from newsroom.core.store import InMemoryArticleStore
from newsroom.models.settings import Settings

logger = logging.getLogger(__name__)


def build_extractor(settings: Settings) -> ArticleExtractor:
    """Use Diffbot when a token is configured, direct page fetch otherwise."""
    if settings.diffbot_token:
        return DiffbotExtractor(settings.diffbot_token, settings=settings)
    logger.info("No Diffbot token - extracting articles from page HTML")
    return HtmlExtractor(
        timeout=settings.extraction_timeout, user_agent=settings.default_user_agent
    )


class NewsroomSession:
    """Owns the collaborators of one editing session.

    Create one when the session starts and close it (or use ``async with``)
    when it ends; closing cancels any queued or in-flight work.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        generation: Optional[GenerationService] = None,
        extractor: Optional[ArticleExtractor] = None,
        store: Optional[ArticleStore] = None,
        provider: Any = None,
    ):
        self.settings = settings or Settings()
        self.generation = generation or GenerationService.from_settings(self.settings)
        self.extractor = extractor or build_extractor(self.settings)
        self.store = store if store is not None else InMemoryArticleStore()
        self.summarizer = ArticleSummarizer(self.generation, provider=provider)
        self.queue = ExtractionQueue(
            self.extractor,
            self.summarizer.summarize,
            store=self.store,
            delay=self.settings.extraction_delay,
        )

    async def close(self) -> None:
        await self.queue.close()

    async def __aenter__(self) -> "NewsroomSession":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
