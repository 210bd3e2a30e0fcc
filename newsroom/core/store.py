"""In-process article store used by the CLI and tests."""

import logging
from typing import Dict, List

from newsroom.core.interfaces import ArticleStore
from newsroom.models.extraction import ExtractedArticle, StoreResult

logger = logging.getLogger(__name__)


class InMemoryArticleStore(ArticleStore):
    """Keeps articles in a dict keyed by resolved URL."""

    def __init__(self):
        self._articles: Dict[str, ExtractedArticle] = {}

    async def store_if_absent(self, article: ExtractedArticle) -> StoreResult:
        key = article.resolved_url
        if key in self._articles:
            logger.debug(f"Article already stored: {key}")
            return StoreResult.ALREADY_EXISTS
        self._articles[key] = article
        return StoreResult.STORED

    def articles(self) -> List[ExtractedArticle]:
        return list(self._articles.values())

    def __len__(self) -> int:
        return len(self._articles)
