"""Interfaces for the collaborators the extraction queue depends on."""

from abc import ABC, abstractmethod

from newsroom.models.extraction import ExtractedArticle, StoreResult


class ArticleExtractor(ABC):
    """An article text extraction service."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """A unique name for this extractor, e.g. 'diffbot'."""
        pass

    @abstractmethod
    async def extract(self, url: str) -> ExtractedArticle:
        """
        Fetch the full text and metadata of the article at ``url``.

        Args:
            url: Article URL

        Returns:
            Extracted article

        Raises:
            ExtractionError: The service failed or returned unusable content
        """
        pass


class ArticleStore(ABC):
    """Persistence sink for extracted and summarized articles."""

    @abstractmethod
    async def store_if_absent(self, article: ExtractedArticle) -> StoreResult:
        """
        Store ``article`` unless one with the same URL already exists.

        Args:
            article: Article with its summary filled in

        Returns:
            Outcome of the store attempt
        """
        pass
