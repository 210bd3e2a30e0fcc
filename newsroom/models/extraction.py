"""Data models for article extraction and the extraction queue."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ExtractionState(str, Enum):
    """Lifecycle of a queued article."""

    QUEUED = "queued"
    EXTRACTING = "extracting"
    TEXT_READY = "text_ready"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


class StoreResult(str, Enum):
    """Outcome of handing an extracted article to the persistence sink."""

    STORED = "stored"
    ALREADY_EXISTS = "already_exists"
    ERROR = "error"


class ExtractedArticle(BaseModel):
    """Article content returned by an extraction service."""

    text: str = Field("", description="Full article text")
    title: str = Field("", description="Article title")
    source: str = Field("", description="Publication name")
    image_url: Optional[str] = Field(None, description="Primary image")
    resolved_url: str = Field(..., description="Canonical URL after redirects")
    date: Optional[str] = Field(None, description="Publication date as reported")
    summary: Optional[str] = Field(None, description="Generated summary")


@dataclass
class ExtractionItem:
    """Runtime state of one URL passing through the extraction queue."""

    source_url: str
    state: ExtractionState = ExtractionState.QUEUED
    extracted_text: Optional[str] = None
    summary: Optional[str] = None
    error: Optional[str] = None
    bypass_pause: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in (ExtractionState.DONE, ExtractionState.FAILED)
