"""Content generation flows built on the generation service."""

import json
import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from newsroom.clients.generation import GenerationService
from newsroom.clients.structured import pydantic_validator
from newsroom.models.generation import GenerationRequest

logger = logging.getLogger(__name__)

MIN_SUMMARY_INPUT_CHARS = 50
MAX_SUMMARY_INPUT_CHARS = 3000

SUMMARY_PROMPT = """You are an AI news curator writing for non-technical knowledge workers.

Given the article text below, write ONE clear, concise sentence that explains the
article's main takeaway for the everyday professional. Start directly with the
insight, avoid jargon, and focus on why it matters.

Article text:
{text}

One-sentence summary:"""

PITCHES_PROMPT = """You are a LinkedIn content strategist. Given the recent AI news
articles below, propose 8-10 post ideas that each connect 2-4 articles into one
narrative angle.

Respond with a JSON object {{"pitches": [...]}} where every pitch has "id",
"title" (starts with "Discusses", under 8 words), "summary" (1-2 sentences),
"bullets" (3-5 strings) and "supportingArticles" (title, source, date, url).

Articles:
{articles}"""

REGENERATE_TITLE_PROMPT = """Given this LinkedIn pitch and its supporting articles,
write a NEW and DIFFERENT title (starting with "Discusses", under 8 words) and a
1-2 sentence summary. Respond with a JSON object {{"title": ..., "summary": ...}}.

Current title: {title}
Current summary: {summary}

Supporting articles:
{articles}"""


class SupportingArticle(BaseModel):
    title: str
    source: str = ""
    date: str = ""
    url: str = ""


class Pitch(BaseModel):
    """One LinkedIn post idea."""

    id: str = Field(..., description="Unique identifier for this pitch")
    title: str = Field(..., description="Short title starting with 'Discusses'")
    summary: str = Field(..., description="1-2 sentence narrative angle")
    bullets: List[str] = Field(default_factory=list)
    supporting_articles: List[SupportingArticle] = Field(
        default_factory=list, alias="supportingArticles"
    )

    model_config = {"populate_by_name": True}


class PitchList(BaseModel):
    pitches: List[Pitch]


class PitchTitle(BaseModel):
    title: str
    summary: str


class ArticleSummarizer:
    """Writes one-sentence article summaries."""

    def __init__(
        self,
        generation: GenerationService,
        provider: Any = None,
        max_output_tokens: Optional[int] = 200,
    ):
        self.generation = generation
        self.provider = provider
        self.max_output_tokens = max_output_tokens

    async def summarize(self, text: str) -> str:
        """Summarize article text in one sentence.

        Returns an empty string when the text is too short to summarize.

        Raises:
            GenerationError: The backend call failed
        """
        if not text or len(text.strip()) < MIN_SUMMARY_INPUT_CHARS:
            logger.info("Article text too short to summarize")
            return ""

        request = GenerationRequest(
            prompt=SUMMARY_PROMPT.format(text=text[:MAX_SUMMARY_INPUT_CHARS]),
            max_output_tokens=self.max_output_tokens,
        )
        summary = await self.generation.generate_text(request, self.provider)
        return summary.strip()


def _format_articles(articles: List[SupportingArticle]) -> str:
    return "\n".join(
        f"- {a.title} ({a.source}, {a.date}) {a.url}".rstrip() for a in articles
    )


async def generate_linkedin_pitches(
    generation: GenerationService,
    articles: List[SupportingArticle],
    provider: Any = None,
) -> PitchList:
    """Propose LinkedIn post pitches connecting the given articles."""
    request = GenerationRequest(
        prompt=PITCHES_PROMPT.format(articles=_format_articles(articles)),
        temperature=0.7,
        max_output_tokens=4000,
    )
    return await generation.generate_json(
        pydantic_validator(PitchList), request, provider
    )


async def regenerate_pitch_title(
    generation: GenerationService, pitch: Pitch, provider: Any = None
) -> PitchTitle:
    """Ask for a fresh title and summary for an existing pitch."""
    request = GenerationRequest(
        prompt=REGENERATE_TITLE_PROMPT.format(
            title=pitch.title,
            summary=pitch.summary,
            articles=_format_articles(pitch.supporting_articles),
        ),
        temperature=0.9,
    )
    return await generation.generate_json(
        pydantic_validator(PitchTitle), request, provider
    )


def pitches_to_json(pitches: PitchList) -> str:
    return json.dumps(pitches.model_dump(by_alias=True), indent=2)
