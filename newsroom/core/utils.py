"""Utility functions for URL and text processing."""

from __future__ import annotations

import re
from urllib.parse import urlparse

SOURCE_NAME_MAPPING = {
    "nature": "Nature",
    "techcrunch": "TechCrunch",
    "arstechnica": "Ars Technica",
    "wired": "WIRED",
    "theverge": "The Verge",
    "venturebeat": "VentureBeat",
    "medium": "Medium",
    "github": "GitHub",
    "reuters": "Reuters",
    "bloomberg": "Bloomberg",
    "forbes": "Forbes",
    "cnbc": "CNBC",
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "google": "Google",
    "microsoft": "Microsoft",
}


def extract_source_from_url(url: str) -> str:
    """Extract a human friendly publication name from a URL.

    Removes common subdomains and TLDs, applies known mappings and
    returns a title-cased domain name. Returns an empty string if the
    URL has no host.
    """
    if not url:
        return ""

    domain = urlparse(url).netloc.lower()
    if not domain:
        return ""

    domain = re.sub(r"^(www\.|m\.|mobile\.)", "", domain)
    original_domain = domain
    domain = re.sub(r"\.(com|org|net|edu|gov|io|co\.uk|ai)$", "", domain)

    if domain in SOURCE_NAME_MAPPING:
        return SOURCE_NAME_MAPPING[domain]

    if ".substack" in original_domain:
        subdomain = original_domain.split(".")[0]
        return f"{subdomain.title()} (Substack)"

    main_domain = domain.split(".")[0]
    return main_domain.replace("-", " ").replace("_", " ").title()


def clean_source_name(source: str | None) -> str:
    """Drop the leading ``" - "`` some services put before a site name."""
    if not source:
        return ""
    return re.sub(r"^\s*-\s*", "", source).strip()


def collapse_whitespace(text: str, limit: int | None = None) -> str:
    """Collapse runs of whitespace and optionally cap the length."""
    cleaned = re.sub(r"\s+", " ", text or "").strip()
    if limit is not None and len(cleaned) > limit:
        cleaned = cleaned[:limit] + "..."
    return cleaned
