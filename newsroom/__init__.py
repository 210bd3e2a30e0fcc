"""Newsroom: LLM generation and rate-limited article extraction for newsletter curation."""

__version__ = "1.0.0"
