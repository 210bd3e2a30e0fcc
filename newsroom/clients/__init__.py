"""Clients for LLM backends and article extraction services."""

from .errors import (
    BackendError,
    ConfigurationError,
    EmptyOutputError,
    ExtractionError,
    GenerationError,
    GenerationTimeout,
    ParseError,
    SchemaValidationError,
    TransportError,
)
from .generation import GenerationService
from .structured import JsonCompletionClient, parse_json_lenient, pydantic_validator

__all__ = [
    "GenerationService",
    "JsonCompletionClient",
    "parse_json_lenient",
    "pydantic_validator",
    "GenerationError",
    "ConfigurationError",
    "TransportError",
    "GenerationTimeout",
    "BackendError",
    "EmptyOutputError",
    "ParseError",
    "SchemaValidationError",
    "ExtractionError",
]
