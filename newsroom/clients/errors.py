"""Exceptions raised by the generation and extraction clients."""

from typing import Any, Dict, Optional


class GenerationError(Exception):
    """Base class for every failure surfaced by the generation layer."""


class ConfigurationError(GenerationError):
    """A backend was called without the credentials it needs."""


class TransportError(GenerationError):
    """Network failure or non-success HTTP status from a backend."""


class GenerationTimeout(TransportError):
    """The backend did not answer within the allowed time."""

    def __init__(self, message: str, timeout: Optional[float] = None):
        super().__init__(message)
        self.timeout = timeout


class BackendError(TransportError):
    """The backend answered with an error status."""

    def __init__(
        self,
        status: int,
        message: str,
        param: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message
        self.param = param
        self.code = code

    def rejects_parameter(self, name: str) -> bool:
        """Whether this error is the backend refusing parameter ``name``."""
        if self.status != 400:
            return False
        if self.param and self.param != name:
            return False
        if self.param == name or self.code == "unsupported_parameter":
            return True
        text = self.message.lower()
        return name.lower() in text or "unsupported parameter" in text


class EmptyOutputError(GenerationError):
    """The backend responded but produced no usable text."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        finish_reason: Optional[str] = None,
        block_reason: Optional[str] = None,
        feedback: Optional[Dict[str, Any]] = None,
    ):
        details = []
        if finish_reason:
            details.append(f"finish_reason={finish_reason}")
        if block_reason:
            details.append(f"block_reason={block_reason}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)
        self.model = model
        self.finish_reason = finish_reason
        self.block_reason = block_reason
        self.feedback = feedback or {}


class ParseError(GenerationError):
    """No JSON value could be recovered from the model output."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class SchemaValidationError(GenerationError):
    """Parsed JSON did not satisfy the caller's validator."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class ExtractionError(Exception):
    """The extraction service failed or returned unusable content."""

    def __init__(self, message: str, url: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status
