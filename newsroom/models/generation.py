"""Request and provider models for LLM generation."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    """Selectable LLM backend."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


def normalize_provider(value: Any = None) -> Provider:
    """Resolve a provider tag. Anything but ``secondary`` means primary."""
    if value is Provider.SECONDARY or value == Provider.SECONDARY.value:
        return Provider.SECONDARY
    return Provider.PRIMARY


class GenerationRequest(BaseModel):
    """A single prompt sent to a text completion backend."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="User prompt")
    system_instruction: Optional[str] = Field(
        None, description="System instruction sent alongside the prompt"
    )
    model_id: Optional[str] = Field(
        None, description="Backend model id (client default when unset)"
    )
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_output_tokens: Optional[int] = Field(None, gt=0)
    timeout: Optional[float] = Field(
        None, gt=0.0, description="Per-call timeout in seconds"
    )

    def with_changes(self, **changes: Any) -> "GenerationRequest":
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=changes)
