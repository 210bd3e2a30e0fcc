"""OpenAI chat completions client."""

import logging
from typing import Any, Dict, List, Optional

from newsroom.clients.base import DEFAULT_TIMEOUT, TextCompletionClient
from newsroom.clients.errors import EmptyOutputError
from newsroom.models.generation import GenerationRequest

logger = logging.getLogger(__name__)


class OpenAIClient(TextCompletionClient):
    """Client for OpenAI-compatible ``/chat/completions`` endpoints.

    Newer model families reject ``max_tokens`` and want
    ``max_completion_tokens``; older ones the reverse. The client leads with
    ``max_completion_tokens`` and the base class retries once with the
    alternate name when the backend refuses it.
    """

    token_param = "max_completion_tokens"
    alternate_token_param = "max_tokens"
    supports_json_mode = True

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        fallback_model: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        token_param: Optional[str] = None,
        alternate_token_param: Optional[str] = None,
    ):
        super().__init__(
            api_key,
            model,
            base_url,
            fallback_model=fallback_model,
            timeout=timeout,
            token_param=token_param,
            alternate_token_param=alternate_token_param,
        )
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings) -> "OpenAIClient":
        """Create a client from application settings."""
        return cls(
            settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            fallback_model=settings.openai_fallback_model,
            timeout=settings.llm_timeout,
            token_param=settings.openai_token_param,
            alternate_token_param=settings.openai_alternate_token_param or "",
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    def build_payload(
        self,
        request: GenerationRequest,
        model: str,
        token_param: str,
        json_mode: bool,
    ) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if request.system_instruction:
            messages.append({"role": "system", "content": request.system_instruction})
        messages.append({"role": "user", "content": request.prompt})

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_output_tokens:
            payload[token_param] = request.max_output_tokens
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def _complete(
        self,
        request: GenerationRequest,
        model: str,
        token_param: str,
        json_mode: bool,
    ) -> str:
        payload = self.build_payload(request, model, token_param, json_mode)
        data = await self._post_json(
            f"{self.base_url}/chat/completions",
            payload,
            self.headers,
            self.request_timeout(request),
        )

        choices = data.get("choices") or []
        if not choices:
            raise EmptyOutputError(
                f"OpenAI returned no choices (model='{model}')", model=model
            )

        choice = choices[0]
        message = choice.get("message") or {}
        content = message.get("content") or ""
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )

        text = content.strip()
        if not text:
            refusal = message.get("refusal")
            raise EmptyOutputError(
                f"OpenAI returned empty output (model='{model}')",
                model=model,
                finish_reason=choice.get("finish_reason"),
                block_reason="refusal" if refusal else None,
                feedback={"refusal": refusal} if refusal else None,
            )
        return text
