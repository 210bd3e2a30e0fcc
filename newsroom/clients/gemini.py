"""Gemini ``generateContent`` REST client."""

import logging
from typing import Any, Dict, Optional

from newsroom.clients.base import DEFAULT_TIMEOUT, TextCompletionClient
from newsroom.clients.errors import EmptyOutputError
from newsroom.models.generation import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


def normalize_gemini_model(raw: Optional[str]) -> str:
    """Strip the ``models/`` and ``googleai/`` prefixes other tools use."""
    model = (raw or "").strip()
    for prefix in ("models/", "googleai/"):
        if model.startswith(prefix):
            model = model[len(prefix):]
    return model or DEFAULT_GEMINI_MODEL


def extract_gemini_text(data: Dict[str, Any]) -> str:
    """Join the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(
        part.get("text", "") for part in parts if isinstance(part.get("text"), str)
    ).strip()


class GeminiClient(TextCompletionClient):
    """Client for the Gemini REST API."""

    token_param = "maxOutputTokens"
    alternate_token_param = None
    supports_json_mode = True

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        fallback_model: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(
            api_key,
            normalize_gemini_model(model),
            base_url,
            fallback_model=fallback_model,
            timeout=timeout,
        )
        self.headers = {
            "x-goog-api-key": api_key or "",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings) -> "GeminiClient":
        """Create a client from application settings."""
        return cls(
            settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            fallback_model=settings.gemini_fallback_model,
            timeout=settings.llm_timeout,
        )

    @property
    def provider_name(self) -> str:
        return "gemini"

    def resolve_model(self, model_id: Optional[str] = None) -> str:
        return normalize_gemini_model(model_id or self.default_model)

    def _generation_config(
        self, request: GenerationRequest, token_param: str, json_mode: bool
    ) -> Dict[str, Any]:
        config: Dict[str, Any] = {}
        if request.temperature is not None:
            config["temperature"] = request.temperature
        if request.max_output_tokens:
            config[token_param] = request.max_output_tokens
        if json_mode:
            config["responseMimeType"] = "application/json"
        return config

    async def _complete(
        self,
        request: GenerationRequest,
        model: str,
        token_param: str,
        json_mode: bool,
    ) -> str:
        url = f"{self.base_url}/models/{model}:generateContent"
        timeout = self.request_timeout(request)
        config = self._generation_config(request, token_param, json_mode)
        system = (request.system_instruction or "").strip()

        body: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": config,
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}

        first = await self._post_json(url, body, self.headers, timeout)
        text = extract_gemini_text(first)

        # Some model variants return nothing when given a systemInstruction;
        # retry once with the system text inlined into the user turn.
        if not text and system:
            logger.debug(f"Empty Gemini output from {model}, retrying with inline system")
            inline = {
                "contents": [
                    {"role": "user", "parts": [{"text": f"{system}\n\n{request.prompt}"}]}
                ],
                "generationConfig": config,
            }
            second = await self._post_json(url, inline, self.headers, timeout)
            text = extract_gemini_text(second)

        if not text:
            raise self._empty_output(first, model)
        return text

    @staticmethod
    def _empty_output(data: Dict[str, Any], model: str) -> EmptyOutputError:
        candidates = data.get("candidates") or []
        finish_reason = candidates[0].get("finishReason") if candidates else None
        feedback = data.get("promptFeedback") or {}
        logger.warning(
            f"Gemini empty output: model={model} finish_reason={finish_reason} "
            f"candidates={len(candidates)} feedback={feedback}"
        )
        return EmptyOutputError(
            f"Gemini returned empty output (model='{model}'). This is often caused "
            "by an unavailable model name, missing model access, a safety block, "
            "or an API key restriction.",
            model=model,
            finish_reason=finish_reason,
            block_reason=feedback.get("blockReason"),
            feedback=feedback,
        )
