"""Provider-independent entry point for text and JSON generation."""

import hashlib
import logging
import secrets
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from newsroom.clients.gemini import GeminiClient
from newsroom.clients.openai import OpenAIClient
from newsroom.clients.structured import JsonCompletionClient
from newsroom.models.generation import GenerationRequest, Provider, normalize_provider

logger = logging.getLogger(__name__)

T = TypeVar("T")


def short_hash(value: Optional[str]) -> Optional[str]:
    """First 12 hex chars of the SHA-256 of ``value``."""
    if not value:
        return None
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


class GenerationService:
    """Dispatches generation calls to the backend selected by a provider tag."""

    def __init__(
        self,
        clients: Dict[Provider, JsonCompletionClient],
        log_requests: bool = True,
    ):
        """Initialize the service.

        Args:
            clients: Structured client per provider; each exposes its text
                client as ``text_client``
            log_requests: Emit start/ok/error log records for every call
        """
        if Provider.PRIMARY not in clients:
            raise ValueError("A primary provider client is required")
        self.clients = clients
        self.log_requests = log_requests

    @classmethod
    def from_settings(cls, settings) -> "GenerationService":
        """Create a service with OpenAI as primary and Gemini as secondary."""
        clients = {}
        for provider, text_client in (
            (Provider.PRIMARY, OpenAIClient.from_settings(settings)),
            (Provider.SECONDARY, GeminiClient.from_settings(settings)),
        ):
            clients[provider] = JsonCompletionClient(
                text_client,
                repair_min_tokens=settings.repair_min_output_tokens,
                deadline=settings.llm_json_deadline,
            )
        return cls(clients, log_requests=settings.ai_log)

    def client_for(self, provider: Any = None) -> JsonCompletionClient:
        resolved = normalize_provider(provider)
        return self.clients.get(resolved) or self.clients[Provider.PRIMARY]

    async def generate_text(
        self, request: GenerationRequest, provider: Any = None
    ) -> str:
        """Generate free text with the selected provider.

        Raises:
            GenerationError: Propagated unchanged from the backend client
        """
        client = self.client_for(provider).text_client
        return await self._run(
            "generate_text", provider, client, request, client.generate_text(request)
        )

    async def generate_json(
        self,
        validator: Callable[[Any], T],
        request: GenerationRequest,
        provider: Any = None,
    ) -> T:
        """Generate a JSON value accepted by ``validator``.

        Raises:
            GenerationError: Propagated unchanged from the structured client
        """
        structured = self.client_for(provider)
        return await self._run(
            "generate_json",
            provider,
            structured.text_client,
            request,
            structured.generate_json(validator, request),
        )

    async def _run(self, operation, provider, client, request, call):
        request_id = secrets.token_hex(8)
        provider_tag = normalize_provider(provider).value
        model = client.resolve_model(request.model_id)
        started_at = time.monotonic()

        if self.log_requests:
            logger.info(
                f"[ai.{operation}.start] request_id={request_id} provider={provider_tag} "
                f"backend={client.provider_name} model={model} "
                f"prompt_chars={len(request.prompt)} "
                f"system_chars={len(request.system_instruction or '')} "
                f"prompt_hash={short_hash(request.prompt)} "
                f"system_hash={short_hash(request.system_instruction)} "
                f"temperature={request.temperature} "
                f"max_output_tokens={request.max_output_tokens}"
            )

        try:
            result = await call
        except Exception as e:
            if self.log_requests:
                logger.error(
                    f"[ai.{operation}.error] request_id={request_id} "
                    f"provider={provider_tag} model={model} "
                    f"elapsed_ms={(time.monotonic() - started_at) * 1000:.0f} "
                    f"error={type(e).__name__}: {e}"
                )
            raise

        if self.log_requests:
            details = ""
            if isinstance(result, str):
                details = f" output_chars={len(result)} output_hash={short_hash(result)}"
            logger.info(
                f"[ai.{operation}.ok] request_id={request_id} provider={provider_tag} "
                f"model={model} "
                f"elapsed_ms={(time.monotonic() - started_at) * 1000:.0f}{details}"
            )
        return result
