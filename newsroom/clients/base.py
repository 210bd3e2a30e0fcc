"""Shared behaviour for text completion backends."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp

from newsroom.clients.errors import (
    BackendError,
    ConfigurationError,
    GenerationTimeout,
    TransportError,
)
from newsroom.models.generation import GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0


class TextCompletionClient(ABC):
    """Sends one prompt to an LLM backend and returns the raw text.

    Subclasses build the backend payload in ``_complete``. This class owns the
    parts every backend shares: credential checks, the HTTP round trip with
    its timeout, error decoding and the single retry that swaps the name of
    the token-limit parameter when a model family rejects the default one.
    """

    token_param: str = "max_tokens"
    alternate_token_param: Optional[str] = None
    supports_json_mode: bool = False

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        fallback_model: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        token_param: Optional[str] = None,
        alternate_token_param: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Backend API key
            model: Default model id
            base_url: REST base URL without trailing slash
            fallback_model: Model retried by structured calls on empty output
            timeout: Default per-request timeout in seconds
            token_param: Override for the token-limit parameter name
            alternate_token_param: Override for the name used on retry
        """
        self.api_key = api_key
        self.default_model = model
        self.base_url = base_url.rstrip("/")
        self.fallback_model = fallback_model
        self.timeout = timeout
        if token_param:
            self.token_param = token_param
        if alternate_token_param is not None:
            self.alternate_token_param = alternate_token_param or None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Backend name used in logs and error messages."""
        pass

    @abstractmethod
    async def _complete(
        self,
        request: GenerationRequest,
        model: str,
        token_param: str,
        json_mode: bool,
    ) -> str:
        """Run one completion and return stripped, non-empty text.

        Raises:
            EmptyOutputError: The backend answered without usable text
            BackendError: The backend answered with an error status
        """
        pass

    def resolve_model(self, model_id: Optional[str] = None) -> str:
        """Return the model a request will actually use."""
        return model_id or self.default_model

    async def generate_text(
        self, request: GenerationRequest, json_mode: bool = False
    ) -> str:
        """Generate text for ``request``.

        Args:
            request: Prompt and sampling options
            json_mode: Ask the backend for JSON output when it supports it

        Returns:
            Non-empty generated text

        Raises:
            GenerationError: Any classified failure
        """
        if not self.api_key:
            raise ConfigurationError(f"{self.provider_name} API key is not set.")

        model = self.resolve_model(request.model_id)
        json_mode = json_mode and self.supports_json_mode

        try:
            return await self._complete(request, model, self.token_param, json_mode)
        except BackendError as e:
            alternate = self.alternate_token_param
            if (
                request.max_output_tokens is None
                or not alternate
                or alternate == self.token_param
                or not e.rejects_parameter(self.token_param)
            ):
                raise
            logger.warning(
                f"{self.provider_name} rejected '{self.token_param}' for {model}, "
                f"retrying with '{alternate}'"
            )

        return await self._complete(request, model, alternate, json_mode)

    def request_timeout(self, request: GenerationRequest) -> float:
        return request.timeout or self.timeout

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        timeout: float,
    ) -> Dict[str, Any]:
        """POST ``payload`` and return the decoded JSON body.

        Raises:
            GenerationTimeout: No answer within ``timeout`` seconds
            BackendError: Non-200 status
            TransportError: Connection or decoding failure
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    headers=headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as response:
                    if response.status == 200:
                        return await response.json()

                    error_text = await response.text()
                    logger.debug(
                        f"{self.provider_name} API error: {response.status} - {error_text}"
                    )
                    raise self._backend_error(response.status, error_text)

        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                f"{self.provider_name} request timed out after {timeout:g}s", timeout
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(
                f"Network error calling {self.provider_name}: {e}"
            ) from e
        except ValueError as e:
            raise TransportError(
                f"Malformed response from {self.provider_name}: {e}"
            ) from e

    @staticmethod
    def _backend_error(status: int, body: str) -> BackendError:
        """Decode the ``{"error": {...}}`` envelope both backends use."""
        message, param, code = body, None, None
        try:
            data = json.loads(body)
        except ValueError:
            data = None

        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            error = data["error"]
            message = str(error.get("message") or body)
            param = error.get("param")
            code = error.get("code")
            if not isinstance(code, str):
                code = error.get("status")

        return BackendError(status, message, param=param, code=code)
