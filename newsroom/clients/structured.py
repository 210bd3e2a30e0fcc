"""Schema-validated JSON generation on top of a text completion client."""

import asyncio
import json
import logging
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from newsroom.clients.base import TextCompletionClient
from newsroom.clients.errors import (
    EmptyOutputError,
    GenerationTimeout,
    ParseError,
    SchemaValidationError,
)
from newsroom.models.generation import GenerationRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_ONLY_INSTRUCTION = "Return ONLY valid JSON. No markdown. No commentary."
REPAIR_MIN_OUTPUT_TOKENS = 1200


def parse_json_lenient(text: str) -> Any:
    """Parse JSON that may be wrapped in prose or code fences.

    Tries the whole text first, then the span from the first ``{`` or ``[``
    to the last ``}`` or ``]``.

    Raises:
        ParseError: Neither attempt produced JSON
    """
    trimmed = (text or "").strip()
    if not trimmed:
        raise ParseError("Model output was empty.", raw=text or "")

    try:
        return json.loads(trimmed)
    except ValueError:
        pass

    starts = [i for i in (trimmed.find("{"), trimmed.find("[")) if i != -1]
    end = max(trimmed.rfind("}"), trimmed.rfind("]"))
    if not starts or end <= min(starts):
        raise ParseError("Model did not return valid JSON.", raw=text)

    try:
        return json.loads(trimmed[min(starts):end + 1])
    except ValueError as e:
        raise ParseError(f"Model did not return valid JSON: {e}", raw=text) from e


def pydantic_validator(model: Type[BaseModel]) -> Callable[[Any], BaseModel]:
    """Adapt a pydantic model class to the validator callable interface."""
    return model.model_validate


def with_json_instruction(system: Optional[str]) -> str:
    if system:
        return f"{system}\n\n{JSON_ONLY_INSTRUCTION}"
    return JSON_ONLY_INSTRUCTION


class JsonCompletionClient:
    """Turns text completions into validated values.

    A call makes one generation (JSON mode, then plain text, then the fallback
    model when the output is empty), parses leniently and validates. Output
    that fails to parse or validate gets exactly one repair round at
    temperature 0 before the failure becomes terminal.
    """

    def __init__(
        self,
        text_client: TextCompletionClient,
        fallback_model: Optional[str] = None,
        repair_min_tokens: int = REPAIR_MIN_OUTPUT_TOKENS,
        deadline: Optional[float] = None,
    ):
        """Initialize the structured client.

        Args:
            text_client: Backend used for every completion
            fallback_model: Model tried once when the first model returns
                nothing (defaults to the text client's fallback model)
            repair_min_tokens: Lower bound on the repair call's token budget
            deadline: Optional ceiling in seconds for a whole call including
                its repair round
        """
        self.text_client = text_client
        self.fallback_model = fallback_model or text_client.fallback_model
        self.repair_min_tokens = repair_min_tokens
        self.deadline = deadline

    async def generate_json(
        self, validator: Callable[[Any], T], request: GenerationRequest
    ) -> T:
        """Generate a value accepted by ``validator``.

        Args:
            validator: Returns the typed value or raises on invalid input
            request: Prompt and sampling options

        Returns:
            Whatever ``validator`` returned

        Raises:
            ParseError: No JSON even after the repair round
            SchemaValidationError: Repaired JSON still failed validation
            GenerationError: Any failure of the underlying text calls
        """
        if self.deadline is None:
            return await self._generate_json(validator, request)

        try:
            return await asyncio.wait_for(
                self._generate_json(validator, request), timeout=self.deadline
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                f"Structured generation exceeded {self.deadline:g}s", self.deadline
            ) from e

    async def _generate_json(
        self, validator: Callable[[Any], T], request: GenerationRequest
    ) -> T:
        request = request.with_changes(
            system_instruction=with_json_instruction(request.system_instruction)
        )
        raw, model = await self._complete_text(request)

        try:
            parsed = parse_json_lenient(raw)
        except ParseError:
            logger.warning(f"Unparseable JSON from {model}, attempting repair")
            prompt = (
                "Fix the following into valid JSON that matches the required shape "
                "implied by the original prompt.\n"
                "Do not omit required top-level keys; if a key is required, include "
                "it even if empty.\n"
                "Return ONLY valid JSON.\n\n"
                f"ORIGINAL PROMPT (for shape/rules):\n{request.prompt}\n\n"
                f"BROKEN OUTPUT:\n{raw}"
            )
            return await self._repair(validator, request, model, prompt)

        try:
            return validator(parsed)
        except Exception as e:
            message = str(e).strip() or "Schema validation failed."
            logger.warning(f"JSON from {model} failed validation, attempting repair: {message}")
            prompt = (
                "The JSON below does NOT pass validation. Fix it to match the "
                "required shape implied by the original prompt.\n"
                "Do not omit required top-level keys; if a key is required, include "
                "it even if empty.\n"
                "Return ONLY valid JSON.\n\n"
                f"VALIDATION ERROR:\n{message}\n\n"
                f"ORIGINAL PROMPT (for shape/rules):\n{request.prompt}\n\n"
                f"JSON TO FIX:\n{json.dumps(parsed)}"
            )
            return await self._repair(validator, request, model, prompt)

    async def _repair(
        self,
        validator: Callable[[Any], T],
        request: GenerationRequest,
        model: str,
        prompt: str,
    ) -> T:
        """Run the one repair round. Every failure here is terminal.

        The repair budget is ``max(requested, repair_min_tokens)``: small
        requests are raised to the floor, larger ones keep their own limit.
        """
        repair_request = request.with_changes(
            prompt=prompt,
            model_id=model,
            temperature=0.0,
            max_output_tokens=max(request.max_output_tokens or 0, self.repair_min_tokens),
        )
        repaired, _ = await self._complete_text(repair_request, allow_fallback=False)
        parsed = parse_json_lenient(repaired)

        try:
            return validator(parsed)
        except Exception as e:
            raise SchemaValidationError(
                f"Repaired JSON failed validation: {str(e).strip()}", value=parsed
            ) from e

    async def _complete_text(
        self, request: GenerationRequest, allow_fallback: bool = True
    ) -> Tuple[str, str]:
        """Return ``(text, model)``, falling back to the fallback model once."""
        model = self.text_client.resolve_model(request.model_id)
        try:
            return await self._json_then_plain(request), model
        except EmptyOutputError:
            fallback = (
                self.text_client.resolve_model(self.fallback_model)
                if self.fallback_model
                else None
            )
            if not allow_fallback or not fallback or fallback == model:
                raise
            logger.warning(f"Empty output from {model}, retrying with fallback {fallback}")

        return await self._json_then_plain(request.with_changes(model_id=fallback)), fallback

    async def _json_then_plain(self, request: GenerationRequest) -> str:
        if self.text_client.supports_json_mode:
            try:
                return await self.text_client.generate_text(request, json_mode=True)
            except EmptyOutputError:
                logger.info("JSON mode returned no text, retrying in plain text mode")
        return await self.text_client.generate_text(request)
