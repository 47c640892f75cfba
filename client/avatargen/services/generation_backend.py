"""HTTP client handing uploaded selfies to the avatar generation backend."""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..errors import BackendError
from ..models.schemas import GenerationAcknowledgement, GenerationRequest

logger = logging.getLogger(__name__)

_ERROR_KEYS = ("detail", "error", "message", "msg")


def _normalize_base_url(base_url: Optional[str]) -> str:
    raw_base = (base_url or "").strip()
    if not raw_base:
        raise RuntimeError("API_URL missing; set the avatar generation backend URL")
    if not raw_base.startswith(("http://", "https://")):
        raise RuntimeError("API_URL must include http/https scheme")
    return raw_base.rstrip("/")


def _response_error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in _ERROR_KEYS:
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    text = response.text.strip()
    if text and data is None:
        return text
    return f"Request failed with status code {response.status_code}"


class GenerationBackend:
    """HTTP client for the avatar generation backend's ``/generate`` endpoint."""

    def __init__(
        self,
        base_url: Optional[str],
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = _normalize_base_url(base_url)
        self._timeout = timeout
        self._transport = transport

    @property
    def generate_url(self) -> str:
        return f"{self._base_url}/generate"

    async def request_generation(self, request: GenerationRequest) -> GenerationAcknowledgement:
        """Hand the uploaded image off to the backend; exactly one POST, no retry."""

        logger.info("Posting generation request for user %s to %s", request.user_id, self.generate_url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self.generate_url, json=request.model_dump())
        except httpx.HTTPError as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning("Generation request transport failure: %s", message)
            raise BackendError(message) from exc

        if not resp.is_success:
            message = _response_error_text(resp)
            logger.warning("Generation backend answered %s: %s", resp.status_code, message)
            raise BackendError(message, status_code=resp.status_code)

        return self._coerce_acknowledgement(resp)

    @staticmethod
    def _coerce_acknowledgement(resp: httpx.Response) -> GenerationAcknowledgement:
        # The body is informational only; anything unparsable still counts as accepted.
        try:
            data = resp.json()
        except ValueError:
            return GenerationAcknowledgement()
        if not isinstance(data, dict):
            return GenerationAcknowledgement()
        try:
            ack = GenerationAcknowledgement.model_validate(data)
        except PydanticValidationError:
            return GenerationAcknowledgement()
        logger.info("Generation backend accepted request (id=%s, status=%s)", ack.generation_id, ack.status)
        return ack
