from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Protocol, Sequence, Union

from google import genai
from google.genai import types

from kitchen_ai.app.domain.models import MediaPart
from kitchen_ai.services.errors import (
    GeminiConfigurationError,
    NonRotatableProviderError,
    ProviderError,
    RotatableProviderError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-2.5-flash"
ERROR_PREVIEW_CHARS = 140
ROTATABLE_STATUS_CODES = frozenset({401, 403, 429, 503})
ROTATABLE_PATTERNS = (
    re.compile(r"\b(429|quota|rate.?limit|resource.?exhausted)\b", re.IGNORECASE),
    re.compile(
        r"\b(401|403|unauthorized|forbidden|invalid.*key|api.?key not valid|API keys are not supported)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b503\b"),
)

GenerationRequest = Union[str, Sequence[Union[str, MediaPart]]]


def is_rotatable_error(error: BaseException) -> bool:
    status_code = getattr(error, "code", None) or getattr(error, "status_code", None)
    if status_code in ROTATABLE_STATUS_CODES:
        return True
    message = str(error)
    return any(pattern.search(message) for pattern in ROTATABLE_PATTERNS)


class ModelInvoker(Protocol):
    async def generate(self, request: GenerationRequest) -> str: ...

    async def generate_stream(self, request: GenerationRequest) -> AsyncIterator[str]: ...


def _to_contents(request: GenerationRequest) -> Any:
    if isinstance(request, str):
        return request

    contents: list[Any] = []
    for item in request:
        if isinstance(item, MediaPart):
            contents.append(
                types.Part.from_bytes(data=base64.b64decode(item.data), mime_type=item.mime_type)
            )
        else:
            contents.append(item)
    return contents


async def _chunk_texts(first: Any, rest: AsyncIterator[Any]) -> AsyncIterator[str]:
    try:
        if first is not None and first.text:
            yield first.text
        async for chunk in rest:
            if chunk.text:
                yield chunk.text
    finally:
        close = getattr(rest, "aclose", None)
        if close is not None:
            await close()


class GeminiModel:
    def __init__(self, api_key: str, model_name: str = DEFAULT_MODEL_NAME) -> None:
        if not api_key:
            raise GeminiConfigurationError("Missing Google API key.")
        self.model_name = model_name
        self._client = genai.Client(api_key=api_key)

    async def generate(self, request: GenerationRequest) -> str:
        response = await self._client.aio.models.generate_content(
            model=self.model_name,
            contents=_to_contents(request),
        )
        return response.text or ""

    async def generate_stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        stream = await self._client.aio.models.generate_content_stream(
            model=self.model_name,
            contents=_to_contents(request),
        )
        iterator = stream.__aiter__()
        # Pull the first chunk here so quota/auth errors surface while acquiring the handle
        try:
            first = await iterator.__anext__()
        except StopAsyncIteration:
            first = None
        return _chunk_texts(first, iterator)


@dataclass
class CredentialPool:
    credentials: tuple[str, ...]
    active_index: int = 0

    def __post_init__(self) -> None:
        if self.credentials and not 0 <= self.active_index < len(self.credentials):
            raise ValueError(f"active_index {self.active_index} out of range")

    @classmethod
    def from_keys(cls, keys: Iterable[str | None]) -> CredentialPool:
        cleaned = tuple(key.strip() for key in keys if key and key.strip())
        if not cleaned:
            logger.warning("No Gemini API keys configured - AI features will not work")
        return cls(credentials=cleaned)

    def __len__(self) -> int:
        return len(self.credentials)

    def attempt_order(self) -> list[int]:
        size = len(self.credentials)
        return [(self.active_index + attempt) % size for attempt in range(size)]

    def mark_success(self, index: int) -> None:
        if index == self.active_index:
            return
        logger.info("Switched active Gemini key to %d/%d", index + 1, len(self.credentials))
        self.active_index = index


class GeminiFailoverClient:
    """
    Dispatches each request to one model instance per credential, rotating on
    quota, auth and availability errors. Attempts are strictly sequential.

    When every attempt fails, the error from the first attempt is what surfaces:
    it is wrapped in a RotatableProviderError or NonRotatableProviderError
    (chosen from that first error) and chained as its __cause__.
    """

    def __init__(
        self,
        pool: CredentialPool,
        model_name: str = DEFAULT_MODEL_NAME,
        model_factory: Callable[[str, str], ModelInvoker] = GeminiModel,
        is_rotatable: Callable[[BaseException], bool] = is_rotatable_error,
    ) -> None:
        self.pool = pool
        self.model_name = model_name
        self._models = [model_factory(key, model_name) for key in pool.credentials]
        self._is_rotatable = is_rotatable

    @property
    def active_index(self) -> int:
        return self.pool.active_index

    async def generate(self, request: GenerationRequest) -> str:
        return await self._with_failover(lambda model: model.generate(request), "request")

    async def generate_stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        # Rotation only covers acquiring the stream; consumption errors belong to the caller
        return await self._with_failover(lambda model: model.generate_stream(request), "stream")

    async def _with_failover(
        self,
        invoke: Callable[[ModelInvoker], Awaitable[Any]],
        label: str,
    ) -> Any:
        if not self._models:
            raise GeminiConfigurationError("No Gemini API keys configured")

        total = len(self._models)
        first_error: Exception | None = None
        first_index = self.pool.active_index

        for attempt, index in enumerate(self.pool.attempt_order()):
            try:
                result = await invoke(self._models[index])
            except Exception as error:
                if attempt == 0:
                    first_error = error
                logger.warning(
                    "Gemini %s with key %d/%d failed: %s",
                    label, index + 1, total, str(error)[:ERROR_PREVIEW_CHARS],
                )
                if self._is_rotatable(error) and attempt < total - 1:
                    logger.info("Rotating to next Gemini API key")
                    continue
                raise self._surface(first_error or error, first_index, attempt + 1) from (first_error or error)

            self.pool.mark_success(index)
            return result

    def _surface(self, error: Exception, credential_index: int, attempts: int) -> ProviderError:
        error_class = RotatableProviderError if self._is_rotatable(error) else NonRotatableProviderError
        return error_class(
            f"Gemini call failed after {attempts} attempt(s): {str(error)[:ERROR_PREVIEW_CHARS]}",
            credential_index=credential_index,
            attempts=attempts,
        )
