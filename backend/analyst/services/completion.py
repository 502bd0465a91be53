"""
Completion Service - Embeddings and AI Query Text Behind One Interface

The analysis core talks to exactly one external AI collaborator through
the CompletionService protocol:
    - embed(): text → embedding vector (semantic scorer)
    - complete_queries(): prompt context → search query strings (semantic templates)

Provider selection is a configuration value resolved once by
get_completion_service(); provider-specific request/response shaping stays
inside each adapter. Every adapter wraps provider failures in
UpstreamServiceError so callers can apply their local fallbacks.

Providers:
    | Provider  | Embeddings             | Query completion         |
    |-----------|------------------------|--------------------------|
    | openai    | text-embedding-3-small | gpt-4o-mini              |
    | anthropic | not available          | claude-sonnet-4          |
    | google    | text-embedding-004     | gemini-2.5-flash         |
    | mock      | hashed bag-of-words    | deterministic templates  |
"""

import hashlib
import json
import logging
import re
from datetime import date
from typing import List, Optional, Protocol, Tuple, runtime_checkable

import numpy as np
from openai import AsyncOpenAI

from analyst.config import Settings, get_settings
from analyst.exceptions import ConfigurationError, UpstreamServiceError
from analyst.schemas.query import AIContext

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "anthropic", "google", "mock")

DEFAULT_MODELS = {
    "openai": ("text-embedding-3-small", "gpt-4o-mini"),
    "anthropic": ("", "claude-sonnet-4-20250514"),
    "google": ("text-embedding-004", "gemini-2.5-flash"),
    "mock": ("mock-embedding", "mock-completion"),
}

_LIST_PREFIX = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


@runtime_checkable
class CompletionService(Protocol):
    """
    Protocol for the external text/embedding completion service.

    Both operations may fail or hang; callers wrap them in a timeout and
    treat any exception as recoverable.
    """

    @property
    def provider_id(self) -> str:
        ...

    async def embed(self, text: str) -> List[float]:
        ...

    async def complete_queries(self, context: AIContext, count: int) -> List[str]:
        ...


def build_query_messages(context: AIContext, count: int) -> Tuple[str, str]:
    """Return (system, user) prompts asking for `count` search queries."""
    user = (
        f"{context.user_prompt}\n\n"
        f"Generate exactly {count} search queries. "
        "Return ONLY a JSON array of strings, no other text."
    )
    return context.system_prompt, user


def parse_query_lines(raw_text: Optional[str], count: int) -> List[str]:
    """
    Parse a model response into a list of query strings.

    Handles markdown-wrapped JSON (```json ... ```), plain JSON arrays and
    newline-separated lists with numbering or bullets.
    """
    if not raw_text:
        return []

    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned)

    queries: List[str] = []
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, list):
        queries = [str(item).strip() for item in data]
    else:
        for line in cleaned.splitlines():
            line = _LIST_PREFIX.sub("", line).strip().strip('"').strip()
            queries.append(line)

    return [q for q in queries if q][:count]


class OpenAICompletionService:
    """
    OpenAI-backed completion service.

    Example:
        >>> service = OpenAICompletionService(api_key="sk-...")
        >>> vector = await service.embed("Oil painter seeking residencies")
    """

    def __init__(
        self,
        api_key: str,
        embedding_model: str = "text-embedding-3-small",
        completion_model: str = "gpt-4o-mini",
    ) -> None:
        self.api_key = api_key
        self.embedding_model = embedding_model
        self.completion_model = completion_model
        self._client: Optional[AsyncOpenAI] = None

    @property
    def provider_id(self) -> str:
        return "openai"

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def embed(self, text: str) -> List[float]:
        text = text.replace("\n", " ").strip()
        try:
            response = await self._get_client().embeddings.create(
                input=[text],
                model=self.embedding_model,
            )
        except Exception as e:
            raise UpstreamServiceError(
                f"OpenAI embedding failed: {e}", "openai", "embedding"
            ) from e
        return response.data[0].embedding

    async def complete_queries(self, context: AIContext, count: int) -> List[str]:
        system, user = build_query_messages(context, count)
        try:
            response = await self._get_client().chat.completions.create(
                model=self.completion_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=0.7,
                max_tokens=500,
            )
        except Exception as e:
            raise UpstreamServiceError(
                f"OpenAI query generation failed: {e}", "openai", "query-generation"
            ) from e
        return parse_query_lines(response.choices[0].message.content, count)


class AnthropicCompletionService:
    """
    Anthropic Claude completion service.

    Anthropic has no embedding endpoint, so embed() always raises and the
    semantic scorer runs on its keyword-overlap fallback.
    """

    def __init__(self, api_key: str, completion_model: str = "claude-sonnet-4-20250514") -> None:
        self.api_key = api_key
        self.completion_model = completion_model
        self._client = None

    @property
    def provider_id(self) -> str:
        return "anthropic"

    def _get_client(self):
        if self._client is None:
            try:
                import anthropic
            except ImportError:
                raise ConfigurationError(
                    "anthropic package not installed. "
                    "Install with: pip install 'artist-opportunity-analyst[anthropic]'"
                ) from None
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def embed(self, text: str) -> List[float]:
        raise UpstreamServiceError(
            "Anthropic does not provide an embedding API", "anthropic", "embedding"
        )

    async def complete_queries(self, context: AIContext, count: int) -> List[str]:
        system, user = build_query_messages(context, count)
        client = self._get_client()
        try:
            message = await client.messages.create(
                model=self.completion_model,
                max_tokens=500,
                temperature=0.7,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except Exception as e:
            raise UpstreamServiceError(
                f"Anthropic query generation failed: {e}", "anthropic", "query-generation"
            ) from e
        return parse_query_lines(message.content[0].text, count)


class GoogleCompletionService:
    """Google Gemini completion service (google-genai SDK)."""

    def __init__(
        self,
        api_key: str,
        embedding_model: str = "text-embedding-004",
        completion_model: str = "gemini-2.5-flash",
    ) -> None:
        self.api_key = api_key
        self.embedding_model = embedding_model
        self.completion_model = completion_model
        self._client = None

    @property
    def provider_id(self) -> str:
        return "google"

    def _get_client(self):
        if self._client is None:
            try:
                from google import genai
            except ImportError:
                raise ConfigurationError(
                    "google-genai package not installed. "
                    "Install with: pip install 'artist-opportunity-analyst[google]'"
                ) from None
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def embed(self, text: str) -> List[float]:
        client = self._get_client()
        try:
            response = await client.aio.models.embed_content(
                model=self.embedding_model,
                contents=text,
            )
        except Exception as e:
            raise UpstreamServiceError(
                f"Google embedding failed: {e}", "google", "embedding"
            ) from e
        return list(response.embeddings[0].values)

    async def complete_queries(self, context: AIContext, count: int) -> List[str]:
        from google.genai import types as genai_types

        system, user = build_query_messages(context, count)
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.completion_model,
                contents=user,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system,
                    temperature=0.7,
                ),
            )
        except Exception as e:
            raise UpstreamServiceError(
                f"Google query generation failed: {e}", "google", "query-generation"
            ) from e
        return parse_query_lines(response.text, count)


class MockCompletionService:
    """
    Deterministic completion service for tests, health probes and offline runs.

    Embeddings are hashed bag-of-words vectors, so texts sharing words
    have a positive cosine similarity and identical texts score 1.0.
    Query completion interpolates the profile analysis into fixed phrases.
    """

    def __init__(self, dimensions: int = 256) -> None:
        self._dimensions = dimensions

    @property
    def provider_id(self) -> str:
        return "mock"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _text_to_embedding(self, text: str) -> List[float]:
        vector = np.zeros(self._dimensions)
        for word in re.findall(r"\b\w+\b", text.lower()):
            position = int(hashlib.md5(word.encode()).hexdigest()[:8], 16) % self._dimensions
            vector[position] += 1.0

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.tolist()

    async def embed(self, text: str) -> List[float]:
        return self._text_to_embedding(text)

    async def complete_queries(self, context: AIContext, count: int) -> List[str]:
        analysis = context.profile_analysis
        mediums = analysis.primary_mediums or ["contemporary art"]
        types = analysis.opportunity_types or ["grant", "residency"]
        year = date.today().year

        queries = []
        for opportunity_type in types:
            for medium in mediums:
                queries.append(f"{medium} artist {opportunity_type} open call {year}")
        for preference in analysis.funding_preferences:
            queries.append(f"{preference} for {mediums[0]} artists")
        return queries[:count]


def get_completion_service(settings: Optional[Settings] = None) -> CompletionService:
    """
    Factory for the configured completion service.

    Args:
        settings: Settings to read the provider, keys and models from

    Returns:
        CompletionService instance

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing

    Example:
        >>> service = get_completion_service(Settings(completion_provider="mock"))
    """
    settings = settings or get_settings()
    provider_name = settings.completion_provider.lower()

    if provider_name not in DEFAULT_MODELS:
        raise ConfigurationError(
            f"Unknown completion provider: {settings.completion_provider}. "
            f"Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    default_embedding, default_completion = DEFAULT_MODELS[provider_name]
    embedding_model = settings.embedding_model or default_embedding
    completion_model = settings.completion_model or default_completion

    if provider_name == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OpenAI completion service requires OPENAI_API_KEY")
        return OpenAICompletionService(
            api_key=settings.openai_api_key,
            embedding_model=embedding_model,
            completion_model=completion_model,
        )

    elif provider_name == "anthropic":
        if not settings.anthropic_api_key:
            raise ConfigurationError("Anthropic completion service requires ANTHROPIC_API_KEY")
        return AnthropicCompletionService(
            api_key=settings.anthropic_api_key,
            completion_model=completion_model,
        )

    elif provider_name == "google":
        if not settings.google_api_key:
            raise ConfigurationError("Google completion service requires GOOGLE_API_KEY")
        return GoogleCompletionService(
            api_key=settings.google_api_key,
            embedding_model=embedding_model,
            completion_model=completion_model,
        )

    logger.info("Using mock completion service")
    return MockCompletionService()
