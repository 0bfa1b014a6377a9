"""Machine-translation provider backed by OpenAI."""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError, RateLimitError

from .cache import TranslationResultCache
from .exceptions import ProviderFailure
from .logger import get_logger
from .utils import get_language_name

logger = get_logger(__name__)

DEFAULT_TRANSLATION_MODEL = "gpt-5-mini"
MODEL_CATALOG_CACHE_KEY = "openai:models"

# Backoff thresholds (in seconds)
MAX_DELAY = 64  # Reset backoff after reaching this delay
RESET_DELAY = 16  # Delay to reset to after hitting MAX_DELAY


class TranslationProvider(Protocol):
    async def translate_batch(
        self, values: list[str], source_locale: str, target_locale: str
    ) -> list[str]:
        """Translate ``values``, returning results in the same order and count."""
        ...


def _get_client(api_key: str | None = None) -> AsyncOpenAI:
    """Get async OpenAI client."""
    api_key = api_key or os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise ValueError(
            "OPENAI_API_KEY environment variable not set. "
            "Set it in your environment or in a .env file."
        )
    return AsyncOpenAI(api_key=api_key)


def _language_label(code: str) -> str:
    try:
        return f"{get_language_name(code)} ({code})"
    except ValueError:
        return code


def _translation_cache_key(source_locale: str, target_locale: str, value: str) -> str:
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
    return f"translation:{source_locale}:{target_locale}:{digest}"


class OpenAITranslationProvider:
    """
    Batch translator using OpenAI Structured Outputs.

    Every batch is sent as one chat completion whose response schema is an
    array of strings, so results map back to inputs by position. Individual
    results are memoized in the result cache when one is supplied.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str = DEFAULT_TRANSLATION_MODEL,
        cache: TranslationResultCache | None = None,
        cache_ttl: float | None = None,
        max_concurrent_requests: int = 10,
        initial_retry_delay: float = 1.0,
        max_backoff_resets: int = 5,
        context: str = "",
    ):
        self._client = client
        self.model = model
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)
        self._initial_retry_delay = initial_retry_delay
        self._max_backoff_resets = max_backoff_resets
        self._context = context

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            try:
                self._client = _get_client()
            except ValueError as e:
                raise ProviderFailure(str(e), code="not_configured") from e
        return self._client

    async def _api_call_with_retry(self, api_call_func, *args, **kwargs):
        """
        Execute an API call with rate limiting and exponential backoff retry.

        Backoff pattern: 1 -> 2 -> 4 -> 8 -> 16 -> 32 -> 64 -> 16 -> 32 -> 64 -> ...
        Resets to 16s after hitting 64s and gives up after max_backoff_resets resets.

        Raises:
            RateLimitError: If all retries are exhausted
        """
        delay = self._initial_retry_delay
        reset_count = 0
        attempt = 0

        while True:
            async with self._semaphore:
                try:
                    return await api_call_func(*args, **kwargs)
                except RateLimitError as e:
                    attempt += 1

                    if reset_count >= self._max_backoff_resets:
                        logger.error(f"Rate limit retry timeout after {reset_count} backoff resets")
                        raise

                    # Extract retry-after header if available
                    retry_after = getattr(e, "retry_after", None)
                    wait_time = float(retry_after) if retry_after else delay

                    logger.warning(
                        f"Rate limited, waiting {wait_time:.1f}s "
                        f"(attempt {attempt}, reset {reset_count}/{self._max_backoff_resets})..."
                    )
                    await asyncio.sleep(wait_time)

                    delay *= 2
                    if delay > MAX_DELAY:
                        delay = RESET_DELAY
                        reset_count += 1

    def _build_messages(self, values: list[str], source_locale: str, target_locale: str) -> list[dict]:
        source_label = _language_label(source_locale)
        target_label = _language_label(target_locale)

        system_content = f"""You are a professional translator for software user interfaces. The strings to translate are provided as a JSON array. You return the translations as a JSON array in the same order.

Rules:
- Return exactly {len(values)} strings, one per input string, in the same order
- Any values that begin with '@:' should remain unchanged (these are references)
- When you encounter values enclosed in braces like '{{{{variable_name}}}}' or '{{variable_name}}', keep the variable name unchanged. The placeholder position can change to fit the target language grammar.
- Keep HTML tags, '%s'/'%d' style placeholders and surrounding whitespace intact
- Translate all user-facing text naturally for the target language

{self._context}"""

        texts_json = json.dumps({"translations": values}, ensure_ascii=False)
        prompt = (
            f"Translate the following JSON from {source_label} to {target_label}:\n"
            f"```\n{texts_json}\n```\n"
        )
        return [
            {"role": "system", "content": system_content},
            {"role": "user", "content": prompt},
        ]

    async def _request_translations(
        self, values: list[str], source_locale: str, target_locale: str
    ) -> list[str]:
        schema = {
            "type": "object",
            "properties": {
                "translations": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["translations"],
            "additionalProperties": False,
        }

        try:
            response = await self._api_call_with_retry(
                self.client.chat.completions.create,
                model=self.model,
                messages=self._build_messages(values, source_locale, target_locale),
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "translation_output", "schema": schema, "strict": True},
                },
            )
        except OpenAIError as e:
            raise ProviderFailure(
                f"OpenAI request failed: {e}", code=type(e).__name__
            ) from e

        # Handle refusals
        message = response.choices[0].message
        if getattr(message, "refusal", None):
            raise ProviderFailure(f"Model refused to translate: {message.refusal}", code="refusal")

        # Check for incomplete response
        if response.choices[0].finish_reason == "length":
            raise ProviderFailure("Response was truncated due to length limit", code="truncated")

        try:
            translations = json.loads(message.content)["translations"]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ProviderFailure(f"Unable to decode translation response: {e}", code="invalid_response") from e

        if not isinstance(translations, list) or len(translations) != len(values):
            raise ProviderFailure(
                f"Expected {len(values)} translations, got "
                f"{len(translations) if isinstance(translations, list) else 'none'}",
                code="count_mismatch",
                details={"expected": len(values)},
            )
        return [str(t) for t in translations]

    async def translate_batch(
        self, values: list[str], source_locale: str, target_locale: str
    ) -> list[str]:
        """
        Translate a batch of strings from ``source_locale`` to ``target_locale``.

        Args:
            values: Strings to translate
            source_locale: Locale code of the input strings (e.g., 'en')
            target_locale: Locale code to translate to (e.g., 'fr')

        Returns:
            Translated strings, same order and count as ``values``

        Raises:
            ProviderFailure: If the provider call fails or returns an unusable result
        """
        if not values:
            return []
        if source_locale == target_locale:
            return list(values)

        results: list[str | None] = [None] * len(values)
        pending: list[int] = []
        for index, value in enumerate(values):
            cached = None
            if self._cache is not None:
                cached = self._cache.get(
                    _translation_cache_key(source_locale, target_locale, value), ttl=self._cache_ttl
                )
            if cached is None:
                pending.append(index)
            else:
                results[index] = cached

        if pending:
            logger.info(
                f"Translating {len(pending)} strings from {source_locale} to {target_locale} "
                f"({len(values) - len(pending)} cached)"
            )
            # Deduplicate so repeated strings cost one slot in the request
            unique = list(dict.fromkeys(values[i] for i in pending))
            translated = await self._request_translations(unique, source_locale, target_locale)
            by_source = dict(zip(unique, translated))
            for index in pending:
                results[index] = by_source[values[index]]
            if self._cache is not None:
                for source_value, target_value in by_source.items():
                    self._cache.set(
                        _translation_cache_key(source_locale, target_locale, source_value),
                        target_value,
                        ttl=self._cache_ttl,
                    )

        return results

    async def available_models(self) -> list[str]:
        """Return the ids of models offered by the provider, cached with a TTL."""

        async def fetch() -> list[str]:
            try:
                return sorted([model.id async for model in self.client.models.list()])
            except OpenAIError as e:
                raise ProviderFailure(f"Unable to list models: {e}", code=type(e).__name__) from e

        if self._cache is None:
            return await fetch()
        return await self._cache.get_or_fetch(MODEL_CATALOG_CACHE_KEY, fetch, ttl=self._cache_ttl)

    async def verify_model(self) -> bool:
        """Warn when the configured model is not in the provider's catalog."""
        try:
            models = await self.available_models()
        except ProviderFailure as e:
            logger.warning(f"Could not verify translation model '{self.model}': {e}")
            return False
        if self.model not in models:
            logger.warning(f"Translation model '{self.model}' is not offered by the provider")
            return False
        return True
