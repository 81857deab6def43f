"""
Translation of recommendation text into the farmer's language.

``Translator`` wraps a backend (anything with an async
``translate(text, source, target) -> str``) and adds:

  * a cache of successful translations keyed by (text, source, target);
  * in-flight de-duplication, so concurrent requests for the same key share
    one backend call;
  * retries with linear backoff (``backoff_seconds × attempt``);
  * a graceful fallback: after the final failure (of any kind, including
    unexpected errors from an injected backend) the original text is
    returned and nothing is cached, so a later call tries again.

Empty text and ``source == target`` short-circuit without a backend call.

The default backend is the public Google Translate ``translate_a/single``
endpoint over httpx.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, MutableMapping, Sequence
from typing import Any, Optional, Protocol

import httpx

from kisansense.config import TranslationConfig

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


class TranslationError(RuntimeError):
    """The backend answered, but not with a translation."""


class TranslationBackend(Protocol):
    async def translate(self, text: str, source: str, target: str) -> str: ...


class GoogleTranslateBackend:
    """Backend for the keyless ``translate_a/single`` endpoint.

    Args:
        config: ``TranslationConfig`` section.
        transport: Optional ``httpx`` transport (tests pass a ``MockTransport``).
    """

    def __init__(
        self,
        config: TranslationConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    async def translate(self, text: str, source: str, target: str) -> str:
        """Translate ``text``.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx response.
            TranslationError: If the body holds no translated text.
        """
        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        ) as client:
            resp = await client.get(
                self.config.endpoint,
                params={"client": "gtx", "sl": source, "tl": target, "dt": "t", "q": text},
            )
        resp.raise_for_status()
        try:
            payload = resp.json()
        except ValueError as exc:
            raise TranslationError(f"Translation response is not JSON: {exc}") from exc
        return _parse_google_payload(payload)


def _parse_google_payload(payload: Any) -> str:
    """Join the translated segments at ``payload[0][*][0]``."""
    try:
        segments = payload[0]
        translated = "".join(seg[0] for seg in segments if seg and isinstance(seg[0], str))
    except (IndexError, KeyError, TypeError) as exc:
        raise TranslationError(f"Unexpected translation response shape: {exc}") from exc
    if not translated.strip():
        raise TranslationError("Translation response contained no text.")
    return translated


class Translator:
    """Caching, de-duplicating, retrying front for a translation backend.

    Args:
        config: ``TranslationConfig`` section (languages, retries, backoff).
        backend: Translation backend. Defaults to ``GoogleTranslateBackend``.
        cache: Mapping used to store successful translations. Inject a shared
            dict to reuse translations across ``Translator`` instances.
        sleep: Awaitable sleep used between retries (tests inject a no-op).
    """

    def __init__(
        self,
        config: Optional[TranslationConfig] = None,
        backend: Optional[TranslationBackend] = None,
        cache: Optional[MutableMapping[CacheKey, str]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or TranslationConfig()
        self.backend = backend or GoogleTranslateBackend(self.config)
        self.cache: MutableMapping[CacheKey, str] = cache if cache is not None else {}
        self._sleep = sleep
        self._in_flight: dict[CacheKey, asyncio.Task[str]] = {}

    async def translate(
        self,
        text: str,
        target: Optional[str] = None,
        source: Optional[str] = None,
    ) -> str:
        """Translate ``text``; returns ``text`` unchanged when translation fails."""
        target = target or self.config.target_language
        source = source or self.config.source_language

        if not text or not text.strip() or source == target:
            return text

        key: CacheKey = (text, source, target)
        if key in self.cache:
            return self.cache[key]

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._translate_with_retry(key))
            self._in_flight[key] = task
            task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))
        return await asyncio.shield(task)

    async def translate_many(
        self,
        texts: Sequence[str],
        target: Optional[str] = None,
        source: Optional[str] = None,
    ) -> list[str]:
        """Translate several texts concurrently, preserving input order."""
        return list(
            await asyncio.gather(*(self.translate(t, target, source) for t in texts))
        )

    async def _translate_with_retry(self, key: CacheKey) -> str:
        text, source, target = key
        attempts = self.config.retries
        for attempt in range(1, attempts + 1):
            try:
                translated = await self.backend.translate(text, source, target)
            except (httpx.HTTPError, TranslationError) as exc:
                logger.warning(
                    "Translation attempt %d/%d failed (%s → %s): %s",
                    attempt, attempts, source, target, exc,
                )
                if attempt < attempts:
                    await self._sleep(self.config.backoff_seconds * attempt)
                continue
            except Exception as exc:
                logger.warning(
                    "Unexpected translation error on attempt %d/%d (%s → %s): %s: %s",
                    attempt, attempts, source, target, type(exc).__name__, exc,
                    exc_info=True,
                )
                if attempt < attempts:
                    await self._sleep(self.config.backoff_seconds * attempt)
                continue
            self.cache[key] = translated
            return translated

        logger.error(
            "Translation failed after %d attempts (%s → %s); returning original text",
            attempts, source, target,
        )
        return text
