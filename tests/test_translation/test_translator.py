"""
Tests for kisansense/translation/translator.py.

What we test
------------
Translator.translate():
  - Successful results are cached; a second call makes no backend call.
  - Concurrent calls for the same text share one in-flight backend call.
  - Retries with backoff_seconds × attempt between attempts.
  - After the final failure the original text is returned and not cached,
    whatever the backend raised.
  - Empty text and source == target short-circuit.
  - An injected cache is shared between Translator instances.
Translator.translate_many():
  - Output order matches input order.
GoogleTranslateBackend (httpx.MockTransport):
  - Query params; segments joined; bad shapes raise TranslationError.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from kisansense.config import TranslationConfig
from kisansense.translation.translator import (
    GoogleTranslateBackend,
    TranslationError,
    Translator,
)


class FakeBackend:
    """Records calls; fails the first ``failures`` calls for each text."""

    def __init__(self, failures: int = 0, delay: float = 0.0) -> None:
        self.failures = failures
        self.delay = delay
        self.calls: list[tuple[str, str, str]] = []

    async def translate(self, text: str, source: str, target: str) -> str:
        self.calls.append((text, source, target))
        if self.delay:
            await asyncio.sleep(self.delay)
        if sum(1 for c in self.calls if c[0] == text) <= self.failures:
            raise TranslationError("backend unavailable")
        return f"[{target}] {text}"


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def config() -> TranslationConfig:
    return TranslationConfig(retries=3, backoff_seconds=0.5)


class TestTranslate:
    @pytest.mark.asyncio
    async def test_success_is_cached(self, config):
        backend = FakeBackend()
        translator = Translator(config, backend=backend, sleep=RecordingSleep())

        assert await translator.translate("Hold your stock.") == "[hi] Hold your stock."
        assert await translator.translate("Hold your stock.") == "[hi] Hold your stock."
        assert len(backend.calls) == 1
        assert translator.cache[("Hold your stock.", "en", "hi")] == "[hi] Hold your stock."

    @pytest.mark.asyncio
    async def test_target_override(self, config):
        backend = FakeBackend()
        translator = Translator(config, backend=backend, sleep=RecordingSleep())
        assert await translator.translate("Sell now.", target="mr") == "[mr] Sell now."
        assert backend.calls == [("Sell now.", "en", "mr")]

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_call(self, config):
        backend = FakeBackend(delay=0.05)
        translator = Translator(config, backend=backend, sleep=RecordingSleep())

        results = await asyncio.gather(*(translator.translate("Wait.") for _ in range(5)))

        assert results == ["[hi] Wait."] * 5
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_retry_then_success(self, config):
        backend = FakeBackend(failures=2)
        sleep = RecordingSleep()
        translator = Translator(config, backend=backend, sleep=sleep)

        assert await translator.translate("Wait.") == "[hi] Wait."
        assert len(backend.calls) == 3
        assert sleep.delays == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_final_failure_returns_original_uncached(self, config):
        backend = FakeBackend(failures=3)
        sleep = RecordingSleep()
        translator = Translator(config, backend=backend, sleep=sleep)

        assert await translator.translate("Wait.") == "Wait."
        assert len(backend.calls) == 3
        assert sleep.delays == [0.5, 1.0]
        assert translator.cache == {}

        # not cached, so the next call tries again (and now succeeds)
        assert await translator.translate("Wait.") == "[hi] Wait."
        assert len(backend.calls) == 4

    @pytest.mark.asyncio
    async def test_http_errors_are_retried(self, config):
        class FlakyHttp:
            calls = 0

            async def translate(self, text, source, target):
                FlakyHttp.calls += 1
                if FlakyHttp.calls == 1:
                    raise httpx.ConnectError("refused")
                return "ठीक है"

        translator = Translator(config, backend=FlakyHttp(), sleep=RecordingSleep())
        assert await translator.translate("OK") == "ठीक है"
        assert FlakyHttp.calls == 2

    @pytest.mark.asyncio
    async def test_unexpected_backend_error_falls_back(self, config):
        class BrokenBackend:
            calls = 0

            async def translate(self, text, source, target):
                BrokenBackend.calls += 1
                raise KeyError("segments")

        sleep = RecordingSleep()
        translator = Translator(config, backend=BrokenBackend(), sleep=sleep)

        assert await translator.translate("Sell now.") == "Sell now."
        assert BrokenBackend.calls == 3
        assert sleep.delays == [0.5, 1.0]
        assert translator.cache == {}

    @pytest.mark.asyncio
    async def test_unexpected_error_then_success(self, config):
        class FlakyBackend:
            calls = 0

            async def translate(self, text, source, target):
                FlakyBackend.calls += 1
                if FlakyBackend.calls == 1:
                    raise RuntimeError("boom")
                return "बेचें"

        translator = Translator(config, backend=FlakyBackend(), sleep=RecordingSleep())
        assert await translator.translate("Sell.") == "बेचें"
        assert FlakyBackend.calls == 2

    @pytest.mark.asyncio
    async def test_short_circuits(self, config):
        backend = FakeBackend()
        translator = Translator(config, backend=backend, sleep=RecordingSleep())

        assert await translator.translate("") == ""
        assert await translator.translate("   ") == "   "
        assert await translator.translate("Hold.", target="en") == "Hold."
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_injected_cache_is_shared(self, config):
        cache: dict = {}
        backend = FakeBackend()
        first = Translator(config, backend=backend, cache=cache, sleep=RecordingSleep())
        second = Translator(config, backend=backend, cache=cache, sleep=RecordingSleep())

        await first.translate("Hold.")
        assert await second.translate("Hold.") == "[hi] Hold."
        assert len(backend.calls) == 1


class TestTranslateMany:
    @pytest.mark.asyncio
    async def test_order_preserved(self, config):
        translator = Translator(config, backend=FakeBackend(), sleep=RecordingSleep())
        texts = ["Sell.", "", "Hold.", "Sell."]
        assert await translator.translate_many(texts) == [
            "[hi] Sell.",
            "",
            "[hi] Hold.",
            "[hi] Sell.",
        ]


class TestGoogleTranslateBackend:
    @pytest.mark.asyncio
    async def test_request_and_parse(self, config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            return httpx.Response(
                200,
                json=[[["अभी बेचें। ", "Sell now. ", None], ["रुको।", "Wait.", None]], None, "en"],
            )

        backend = GoogleTranslateBackend(config, transport=httpx.MockTransport(handler))
        assert await backend.translate("Sell now. Wait.", "en", "hi") == "अभी बेचें। रुको।"
        assert seen == {"client": "gtx", "sl": "en", "tl": "hi", "dt": "t", "q": "Sell now. Wait."}

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises(self, config):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"error": "x"}))
        backend = GoogleTranslateBackend(config, transport=transport)
        with pytest.raises(TranslationError):
            await backend.translate("Sell.", "en", "hi")

    @pytest.mark.asyncio
    async def test_non_2xx_raises_http_error(self, config):
        transport = httpx.MockTransport(lambda r: httpx.Response(429))
        backend = GoogleTranslateBackend(config, transport=transport)
        with pytest.raises(httpx.HTTPStatusError):
            await backend.translate("Sell.", "en", "hi")

    @pytest.mark.asyncio
    async def test_translator_falls_back_over_http(self, config):
        transport = httpx.MockTransport(lambda r: httpx.Response(500))
        translator = Translator(
            config,
            backend=GoogleTranslateBackend(config, transport=transport),
            sleep=RecordingSleep(),
        )
        assert await translator.translate("Sell now.") == "Sell now."
