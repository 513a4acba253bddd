"""Tests for ScriptureService fallback orchestration."""
import logging

import pytest

from scripture_gateway.domain import ProviderConfig, VerseReference, VerseText
from scripture_gateway.exceptions import (
    MalformedResponseError,
    NetworkError,
    NotConfiguredError,
    RateLimitedError,
    UnauthorizedError,
    ValidationError,
)
from scripture_gateway.result import Failure, Success
from scripture_gateway.services import prompts
from scripture_gateway.services.orchestrator import ScriptureService, ServiceState


def rate_limited() -> Failure:
    return Failure("Quota exceeded", cause=RateLimitedError("Quota exceeded"))


def unauthorized() -> Failure:
    return Failure("HTTP 401: invalid key", cause=UnauthorizedError("HTTP 401: invalid key"))


class TestConfiguration:
    def test_state_transitions(self, build_service, make_generative):
        provider = make_generative("gen", 10, [Success("x")])
        service = build_service(provider, configure=False)
        assert service.state is ServiceState.UNCONFIGURED
        assert not service.is_ready()

        outcome = service.configure({"gen": ProviderConfig(credential="k")})
        assert outcome.any_succeeded
        assert service.state is ServiceState.READY
        assert service.is_ready()
        assert service.last_outcome is outcome

        service.configure({"gen": ProviderConfig(credential="")})
        assert service.state is ServiceState.DEGRADED
        assert not service.is_ready()

    @pytest.mark.asyncio
    async def test_zero_configured_providers_makes_no_calls(self, build_service, make_generative, make_scripture, john_3_16):
        gen = make_generative("gen", 10, [Success("x")])
        esv = make_scripture("esv", 1, [Success([])])
        service = build_service(gen, esv, configs={
            "gen": ProviderConfig(credential=""),
            "esv": ProviderConfig(credential=""),
        })

        results = [
            await service.fetch_scripture(john_3_16, "ESV"),
            await service.get_key_takeaway("John 3:16"),
            await service.get_ai_score("John 3:16", "God loves everyone"),
            await service.validate_takeaway("John 3:16", "God loves everyone"),
            await service.find_verses_by_description("love"),
        ]

        for result in results:
            assert isinstance(result, Failure)
            assert "not configured" in result.message
            assert isinstance(result.cause, NotConfiguredError)
        assert gen.total_calls == 0
        assert esv.total_calls == 0

    @pytest.mark.asyncio
    async def test_unconfigured_service_makes_no_calls(self, build_service, make_generative):
        gen = make_generative("gen", 10, [Success("x")])
        service = build_service(gen, configure=False)
        result = await service.get_key_takeaway("John 3:16")
        assert "not configured" in result.message
        assert gen.total_calls == 0


class TestFallback:
    @pytest.mark.asyncio
    async def test_first_success_short_circuits(self, build_service, make_generative):
        a = make_generative("a", 10, [Success("from a")])
        b = make_generative("b", 20, [Success("from b")])
        service = build_service(b, a)

        assert await service.get_key_takeaway("John 3:16") == Success("from a")
        assert a.calls["get_key_takeaway"] == 1
        assert b.total_calls == 0

    @pytest.mark.asyncio
    async def test_rate_limited_twice_then_success_stays_on_first(self, build_service, make_generative, sleeps):
        a = make_generative("a", 10, [rate_limited(), rate_limited(), Success("from a")])
        b = make_generative("b", 20, [Success("from b")])
        service = build_service(a, b)

        assert await service.get_key_takeaway("John 3:16") == Success("from a")
        assert a.calls["get_key_takeaway"] == 3
        assert b.total_calls == 0
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_unauthorized_moves_on_after_one_attempt(self, build_service, make_generative, sleeps):
        a = make_generative("a", 10, [unauthorized()])
        b = make_generative("b", 20, [Success(True)])
        service = build_service(a, b)

        assert await service.validate_takeaway("John 3:16", "God loves the world") == Success(True)
        assert a.calls["validate_takeaway"] == 1
        assert b.calls["validate_takeaway"] == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_exhausted_provider_falls_back(self, build_service, make_generative):
        overloaded = Failure("503", cause=NetworkError("timed out"))
        a = make_generative("a", 10, [overloaded])
        b = make_generative("b", 20, [Success([])])
        service = build_service(a, b)

        assert await service.find_verses_by_description("hope") == Success([])
        assert a.calls["find_verses_by_description"] == 3
        assert b.calls["find_verses_by_description"] == 1

    @pytest.mark.asyncio
    async def test_raising_provider_is_contained(self, build_service, make_generative):
        a = make_generative("a", 10, [KeyError("choices")])
        b = make_generative("b", 20, [Success("from b")])
        service = build_service(a, b)

        assert await service.get_key_takeaway("John 3:16") == Success("from b")
        assert a.total_calls == 1

    @pytest.mark.asyncio
    async def test_aggregate_failure_names_each_provider(self, build_service, make_generative):
        a = make_generative("a", 10, [unauthorized()], display_name="Alpha AI")
        b = make_generative(
            "b", 20,
            [Failure("bad json", cause=MalformedResponseError("bad json"))],
            display_name="Beta AI",
        )
        service = build_service(a, b)

        result = await service.get_ai_score("John 3:16", "comment")
        assert isinstance(result, Failure)
        assert result.message.startswith("All available providers (2) failed for get_ai_score:")
        assert "Alpha AI: HTTP 401: invalid key" in result.message
        assert "Beta AI: bad json" in result.message
        assert isinstance(result.cause, MalformedResponseError)

    @pytest.mark.asyncio
    async def test_aggregate_failure_redacts_secrets(self, build_service, make_generative):
        leak = Failure("Bearer sk-abcdef1234567890 rejected", cause=UnauthorizedError("x"))
        a = make_generative("a", 10, [leak])
        service = build_service(a)

        result = await service.get_key_takeaway("John 3:16")
        assert "sk-abcdef1234567890" not in result.message
        assert "[REDACTED]" in result.message

    @pytest.mark.asyncio
    async def test_attempts_are_logged_with_structured_fields(self, build_service, make_generative, caplog):
        a = make_generative("a", 10, [unauthorized()])
        b = make_generative("b", 20, [Success("ok")])
        service = build_service(a, b)

        with caplog.at_level(logging.INFO, logger="orchestrator"):
            await service.get_key_takeaway("John 3:16")

        records = [r for r in caplog.records if hasattr(r, "outcome")]
        assert [(r.provider, r.operation, r.outcome) for r in records] == [
            ("a", "get_key_takeaway", "failure"),
            ("b", "get_key_takeaway", "success"),
        ]


class TestScriptureFetch:
    @pytest.mark.asyncio
    async def test_lookup_provider_preferred(self, build_service, make_generative, make_scripture, john_3_16, john_3_16_text):
        esv = make_scripture("esv", 1, [Success(john_3_16_text)])
        gen = make_generative("gen", 10, [Success([VerseText(16, "generated")])])
        service = build_service(gen, esv)

        assert await service.fetch_scripture(john_3_16, "ESV") == Success(john_3_16_text)
        assert esv.received == [("fetch_scripture", (john_3_16,))]
        assert gen.total_calls == 0

    @pytest.mark.asyncio
    async def test_esv_failure_falls_through_to_generative(self, build_service, make_generative, make_scripture, john_3_16):
        esv = make_scripture("esv", 1, [unauthorized()])
        generated = [VerseText(16, "For God so loved the world")]
        gen = make_generative("gen", 10, [Success(generated)])
        service = build_service(esv, gen)

        assert await service.fetch_scripture(john_3_16, "ESV") == Success(generated)
        assert esv.calls["fetch_scripture"] == 1
        operation, args = gen.received[0]
        ref, translation, system_prompt, user_prompt = args
        assert ref == john_3_16
        assert translation == "ESV"
        assert system_prompt == prompts.SCRIPTURE_SCHOLAR
        assert user_prompt == prompts.scripture_prompt(john_3_16, "ESV")

    @pytest.mark.asyncio
    async def test_unsupported_translation_skips_lookup(self, build_service, make_generative, make_scripture, john_3_16):
        esv = make_scripture("esv", 1, [Success([])])
        gen = make_generative("gen", 10, [Success([VerseText(16, "kjv text")])])
        service = build_service(esv, gen)

        result = await service.fetch_scripture(john_3_16, "KJV")
        assert result.value == [VerseText(16, "kjv text")]
        assert esv.total_calls == 0

    @pytest.mark.asyncio
    async def test_translation_match_is_case_insensitive(self, build_service, make_scripture, john_3_16, john_3_16_text):
        esv = make_scripture("esv", 1, [Success(john_3_16_text)])
        service = build_service(esv)
        assert await service.fetch_scripture(john_3_16, "esv") == Success(john_3_16_text)


class TestOperations:
    @pytest.mark.asyncio
    async def test_score_uses_central_prompts(self, build_service, make_generative, sample_score):
        gen = make_generative("gen", 10, [Success(sample_score)])
        service = build_service(gen)

        assert await service.get_ai_score("John 3:16", "God loves me") == Success(sample_score)
        _, (verse_ref, comment, system_prompt, user_prompt, feedback_prompt) = gen.received[0]
        assert (verse_ref, comment) == ("John 3:16", "God loves me")
        assert system_prompt == prompts.SCORING_EXPERT
        assert "God loves me" in user_prompt
        assert feedback_prompt == prompts.application_feedback_prompt("John 3:16", "God loves me")

    @pytest.mark.asyncio
    async def test_user_text_is_sanitized(self, build_service, make_generative):
        gen = make_generative("gen", 10, [Success(True)])
        service = build_service(gen)

        await service.validate_takeaway("John 3:16", "  God\x00 loves\x07 the world  ")
        _, (system_prompt, user_prompt) = gen.received[0]
        assert system_prompt == prompts.TAKEAWAY_VALIDATOR
        assert '"God loves the world"' in user_prompt

    @pytest.mark.asyncio
    async def test_verse_search(self, build_service, make_generative):
        refs = [VerseReference("Romans", 8, 28, 28)]
        gen = make_generative("gen", 10, [Success(refs)])
        service = build_service(gen)
        assert await service.find_verses_by_description("all things work together") == Success(refs)


class TestProbe:
    @pytest.mark.asyncio
    async def test_probe_fetches_john_3_16(self, build_service, make_scripture, john_3_16, john_3_16_text):
        esv = make_scripture("esv", 1, [Success(john_3_16_text)])
        service = build_service(esv)
        assert await service.probe("esv") == Success(john_3_16_text)
        assert esv.received == [("fetch_scripture", (john_3_16,))]

    @pytest.mark.asyncio
    async def test_probe_does_not_retry(self, build_service, make_generative):
        gen = make_generative("gen", 10, [rate_limited()])
        service = build_service(gen)
        assert isinstance(await service.probe("gen"), Failure)
        assert gen.total_calls == 1

    @pytest.mark.asyncio
    async def test_probe_unknown_or_unavailable(self, build_service, make_generative):
        gen = make_generative("gen", 10, [Success([])])
        service = build_service(gen, configs={"gen": ProviderConfig(credential="")})
        assert "Unknown provider" in (await service.probe("nope")).message
        unavailable = await service.probe("gen")
        assert isinstance(unavailable.cause, NotConfiguredError)
        assert gen.total_calls == 0


def test_service_is_constructible_without_globals():
    from scripture_gateway.providers.registry import ProviderRegistry

    first = ScriptureService(ProviderRegistry())
    second = ScriptureService(ProviderRegistry())
    assert first.registry is not second.registry


class TestInputValidation:
    @pytest.mark.asyncio
    async def test_blank_input_after_sanitising_is_rejected(self, build_service, make_generative):
        gen = make_generative("gen", 10, [Success(True)])
        service = build_service(gen)

        result = await service.validate_takeaway("John 3:16", "\x00\x07  ")

        assert isinstance(result.cause, ValidationError)
        assert "takeaway" in result.message
        assert gen.total_calls == 0

    @pytest.mark.asyncio
    async def test_blank_description_is_rejected(self, build_service, make_generative):
        gen = make_generative("gen", 10, [Success([])])
        service = build_service(gen)
        result = await service.find_verses_by_description("\x01\x02")
        assert isinstance(result.cause, ValidationError)
        assert gen.total_calls == 0
