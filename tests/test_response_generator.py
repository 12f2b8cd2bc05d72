"""
Tests for reply generation and its fallback policy.
"""

import pytest

from convobot.exceptions import (
    CompletionError,
    ContentRejected,
    InvalidContext,
    QuotaExceeded,
    ServiceUnavailable,
)
from convobot.models.domain import HistoryTurn
from convobot.services.response_generator import (
    EMPTY_RESPONSE_FALLBACK,
    FAILURE_FALLBACK,
    FAILURE_MESSAGES,
    GENERIC_APOLOGY,
    GenerationContext,
    ResponseGenerator,
)

from tests.factories import FakeLLM, make_bot


class TestInvalidContext:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "   ", None])
    async def test_blank_message_rejected_without_calls(self, message):
        llm = FakeLLM()
        with pytest.raises(InvalidContext):
            await ResponseGenerator(llm).generate(GenerationContext(bot=make_bot(), user_message=message))
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_missing_bot_rejected(self):
        llm = FakeLLM()
        with pytest.raises(InvalidContext):
            await ResponseGenerator(llm).generate(GenerationContext(bot=None, user_message="hi"))
        assert llm.prompts == []


class TestGenerate:

    @pytest.mark.asyncio
    async def test_returns_completion_text(self):
        llm = FakeLLM(reply="  We ship anywhere!  ")
        reply = await ResponseGenerator(llm).generate(GenerationContext(bot=make_bot(), user_message="Shipping?"))
        assert reply == "We ship anywhere!"
        assert "CURRENT USER MESSAGE: Shipping?" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_history_reaches_prompt(self):
        llm = FakeLLM()
        context = GenerationContext(
            bot=make_bot(),
            user_message="And rockets?",
            history=[HistoryTurn(role="user", text="Do you sell anvils?"), HistoryTurn(role="model", text="Yes.")],
        )
        await ResponseGenerator(llm).generate(context)
        assert "USER: Do you sell anvils?\nMODEL: Yes." in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_unavailable_service_returns_bot_fallback(self):
        llm = FakeLLM(available=False)
        reply = await ResponseGenerator(llm).generate(GenerationContext(bot=make_bot(), user_message="hi"))
        assert reply == "Sorry, try again later."
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_unavailable_service_without_fallback_uses_generic_apology(self):
        llm = FakeLLM(available=False)
        reply = await ResponseGenerator(llm).generate(
            GenerationContext(bot=make_bot(fallbackMessage=""), user_message="hi")
        )
        assert reply == GENERIC_APOLOGY

    @pytest.mark.asyncio
    async def test_reply_truncated(self):
        llm = FakeLLM(reply="a" * 2000)
        reply = await ResponseGenerator(llm, max_response_chars=500).generate(
            GenerationContext(bot=make_bot(), user_message="hi")
        )
        assert reply == "a" * 500

    @pytest.mark.asyncio
    async def test_user_message_truncated_before_prompting(self):
        llm = FakeLLM()
        await ResponseGenerator(llm, max_user_message_chars=10).generate(
            GenerationContext(bot=make_bot(), user_message="0123456789TAIL")
        )
        assert "CURRENT USER MESSAGE: 0123456789\n" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_empty_reply_uses_fallback(self):
        reply = await ResponseGenerator(FakeLLM(reply="   ")).generate(
            GenerationContext(bot=make_bot(fallbackMessage=""), user_message="hi")
        )
        assert reply == EMPTY_RESPONSE_FALLBACK


class TestFailureMapping:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error_type", [ServiceUnavailable, QuotaExceeded, ContentRejected])
    async def test_classified_failures_get_specific_apology(self, error_type):
        llm = FakeLLM(error=error_type("boom"))
        reply = await ResponseGenerator(llm).generate(GenerationContext(bot=make_bot(), user_message="hi"))
        assert reply == FAILURE_MESSAGES[error_type]

    @pytest.mark.asyncio
    async def test_unclassified_failure_uses_bot_fallback(self):
        llm = FakeLLM(error=CompletionError("boom"))
        reply = await ResponseGenerator(llm).generate(GenerationContext(bot=make_bot(), user_message="hi"))
        assert reply == "Sorry, try again later."

    @pytest.mark.asyncio
    async def test_unexpected_exception_never_escapes(self):
        llm = FakeLLM(error=RuntimeError("socket closed"))
        reply = await ResponseGenerator(llm).generate(
            GenerationContext(bot=make_bot(fallbackMessage=""), user_message="hi")
        )
        assert reply == FAILURE_FALLBACK
