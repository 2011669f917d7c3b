import time

import pytest

import app.service.chat.chat as chat_module
from app.model.chat.chat_request import RequestContext
from app.model.chat.message import FarmLocation, Role
from app.service.chat.chat import ChatOrchestrator
from app.service.chat.context import ContextAssembler
from app.service.chat.exceptions import PersistenceError, ValidationError
from app.service.chat.generator import FALLBACK_MESSAGE, ResponseGenerator
from app.service.store.memory import InMemoryMessageStore


class _FailingStore(InMemoryMessageStore):
    def __init__(self, fail_role, durable=True):
        super().__init__()
        self.fail_role = fail_role
        self.durable = durable

    def append(self, message):
        if message.role == self.fail_role:
            raise PersistenceError("db down")
        return super().append(message)


class _StubHintCache:
    def __init__(self):
        self.saved = {}

    def get_context(self, session_id):
        return self.saved.get(session_id)

    def set_context(self, session_id, context):
        self.saved[session_id] = context


def _orchestrator(store, complete, timeout_seconds=2, hint_cache=None):
    generator = ResponseGenerator(complete=complete, model="test-model", timeout_seconds=timeout_seconds)
    return ChatOrchestrator(store, ContextAssembler(store, hint_cache), generator, hint_cache)


@pytest.mark.asyncio
async def test_process_text_turn_success_check(store, complete):
    orchestrator = _orchestrator(store, complete)

    result = await orchestrator.process_text_turn("s1", "When to water wheat?")

    assert result.user_message.text == "When to water wheat?"
    assert result.user_message.role == Role.USER
    assert result.bot_message.role == Role.BOT
    assert result.bot_message.text
    assert result.user_message.session_id == result.bot_message.session_id == "s1"
    assert result.bot_message.metadata.confidence > 0
    assert result.user_message.metadata is None
    assert [m.id for m in store.list_by_session("s1")] == [result.user_message.id, result.bot_message.id]


@pytest.mark.asyncio
async def test_second_turn_sees_first_turn(store, complete):
    orchestrator = _orchestrator(store, complete)

    first = await orchestrator.process_text_turn("s1", "When to water wheat?")
    second = await orchestrator.process_text_turn("s1", "How much water?")

    window_ids = [m.id for m in second.context.recent_messages]
    assert window_ids == [first.user_message.id, first.bot_message.id]
    assert second.context.previous_messages == 2
    assert second.bot_message.context.previous_messages == 2
    assert "user: When to water wheat?" in complete.prompts[-1]
    assert "How much water?" in complete.prompts[-1]


@pytest.mark.asyncio
async def test_first_turn_has_empty_window(store, complete):
    orchestrator = _orchestrator(store, complete)

    result = await orchestrator.process_text_turn("fresh", "Hello")

    assert result.context.recent_messages == []
    assert result.context.crop_type is None
    assert result.context.season is None


@pytest.mark.asyncio
async def test_voice_turn_normalizes_before_persisting(store, complete):
    complete.reply = "Step 1.\n\nStep 2."
    orchestrator = _orchestrator(store, complete)

    result = await orchestrator.process_voice_turn("v1", "gehun mein paani kab dein")

    assert result.bot_message.text == "Step 1. Step 2."
    stored = store.list_by_session("v1")[-1]
    assert stored.text == result.bot_message.text
    assert result.context.is_voice is True
    assert result.user_message.language == "hi"
    assert "Voice query in hi" in complete.prompts[-1]


@pytest.mark.asyncio
async def test_voice_turn_strips_markdown(store, complete):
    complete.reply = "**Irrigate** in the _morning_.\nAvoid noon.\n\n# Note\nCheck moisture"
    orchestrator = _orchestrator(store, complete)

    result = await orchestrator.process_voice_turn("v1", "paani")

    text = result.bot_message.text
    assert "\n" not in text
    assert "*" not in text and "_" not in text and "#" not in text


@pytest.mark.asyncio
async def test_generator_failure_returns_fallback(store, complete):
    complete.reply = RuntimeError("quota exceeded")
    orchestrator = _orchestrator(store, complete)

    result = await orchestrator.process_text_turn("s1", "When to water wheat?")

    assert result.bot_message.text == FALLBACK_MESSAGE
    assert result.bot_message.metadata.confidence == 0
    assert "quota exceeded" in result.bot_message.metadata.error
    assert len(store.list_by_session("s1")) == 2


@pytest.mark.asyncio
async def test_generator_timeout_is_bounded(store):
    def slow_complete(_prompt):
        time.sleep(0.5)
        return "late answer"

    orchestrator = _orchestrator(store, slow_complete, timeout_seconds=0.05)

    started = time.monotonic()
    result = await orchestrator.process_text_turn("s1", "When to water wheat?")

    assert time.monotonic() - started < 0.45
    assert result.bot_message.metadata.confidence == 0
    assert result.bot_message.text == FALLBACK_MESSAGE


@pytest.mark.asyncio
async def test_blank_message_rejected_before_side_effects(store, complete):
    orchestrator = _orchestrator(store, complete)

    with pytest.raises(ValidationError):
        await orchestrator.process_text_turn("s1", "  ")
    with pytest.raises(ValidationError):
        await orchestrator.process_text_turn("", "hello")

    assert store.list_by_session("s1") == []
    assert complete.prompts == []


@pytest.mark.asyncio
async def test_user_message_failure_is_fatal(complete):
    store = _FailingStore(Role.USER)
    orchestrator = _orchestrator(store, complete)

    with pytest.raises(PersistenceError, match="db down"):
        await orchestrator.process_text_turn("s1", "When to water wheat?")

    assert complete.prompts == []


@pytest.mark.asyncio
async def test_degraded_store_keeps_answering(complete):
    store = _FailingStore(Role.USER, durable=False)
    orchestrator = _orchestrator(store, complete)

    result = await orchestrator.process_text_turn("s1", "When to water wheat?")

    assert orchestrator.durable is False
    assert result.user_message.persisted is False
    assert result.user_message.id.startswith("user-")
    assert result.bot_message.persisted is True


@pytest.mark.asyncio
async def test_bot_message_failure_still_returns_answer(complete):
    store = _FailingStore(Role.BOT)
    orchestrator = _orchestrator(store, complete)

    result = await orchestrator.process_text_turn("s1", "When to water wheat?")

    assert result.bot_message.text == complete.reply
    assert result.bot_message.persisted is False
    assert [m.role for m in store.list_by_session("s1")] == [Role.USER]


@pytest.mark.asyncio
async def test_hints_carry_over_between_turns(store, complete, farmer):
    orchestrator = _orchestrator(store, complete)

    await orchestrator.process_text_turn(
        "s1", "Sowing advice?", request_context=RequestContext(crop_type="wheat", season="rabi")
    )
    second = await orchestrator.process_text_turn(
        "s1", "And fertilizer?", user=farmer, request_context=RequestContext(season="zaid")
    )

    assert second.context.crop_type == "wheat"
    assert second.context.season == "zaid"
    assert second.context.farm_location.district == "Ludhiana"
    assert second.context.farm_size == 4
    assert second.user_message.user_id == "farmer-1"


@pytest.mark.asyncio
async def test_request_location_beats_profile(store, complete, farmer):
    orchestrator = _orchestrator(store, complete)
    location = FarmLocation(state="Kerala", district="Thrissur")

    result = await orchestrator.process_text_turn(
        "s1", "Coconut care?", user=farmer, request_context=RequestContext(farm_location=location)
    )

    assert result.context.farm_location.state == "Kerala"


@pytest.mark.asyncio
async def test_hint_cache_is_written(store, complete):
    cache = _StubHintCache()
    orchestrator = _orchestrator(store, complete, hint_cache=cache)

    await orchestrator.process_text_turn("s1", "Sowing advice?", request_context=RequestContext(crop_type="rice"))

    assert cache.saved["s1"].crop_type == "rice"


@pytest.mark.asyncio
async def test_start_session(store, complete, monkeypatch):
    monkeypatch.setattr(chat_module, "new_session_id", lambda: "generated-session")
    orchestrator = _orchestrator(store, complete)

    empty_id, empty = await orchestrator.start_session()
    _, blank = await orchestrator.start_session("   ")
    session_id, result = await orchestrator.start_session("How do I test my soil?")

    assert empty_id == "generated-session"
    assert empty is None
    assert blank is None
    assert session_id == "generated-session"
    assert result.user_message.session_id == "generated-session"
