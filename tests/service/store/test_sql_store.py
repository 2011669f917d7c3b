import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.model.chat.message import (
    Feedback,
    FarmLocation,
    GenerationMetadata,
    MessageContext,
    NewMessage,
    Role,
    TokenUsage,
)
from app.service.chat.exceptions import NotFoundError, ValidationError
from app.service.store.factory import build_message_store
from app.service.store.memory import InMemoryMessageStore
from app.service.store.sql import SqlMessageStore


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    store = build_message_store(enabled=True, bind=engine)
    yield store
    engine.dispose()


def _message(text="When to water wheat?", session_id="s1", role=Role.USER, **kwargs):
    return NewMessage(session_id=session_id, role=role, text=text, **kwargs)


def test_factory_returns_durable_sql_store(sql_store):
    assert isinstance(sql_store, SqlMessageStore)
    assert sql_store.durable is True


def test_factory_degrades_when_database_unreachable(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'chat.db'}", future=True)

    store = build_message_store(enabled=True, bind=engine)

    assert isinstance(store, InMemoryMessageStore)
    assert store.durable is False


def test_factory_respects_disabled_history():
    store = build_message_store(enabled=False)

    assert isinstance(store, InMemoryMessageStore)


def test_append_round_trips_context_and_metadata(sql_store):
    stored = sql_store.append(
        _message(
            role=Role.BOT,
            text="Irrigate at crown root stage",
            language="hi",
            user_id="farmer-1",
            context=MessageContext(
                farm_location=FarmLocation(state="Punjab", district="Ludhiana"),
                crop_type="wheat",
                previous_messages=2,
            ),
            metadata=GenerationMetadata(
                processing_time=120, model="test-model", tokens=TokenUsage(input=40, output=8), confidence=0.85
            ),
        )
    )

    loaded = sql_store.list_by_session("s1")[0]

    assert loaded.id == stored.id
    assert loaded.role == Role.BOT
    assert loaded.language == "hi"
    assert loaded.user_id == "farmer-1"
    assert loaded.context.farm_location.district == "Ludhiana"
    assert loaded.context.previous_messages == 2
    assert loaded.metadata.tokens.input == 40
    assert loaded.feedback is None


def test_append_rejects_blank_text(sql_store):
    with pytest.raises(ValidationError):
        sql_store.append(_message(text=" "))

    assert sql_store.list_by_session("s1") == []


def test_recent_window_in_time_order(sql_store):
    for i in range(7):
        sql_store.append(_message(text=f"m{i}"))

    recent = sql_store.recent("s1", 5)

    assert [m.text for m in recent] == ["m2", "m3", "m4", "m5", "m6"]
    assert all(a.created_at <= b.created_at for a, b in zip(recent, recent[1:]))


def test_list_by_session_limit_and_unknown(sql_store):
    for i in range(3):
        sql_store.append(_message(text=f"m{i}"))

    assert [m.text for m in sql_store.list_by_session("s1", limit=2)] == ["m0", "m1"]
    assert sql_store.list_by_session("nobody") == []


def test_update_feedback_merges(sql_store):
    stored = sql_store.append(_message(role=Role.BOT, text="Use neem oil"))

    sql_store.update_feedback(stored.id, Feedback(helpful=True))
    updated = sql_store.update_feedback(stored.id, Feedback(rating=3))

    assert updated.feedback == Feedback(helpful=True, rating=3)
    assert updated.text == "Use neem oil"


@pytest.mark.parametrize("message_id", ["999", "not-a-number"])
def test_update_feedback_unknown(sql_store, message_id):
    with pytest.raises(NotFoundError):
        sql_store.update_feedback(message_id, Feedback(helpful=True))

    assert sql_store.list_by_session("s1") == []


def test_sessions_for_user(sql_store):
    sql_store.append(_message(text="a", session_id="s1", user_id="u1"))
    sql_store.append(_message(text="b", session_id="s2", user_id="u1"))
    sql_store.append(_message(text="c", session_id="s2", user_id="u1"))

    sessions = sql_store.sessions_for_user("u1")

    assert [(s.session_id, s.message_count) for s in sessions] == [("s2", 2), ("s1", 1)]
    assert sessions[0].last_message == "c"
