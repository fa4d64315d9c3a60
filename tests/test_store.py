"""Tests for the SQLite chat store."""

import sqlite3

import pytest

from talklink import InputError, Message, PersistenceError, get_chat_store
from talklink.models import new_id
from talklink.store import SQLiteChatStore


def make_message(session_id, role="user", content="hello", **kwargs):
    return Message(
        id=new_id(), session_id=session_id, role=role, content=content, **kwargs
    )


def test_store_creates_database_file(tmp_path):
    db_path = tmp_path / "nested" / "chat.db"

    store = SQLiteChatStore(db_path)

    assert db_path.exists()
    assert not store._schema_upgraded


def test_get_chat_store_factory(tmp_path):
    store = get_chat_store(db_path=tmp_path / "chat.db")

    assert isinstance(store, SQLiteChatStore)
    assert store.backend == "sqlite"


def test_get_chat_store_rejects_unknown_backend(tmp_path):
    with pytest.raises(ValueError, match="Unsupported chat store backend"):
        get_chat_store("postgres", db_path=tmp_path / "chat.db")


# Chatbots


def test_create_and_get_chatbot(temp_chat_store):
    created = temp_chat_store.create_chatbot(
        "Support",
        "owner-1",
        system_prompt="You are Bob.",
        description="Help desk",
        settings={"theme": "dark"},
    )

    fetched = temp_chat_store.get_chatbot(created.id)

    assert fetched == created
    assert fetched.is_active
    assert fetched.settings == {"theme": "dark"}


def test_get_missing_chatbot_returns_none(temp_chat_store):
    assert temp_chat_store.get_chatbot("missing") is None


def test_list_chatbots_by_owner(temp_chat_store):
    first = temp_chat_store.create_chatbot("One", "owner-1")
    second = temp_chat_store.create_chatbot("Two", "owner-1")
    temp_chat_store.create_chatbot("Other", "owner-2")

    bots = temp_chat_store.list_chatbots("owner-1")

    assert [bot.id for bot in bots] == [second.id, first.id]


def test_update_chatbot(temp_chat_store, chatbot):
    updated = temp_chat_store.update_chatbot(
        chatbot.id, system_prompt="You are Alice.", is_active=False
    )

    assert updated.system_prompt == "You are Alice."
    assert not updated.is_active
    assert updated.updated_at >= chatbot.updated_at


def test_update_chatbot_rejects_unknown_fields(temp_chat_store, chatbot):
    with pytest.raises(InputError, match="owner_id"):
        temp_chat_store.update_chatbot(chatbot.id, owner_id="someone-else")


def test_update_missing_chatbot(temp_chat_store):
    with pytest.raises(InputError, match="Chatbot not found"):
        temp_chat_store.update_chatbot("missing", name="New")


# Sessions


def test_create_get_and_end_session(temp_chat_store, chatbot):
    session = temp_chat_store.create_session(
        chatbot.id, user_identity="visitor", user_email="v@example.org"
    )

    assert temp_chat_store.get_session(session.id) == session

    temp_chat_store.end_session(session.id)

    assert not temp_chat_store.get_session(session.id).is_active


def test_end_missing_session(temp_chat_store):
    with pytest.raises(InputError, match="Session not found"):
        temp_chat_store.end_session("missing")


def test_session_requires_existing_chatbot(temp_chat_store):
    with pytest.raises(PersistenceError, match="create_session"):
        temp_chat_store.create_session("missing-bot")


def test_list_sessions(temp_chat_store, chatbot, session):
    assert [s.id for s in temp_chat_store.list_sessions(chatbot.id)] == [session.id]


# Messages


def test_messages_are_listed_in_insertion_order(temp_chat_store, session):
    timestamp = "2024-01-01T00:00:00.000000+00:00"
    contents = ["first", "second", "third"]
    for content in contents:
        temp_chat_store.insert_message(
            make_message(session.id, content=content, created_at=timestamp)
        )

    messages = temp_chat_store.list_messages(session.id)

    assert [m.content for m in messages] == contents


def test_message_round_trips_source_and_metadata(temp_chat_store, session):
    message = make_message(
        session.id,
        role="assistant",
        content="9 to 5",
        response_source="knowledge_base",
        metadata={"score": 0.5},
    )

    temp_chat_store.insert_message(message)

    assert temp_chat_store.list_messages(session.id) == [message]


@pytest.mark.parametrize(
    ("role", "source", "match"),
    [
        ("robot", None, "Invalid message role"),
        ("assistant", "web", "Invalid response source"),
    ],
)
def test_insert_message_validates_enums(temp_chat_store, session, role, source, match):
    with pytest.raises(InputError, match=match):
        temp_chat_store.insert_message(
            make_message(session.id, role=role, response_source=source)
        )

    assert temp_chat_store.list_messages(session.id) == []


def test_message_requires_existing_session(temp_chat_store):
    with pytest.raises(PersistenceError):
        temp_chat_store.insert_message(make_message("missing-session"))


def test_duplicate_message_id_raises_persistence_error(temp_chat_store, session):
    message = make_message(session.id)
    temp_chat_store.insert_message(message)

    with pytest.raises(PersistenceError) as exc_info:
        temp_chat_store.insert_message(message)

    assert exc_info.value.retryable
    assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)


# Knowledge entries


def test_entries_are_tenant_scoped_and_newest_first(
    temp_chat_store, chatbot_factory, entry_factory
):
    bot_a = chatbot_factory("A")
    bot_b = chatbot_factory("B")
    old = entry_factory(bot_a.id, "Old one here?", "Old", created_at="2024-01-01")
    new = entry_factory(bot_a.id, "New one here?", "New", created_at="2024-03-01")
    foreign = entry_factory(bot_b.id, "Foreign here?", "Foreign")
    for entry in (old, new, foreign):
        temp_chat_store.insert_entry(entry)

    entries = temp_chat_store.load_entries_for_tenant(bot_a.id)

    assert [entry.id for entry in entries] == [new.id, old.id]


def test_entry_round_trip(temp_chat_store, hours_entry):
    temp_chat_store.insert_entry(hours_entry)

    (loaded,) = temp_chat_store.load_entries_for_tenant(hours_entry.chatbot_id)

    assert loaded == hours_entry
    assert loaded.keywords == frozenset({"hours", "open", "schedule"})


def test_stored_keywords_are_normalized_on_load(temp_chat_store, chatbot):
    with sqlite3.connect(temp_chat_store.db_path) as conn:
        conn.execute(
            "INSERT INTO knowledge_entries "
            "(id, chatbot_id, question, answer, keywords, metadata, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            ("legacy", chatbot.id, "Q?", "A", '["Hours", " OPEN ", ""]', "", "2024"),
        )

    (entry,) = temp_chat_store.load_entries_for_tenant(chatbot.id)

    assert entry.keywords == frozenset({"hours", "open"})
    assert entry.metadata == {}


def test_schema_migration_adds_category_columns(tmp_path):
    db_path = tmp_path / "legacy.db"
    with sqlite3.connect(db_path) as conn:
        conn.execute("""
            CREATE TABLE knowledge_entries (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                chatbot_id TEXT,
                question TEXT NOT NULL,
                answer TEXT NOT NULL,
                keywords TEXT NOT NULL DEFAULT '[]',
                source_document_id TEXT,
                metadata TEXT NOT NULL DEFAULT '{}',
                created_at TEXT NOT NULL
            )
        """)

    store = SQLiteChatStore(db_path)

    assert store._schema_upgraded
    with sqlite3.connect(db_path) as conn:
        rows = conn.execute("PRAGMA table_info(knowledge_entries)").fetchall()
    columns = {row[1] for row in rows}
    assert {"category", "subcategory"} <= columns
    assert not SQLiteChatStore(db_path)._schema_upgraded


# Analytics


def test_log_and_count_events(temp_chat_store, chatbot, session):
    temp_chat_store.log_event(
        chatbot.id, "message_resolved", session_id=session.id, event_data={"a": 1}
    )
    temp_chat_store.log_event(chatbot.id, "widget_opened")

    assert temp_chat_store.count_events(chatbot.id) == 2
    assert temp_chat_store.count_events(chatbot.id, "message_resolved") == 1
    assert temp_chat_store.count_events("other-bot") == 0
