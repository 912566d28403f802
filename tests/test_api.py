"""Tests for the create_assistant() wiring."""

import pytest

from wildguard_rag import create_assistant, load_knowledge_store
from wildguard_rag.knowledge import clear_knowledge_registry

MOCK_SETUP = {
    "engine": {"type": "mock", "model": "mock-model", "response": "Gather dry tinder first, then kindling."},
    "embedder": {"backend": "keyword_counts"},
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("WILDGUARD_ENGINE", "WILDGUARD_MODEL_PATH", "WILDGUARD_KNOWLEDGE_BASE", "WILDGUARD_TOP_K"):
        monkeypatch.delenv(var, raising=False)
    yield
    clear_knowledge_registry()


def test_create_assistant_answers_from_builtin_knowledge():
    assistant = create_assistant(MOCK_SETUP)
    try:
        assert assistant.is_loading.value is False
        assert assistant.messages.value[0].text == "Hi! I'm WildGuard AI. How can I help you?"
        assistant.send_message("How do I start a fire?").result(timeout=5)
        assert assistant.messages.value[-1].text == "Gather dry tinder first, then kindling."
    finally:
        assistant.close()


def test_create_assistant_without_model():
    assistant = create_assistant(
        {"engine": {"type": "no_such_engine", "model": "gemma"}, "embedder": MOCK_SETUP["embedder"]},
    )
    try:
        assert "AI model is not loaded" in assistant.messages.value[0].text
        assistant.send_message("fire?")
        assert assistant.messages.value[-1].text == (
            "AI model is not loaded. Make sure gemma (no_such_engine) is available."
        )
    finally:
        assistant.close()


def test_create_assistant_with_unknown_knowledge_source():
    assistant = create_assistant({**MOCK_SETUP, "knowledge": {"source": "no_such_kb"}})
    try:
        assert "Knowledge base is empty" in assistant.messages.value[0].text
    finally:
        assistant.close()


def test_create_assistant_with_embedder_disabled():
    assistant = create_assistant({**MOCK_SETUP, "embedder": {"enabled": False}})
    try:
        assert "keyword-only retrieval" in assistant.messages.value[0].text
    finally:
        assistant.close()


def test_create_assistant_without_initialize():
    assistant = create_assistant(MOCK_SETUP, initialize=False)
    try:
        assert assistant.is_loading.value is True
        assert assistant.messages.value == ()
    finally:
        assistant.close()


def test_create_assistant_with_custom_prompt(tmp_path):
    (tmp_path / "terse.yaml").write_text(
        'name: terse\nversion: "1.0"\ndescription: Terse\ntemplate: "{{ context }}|{{ question }}"\n',
        encoding="utf-8",
    )
    assistant = create_assistant({**MOCK_SETUP, "prompt": {"template": "terse"}}, prompt_dirs=[tmp_path])
    try:
        assert assistant.messages.value[0].author.value == "assistant"
        assistant.send_message("fire?").result(timeout=5)
        assert assistant.messages.value[-1].text == "Gather dry tinder first, then kindling."
    finally:
        assistant.close()


def test_create_assistant_with_unknown_prompt():
    with pytest.raises(KeyError, match="Unknown prompt"):
        create_assistant({**MOCK_SETUP, "prompt": {"template": "no_such_prompt"}})


def test_load_knowledge_store_from_path(tmp_path):
    kb = tmp_path / "kb.json"
    kb.write_text('[{"topic": "Fire", "text": "Use dry tinder."}]', encoding="utf-8")
    assert load_knowledge_store(kb).chunk_count() == 1
    assert load_knowledge_store("no_such_kb").is_empty()
