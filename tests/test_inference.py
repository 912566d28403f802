"""Tests for InferenceSession lifecycle and response normalization."""

import logging

import pytest

from wildguard_rag.config import EngineConfig, SamplingConfig
from wildguard_rag.errors import GenerationError, ModelUnavailable, SessionCreationError
from wildguard_rag.inference import NON_ANSWER_TEXT, InferenceSession, SessionState, normalize_response

MOCK_CONFIG = EngineConfig(type="mock", model="mock-model")


@pytest.mark.parametrize("raw", ["", "   ", "...", "…", " … ", "Too short"])
def test_unusable_responses_are_replaced(raw):
    assert normalize_response(raw) == NON_ANSWER_TEXT


def test_usable_response_is_stripped():
    assert normalize_response("  Boil water for one minute.\n") == "Boil water for one minute."


def test_min_chars_threshold():
    assert normalize_response("Boil it.", min_chars=5) == "Boil it."


def test_load_opens_first_session():
    inference = InferenceSession()
    assert inference.state is SessionState.UNINITIALIZED
    assert inference.load(MOCK_CONFIG)
    assert inference.available
    assert inference.state is SessionState.ACTIVE
    assert inference.current_session is not None


def test_load_forwards_engine_settings():
    inference = InferenceSession(SamplingConfig(top_k=5))
    inference.load(EngineConfig(type="mock", model="m", max_tokens=99, extra={"response": "Custom answer text."}))
    assert inference.engine.max_tokens == 99
    assert inference.engine.response == "Custom answer text."
    assert inference.current_session.sampling.top_k == 5


def test_failed_load_is_terminal():
    inference = InferenceSession()
    assert not inference.load(EngineConfig(type="no_such_engine", model="m"))
    assert inference.state is SessionState.UNAVAILABLE
    assert not inference.available
    assert not inference.load(MOCK_CONFIG)
    assert inference.state is SessionState.UNAVAILABLE


def test_attach_ignored_after_failed_load(mock_engine):
    inference = InferenceSession()
    inference.load(EngineConfig(type="no_such_engine", model="m"))
    inference.attach(mock_engine)
    assert not inference.available


def test_load_survives_session_failure():
    inference = InferenceSession()
    assert inference.load(EngineConfig(type="mock", model="m", extra={"fail_sessions": True}))
    assert inference.available
    assert inference.state is SessionState.READY
    assert inference.current_session is None


def test_create_session_closes_previous(mock_engine):
    inference = InferenceSession()
    inference.attach(mock_engine)
    first = inference.create_session()
    second = inference.create_session()
    assert first.closed
    assert not second.closed
    assert inference.current_session is second


def test_close_failure_does_not_block_new_session(mock_engine, monkeypatch, caplog):
    inference = InferenceSession()
    inference.attach(mock_engine)
    first = inference.create_session()

    def broken_close():
        raise RuntimeError("native handle already freed")

    monkeypatch.setattr(first, "close", broken_close)
    with caplog.at_level(logging.WARNING, logger="wildguard_rag.inference"):
        second = inference.create_session()
    assert inference.current_session is second
    assert "Error closing old session" in caplog.text


def test_create_session_without_engine():
    with pytest.raises(ModelUnavailable):
        InferenceSession().create_session()


def test_create_session_failure(mock_engine):
    inference = InferenceSession()
    inference.attach(mock_engine)
    mock_engine.fail_sessions = True
    with pytest.raises(SessionCreationError, match="no free session slots"):
        inference.create_session()
    assert inference.current_session is None
    assert inference.state is SessionState.READY


def test_generate_normalizes_output(mock_engine):
    inference = InferenceSession()
    inference.attach(mock_engine)
    session = inference.create_session()
    assert inference.generate("Fire?", session) == "Mock answer with enough detail."
    mock_engine.response = "..."
    assert inference.generate("Fire?") == NON_ANSWER_TEXT
    assert mock_engine.prompts == ["Fire?", "Fire?"]


def test_generate_without_session(mock_engine):
    inference = InferenceSession()
    inference.attach(mock_engine)
    with pytest.raises(ModelUnavailable):
        inference.generate("Fire?")


def test_generate_wraps_engine_errors(mock_engine):
    inference = InferenceSession()
    inference.attach(mock_engine)
    inference.create_session()
    mock_engine.error = RuntimeError("out of memory")
    with pytest.raises(GenerationError, match="out of memory"):
        inference.generate("Fire?")


def test_close_releases_engine(mock_engine):
    inference = InferenceSession()
    inference.attach(mock_engine)
    session = inference.create_session()
    inference.close()
    assert session.closed
    assert mock_engine.closed
    assert not inference.available
    assert inference.state is SessionState.UNINITIALIZED
