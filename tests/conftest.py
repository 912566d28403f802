"""Shared fixtures for assistant tests."""

import threading

import numpy as np
import pytest

from wildguard_rag.embedding import Embedder, EmbeddingBackend, EmbeddingBackendRegistry
from wildguard_rag.engines import Engine, EngineRegistry, Session
from wildguard_rag.knowledge import KnowledgeStore
from wildguard_rag.models import KnowledgeChunk, PromptSpec

VOCABULARY = ("fire", "water", "shelter", "knot", "cold", "snake")

# -- Fake embedding backend --------------------------------------------------


@EmbeddingBackendRegistry.register("keyword_counts")
class KeywordCountBackend(EmbeddingBackend):
    """Embeds text as occurrence counts of a tiny vocabulary."""

    name = "keyword_counts"

    def __init__(self, model="counts", device=None):
        self.model = model
        self.calls = []
        self.fail = False

    def encode(self, text):
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("encoder crashed")
        lower = text.lower()
        return np.array([float(lower.count(word)) for word in VOCABULARY])


# -- Mock engine for session and conversation tests ---------------------------


class MockSession(Session):
    def __init__(self, engine, sampling):
        super().__init__(sampling)
        self._engine = engine

    def generate(self, prompt):
        self._ensure_open()
        self._engine.prompts.append(prompt)
        self._engine.started.set()
        if self._engine.gate is not None:
            self._engine.gate.wait(timeout=5)
        if self._engine.error is not None:
            raise self._engine.error
        return self._engine.response


@EngineRegistry.register("mock")
class MockEngine(Engine):
    name = "mock"

    def __init__(self, model="mock-model", *, response="Mock answer with enough detail.", fail_sessions=False, **kwargs):
        super().__init__(model, **kwargs)
        self.response = response
        self.fail_sessions = fail_sessions
        self.error = None
        self.gate = None
        self.started = threading.Event()
        self.prompts = []
        self.sessions = []
        self.closed = False

    def create_session(self, sampling):
        if self.fail_sessions:
            raise RuntimeError("no free session slots")
        session = MockSession(self, sampling)
        self.sessions.append(session)
        return session

    def close(self):
        self.closed = True


# -- Fixtures -----------------------------------------------------------------


@pytest.fixture()
def sample_records():
    """Three records mixing free text and structured fields."""
    return [
        {"topic": "Fire", "region": "Forest", "text": "Use dry tinder and a small teepee of kindling."},
        {"topic": "Water", "region": "General", "text": "Boil water for one minute before drinking."},
        {
            "topic": "Knots",
            "knot_name": "Bowline",
            "description": "A fixed loop that does not slip.",
            "use_cases": ["rescue", "mooring"],
            "instructions": "Make a small loop, pass the end up, around, and back down.",
        },
    ]


@pytest.fixture()
def sample_chunks(sample_records):
    return [KnowledgeChunk.from_dict(r) for r in sample_records]


@pytest.fixture()
def store(sample_chunks):
    return KnowledgeStore(sample_chunks)


@pytest.fixture()
def backend():
    return KeywordCountBackend()


@pytest.fixture()
def embedder(backend):
    return Embedder(backend, max_chars=600)


@pytest.fixture()
def mock_engine():
    return MockEngine()


@pytest.fixture()
def prompt_spec():
    return PromptSpec(
        name="test_prompt",
        version="1.0",
        description="Minimal prompt for tests",
        template="You are {{ assistant_name }}.\nContext:\n{{ context }}\n\nQuestion: {{ question }}\nAnswer:",
    )
