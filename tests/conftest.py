import random
from typing import List, Optional

import pytest

from trainer.evaluation import EvaluationProtocol
from trainer.logger import logger
from trainer.session import PracticeSession
from trainer.settings import MemorySettingsBackend, SettingsStore


@pytest.fixture(autouse=True)
def quiet_logger():
    logger.enabled = False
    yield
    logger.enabled = True


class FakeCompletion:
    """Scripted completion callable: returns/raises ``outcomes`` in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []

    def __call__(self, api_key, model, messages, temperature=None):
        self.calls.append({
            "api_key": api_key,
            "model": model,
            "messages": list(messages),
            "temperature": temperature,
        })
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def settings() -> SettingsStore:
    return SettingsStore(MemorySettingsBackend({"api_key": "lm-studio", "model": "test-model"}))


@pytest.fixture
def make_session(settings):
    def _make(*outcomes, store: Optional[SettingsStore] = None, topics=None, seed: int = 7):
        fake = FakeCompletion(*outcomes)
        session = PracticeSession(
            store or settings,
            EvaluationProtocol(fake),
            topics=topics,
            rng=random.Random(seed),
        )
        return session, fake
    return _make


@pytest.fixture
def completion_factory():
    return FakeCompletion
