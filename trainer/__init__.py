"""Rephrase Trainer: paraphrase / circumlocution / ELI5 practice against a local LLM."""

from .api import CompletionClient
from .chat import ChatSession
from .errors import (
    ConfigurationError,
    EvaluationCancelled,
    HttpError,
    ProtocolError,
    TrainerError,
    TransportError,
)
from .evaluation import CancellationToken, EvaluationProtocol
from .models import EvaluationResult, Mode, Round, SessionPhase, Settings
from .session import PracticeSession
from .settings import JsonFileSettingsBackend, MemorySettingsBackend, SettingsStore

__all__ = [
    "CancellationToken",
    "ChatSession",
    "CompletionClient",
    "ConfigurationError",
    "EvaluationCancelled",
    "EvaluationProtocol",
    "EvaluationResult",
    "HttpError",
    "JsonFileSettingsBackend",
    "MemorySettingsBackend",
    "Mode",
    "PracticeSession",
    "ProtocolError",
    "Round",
    "SessionPhase",
    "Settings",
    "SettingsStore",
    "TrainerError",
    "TransportError",
]
