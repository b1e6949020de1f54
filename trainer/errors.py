"""Error taxonomy shared by the completion client, protocol and sessions."""

from typing import Optional

GENERIC_API_ERROR = "API error, verify the endpoint is reachable"


class TrainerError(Exception):
    """Base class for every error the practice tools surface to the learner."""

    @property
    def detail(self) -> str:
        return str(self)


class ConfigurationError(TrainerError):
    """Settings are unusable (e.g. blank API key); raised before any network call."""


class TransportError(TrainerError):
    """DNS failure, refused connection or timeout."""


class HttpError(TrainerError):
    """Non-2xx response. ``body`` holds the raw response text."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(body or f"HTTP {status_code}")

    @property
    def detail(self) -> str:
        return self.body


class ProtocolError(TrainerError):
    """2xx response whose body lacks the expected choices/message content."""


class EvaluationCancelled(TrainerError):
    """The evaluation was superseded (topic changed) before it could commit."""


def error_message(error: BaseException, fallback: Optional[str] = None) -> str:
    """Single human-readable line for an error; falls back when it has no detail."""
    detail = error.detail if isinstance(error, TrainerError) else str(error)
    detail = (detail or "").strip()
    return detail or (fallback or GENERIC_API_ERROR)
