from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Literal, Optional

DEFAULT_ENDPOINT = "http://localhost:1234/v1/chat/completions"  # LM Studio default
DEFAULT_MODEL = "local-llama"


class Mode(str, Enum):
    """Rephrasing styles; each one selects its own prompt template."""
    PARAPHRASE = "Paraphrase"
    CIRCUMLOCUTION = "Circumlocution"
    ELI5 = "ELI5"

    @property
    def label(self) -> str:
        return self.value

    @property
    def hint(self) -> str:
        return _MODE_HINTS[self]

    @property
    def description(self) -> str:
        """Human-readable description used inside the feedback prompt."""
        return _MODE_DESCRIPTIONS[self]

    @classmethod
    def from_string(cls, s: str) -> "Mode":
        wanted = (s or "").strip().lower()
        for mode in cls:
            if mode.value.lower() == wanted or mode.name.lower() == wanted:
                return mode
        raise ValueError(f"Unknown mode: {s!r}")


_MODE_HINTS = {
    Mode.PARAPHRASE: "Say the same thing in different words",
    Mode.CIRCUMLOCUTION: "Describe it by its features and uses",
    Mode.ELI5: "Explain it so a five-year-old understands",
}

_MODE_DESCRIPTIONS = {
    Mode.PARAPHRASE: "Paraphrase (express the same meaning with different words)",
    Mode.CIRCUMLOCUTION: "Circumlocution (describe it through its features and uses without naming it)",
    Mode.ELI5: "ELI5 (explain it in words a five-year-old can follow)",
}


class SessionPhase(str, Enum):
    """Lifecycle of one practice round."""
    INPUT = "input"              # learner edits the answer
    EVALUATING = "evaluating"    # submission in flight
    FEEDBACK = "feedback"        # result on screen


Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """A role-tagged message in the chat-completion wire format."""
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class Settings:
    """Connection settings shared by the whole process."""
    api_key: str = ""
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT


@dataclass(frozen=True)
class EvaluationResult:
    """Output of both evaluation steps."""
    example: str                     # Step 1: model answer for the topic/mode
    feedback: str                    # Step 2: coaching feedback on the learner's answer


@dataclass(frozen=True)
class Round:
    """One completed practice exchange. Never mutated after creation."""
    user_answer: str
    model_example: str
    feedback: str
    topic: str = ""
    mode: Optional[Mode] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
