"""
Two-step evaluation of a learner's answer.

Step 1 asks the model for its own example answer for the topic and mode.
Step 2 sends the learner's answer together with that example and asks for
coaching feedback. Step 2 depends on Step 1's output, so the calls are always
sequential, and any failure propagates unchanged to the caller.

A CancellationToken lets the practice session abandon an evaluation whose
topic has been replaced: Step 2 is not issued once the token is cancelled.
"""

import threading
from typing import List, Optional

from .api import CompletionFn
from .errors import EvaluationCancelled
from .logger import logger, Timer
from .models import ChatMessage, EvaluationResult, Mode
from .prompts import (
    EXAMPLE_SYSTEM_PROMPT,
    EXAMPLE_TEMPERATURE,
    EXAMPLE_TEMPLATES,
    FEEDBACK_SYSTEM_PROMPT,
    FEEDBACK_TEMPERATURE,
    FEEDBACK_TEMPLATE,
)


class CancellationToken:
    """Set once by the session when an in-flight evaluation becomes stale."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise EvaluationCancelled("Evaluation superseded by a new topic")


def build_example_messages(topic: str, mode: Mode) -> List[ChatMessage]:
    return [
        ChatMessage("system", EXAMPLE_SYSTEM_PROMPT),
        ChatMessage("user", EXAMPLE_TEMPLATES[mode].format(topic=topic)),
    ]


def build_feedback_messages(topic: str, mode: Mode, user_answer: str, example: str) -> List[ChatMessage]:
    return [
        ChatMessage("system", FEEDBACK_SYSTEM_PROMPT),
        ChatMessage(
            "user",
            FEEDBACK_TEMPLATE.format(
                topic=topic,
                mode_description=mode.description,
                user_answer=user_answer,
                example=example,
            ),
        ),
    ]


class EvaluationProtocol:
    """Runs both completion calls for one submission."""

    def __init__(self, complete: CompletionFn) -> None:
        self.complete = complete

    def evaluate(
        self,
        api_key: str,
        model: str,
        topic: str,
        mode: Mode,
        user_answer: str,
        token: Optional[CancellationToken] = None,
    ) -> EvaluationResult:
        """
        Return the example and feedback for ``user_answer``.

        Raises whatever the completion callable raises (no wrapping), or
        EvaluationCancelled when ``token`` is cancelled between or after the
        two calls.
        """
        token = token or CancellationToken()
        logger.api(f"evaluate() topic={topic!r}, mode={mode.value}")

        with Timer() as timer:
            logger.task("Step 1/2: generating example answer")
            example = self.complete(
                api_key, model, build_example_messages(topic, mode), EXAMPLE_TEMPERATURE
            )
            token.raise_if_cancelled()

            logger.task("Step 2/2: generating feedback")
            feedback = self.complete(
                api_key,
                model,
                build_feedback_messages(topic, mode, user_answer, example),
                FEEDBACK_TEMPERATURE,
            )
            token.raise_if_cancelled()

        logger.success(f"Evaluation finished ({timer.duration_ms:.0f}ms)")
        return EvaluationResult(example=example, feedback=feedback)
