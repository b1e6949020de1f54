"""
Practice-session state machine.

    INPUT ──submit()──▶ EVALUATING ──success──▶ FEEDBACK
      ▲                     │                       │
      └──────failure────────┘                       │
      └──────────────────new_topic()────────────────┘   (from any phase)

All learner-visible state (topic, mode, answer, phase, history, current
result, error) lives on one PracticeSession object and changes only through
its methods. ``finish()`` is the single commit point for an evaluation: a
Round reaches the history only from there, only when both completion calls
succeeded, and only when the evaluation was not superseded by new_topic().

The network work itself (``run()``) touches no session state, so the Tk UI
runs it on a worker thread and schedules ``finish()`` back onto its own
thread with ``after(0, ...)``.
"""

import random
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import ConfigurationError, error_message
from .evaluation import CancellationToken, EvaluationProtocol
from .logger import logger
from .models import EvaluationResult, Mode, Round, SessionPhase, Settings
from .prompts import TOPICS

API_KEY_MISSING = "API key not set"


@dataclass
class PendingEvaluation:
    """Snapshot of everything one submission needs; settings are not re-read."""
    api_key: str
    model: str
    topic: str
    mode: Mode
    user_answer: str
    token: CancellationToken = field(default_factory=CancellationToken)


class PracticeSession:
    """One learner's practice session: topic, answer, phase and history."""

    def __init__(
        self,
        settings,
        protocol: EvaluationProtocol,
        topics: Optional[Sequence[str]] = None,
        rng: Optional[random.Random] = None,
        mode: Mode = Mode.PARAPHRASE,
        on_change: Optional[Callable[["PracticeSession"], None]] = None,
    ) -> None:
        """
        ``settings`` is anything with ``get() -> Settings`` (normally a
        SettingsStore). ``on_change`` is called after every transition.
        """
        self.settings = settings
        self.protocol = protocol
        self.topics: List[str] = list(topics if topics is not None else TOPICS)
        if not self.topics:
            raise ValueError("At least one topic is required")
        self._rng = rng or random.Random()
        self.on_change = on_change

        self.mode: Mode = mode
        self.topic: str = ""
        self.answer: str = ""
        self.phase: SessionPhase = SessionPhase.INPUT
        self.current_result: Optional[EvaluationResult] = None
        self.error: Optional[str] = None
        self._history: List[Round] = []
        self._pending: Optional[PendingEvaluation] = None

        self.new_topic()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def history(self) -> Tuple[Round, ...]:
        return tuple(self._history)

    @property
    def can_submit(self) -> bool:
        return self.phase == SessionPhase.INPUT and bool(self.answer.strip())

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _set_phase(self, phase: SessionPhase) -> None:
        if phase != self.phase:
            logger.ui_transition(self.phase.name, phase.name)
        self.phase = phase

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self)

    def new_topic(self) -> str:
        """Pick a random topic and reset the round; valid from any phase."""
        if self._pending is not None:
            logger.ui("Topic changed while evaluating, abandoning in-flight evaluation")
            self._pending.token.cancel()
            self._pending = None

        self.topic = self._rng.choice(self.topics)
        self.answer = ""
        self.current_result = None
        self.error = None
        self._set_phase(SessionPhase.INPUT)
        logger.ui(f"New topic: {self.topic!r} ({self.mode.value})")
        self._notify()
        return self.topic

    def set_answer(self, text: str) -> None:
        if self.phase != SessionPhase.INPUT:
            logger.debug(f"Ignoring answer edit during {self.phase.name}")
            return
        self.answer = text
        self._notify()

    def set_mode(self, mode: Mode) -> None:
        if self.phase == SessionPhase.EVALUATING:
            logger.debug("Ignoring mode change during EVALUATING")
            return
        if mode != self.mode:
            logger.ui(f"Mode: {self.mode.value} → {mode.value}")
            self.mode = mode
            self._notify()

    def begin_submit(self) -> Optional[PendingEvaluation]:
        """
        Validate and enter EVALUATING.

        Returns None (and changes nothing) when the phase is not INPUT or the
        answer is blank. Raises ConfigurationError, staying in INPUT, when
        the stored API key is blank.
        """
        if not self.can_submit:
            logger.debug(f"submit ignored (phase={self.phase.name}, blank answer={not self.answer.strip()})")
            return None

        settings: Settings = self.settings.get()
        if not settings.api_key.strip():
            self.error = API_KEY_MISSING
            logger.warning(API_KEY_MISSING)
            self._notify()
            raise ConfigurationError(API_KEY_MISSING)

        pending = PendingEvaluation(
            api_key=settings.api_key,
            model=settings.model,
            topic=self.topic,
            mode=self.mode,
            user_answer=self.answer,
        )
        self._pending = pending
        self.current_result = None
        self.error = None
        self._set_phase(SessionPhase.EVALUATING)
        self._notify()
        return pending

    def run(self, pending: PendingEvaluation) -> EvaluationResult:
        """Execute both completion calls; safe off the UI thread."""
        return self.protocol.evaluate(
            pending.api_key,
            pending.model,
            pending.topic,
            pending.mode,
            pending.user_answer,
            token=pending.token,
        )

    def finish(
        self,
        pending: PendingEvaluation,
        result: Optional[EvaluationResult] = None,
        error: Optional[BaseException] = None,
    ) -> Optional[Round]:
        """Commit the outcome of ``pending``; stale outcomes are dropped."""
        if pending is not self._pending or pending.token.cancelled:
            logger.debug(f"Discarding stale evaluation for topic {pending.topic!r}")
            return None
        self._pending = None

        if error is not None or result is None:
            self.current_result = None
            self.error = error_message(error) if error is not None else error_message(Exception())
            logger.error(f"Evaluation failed: {self.error}")
            self._set_phase(SessionPhase.INPUT)
            self._notify()
            return None

        completed = Round(
            user_answer=pending.user_answer,
            model_example=result.example,
            feedback=result.feedback,
            topic=pending.topic,
            mode=pending.mode,
        )
        self._history.append(completed)
        self.current_result = result
        self.error = None
        self._set_phase(SessionPhase.FEEDBACK)
        logger.success(f"Round {len(self._history)} recorded for {pending.topic!r}")
        self._notify()
        return completed

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------

    def submit(self) -> Optional[Round]:
        """Evaluate the current answer on the calling thread."""
        pending = self.begin_submit()
        if pending is None:
            return None
        try:
            result = self.run(pending)
        except Exception as e:
            return self.finish(pending, error=e)
        return self.finish(pending, result=result)

    def submit_in_background(
        self, schedule: Callable[[Callable[[], None]], None]
    ) -> Optional[threading.Thread]:
        """
        Evaluate on a daemon thread; ``schedule`` must run the callback it is
        given on the thread that owns the session (Tk: ``lambda cb: root.after(0, cb)``).
        """
        pending = self.begin_submit()
        if pending is None:
            return None

        def evaluate_threaded():
            logger.task_start(f"evaluate {pending.topic!r}")
            try:
                result = self.run(pending)
            except Exception as e:
                logger.task_error("evaluate", str(e) or type(e).__name__)
                schedule(lambda error=e: self.finish(pending, error=error))
                return
            logger.task_complete("evaluate")
            schedule(lambda: self.finish(pending, result=result))

        thread = threading.Thread(target=evaluate_threaded, daemon=True)
        thread.start()
        logger.task("Spawned background thread for evaluation")
        return thread
