import threading

import pytest

from trainer.errors import ConfigurationError, HttpError, ProtocolError, TransportError
from trainer.models import EvaluationResult, Mode, SessionPhase
from trainer.prompts import TOPICS
from trainer.session import API_KEY_MISSING
from trainer.settings import MemorySettingsBackend, SettingsStore


def test_starts_in_input_with_seeded_topic(make_session):
    session, fake = make_session()
    assert session.phase == SessionPhase.INPUT
    assert session.topic in TOPICS
    assert session.answer == ""
    assert session.history == ()
    assert fake.calls == []


def test_new_topic_always_from_candidates_and_resets(make_session):
    session, _ = make_session("ex", "fb")
    session.set_answer("draft")
    session.submit()
    assert session.phase == SessionPhase.FEEDBACK

    for _ in range(50):
        session.new_topic()
        assert session.topic in TOPICS
        assert session.phase == SessionPhase.INPUT
        assert session.answer == ""
        assert session.current_result is None
        assert session.error is None
    assert len(session.history) == 1


def test_blank_answer_submit_is_noop(make_session):
    session, fake = make_session()
    session.set_answer("   \n ")
    assert session.submit() is None
    assert session.phase == SessionPhase.INPUT
    assert session.error is None
    assert fake.calls == []


def test_blank_api_key_raises_without_network(make_session):
    store = SettingsStore(MemorySettingsBackend({"api_key": "  "}))
    session, fake = make_session(store=store)
    session.set_answer("my answer")

    with pytest.raises(ConfigurationError):
        session.submit()

    assert session.phase == SessionPhase.INPUT
    assert session.error == API_KEY_MISSING
    assert session.answer == "my answer"
    assert fake.calls == []


def test_success_appends_exactly_one_round(make_session):
    session, fake = make_session("example one", "feedback one", "example two", "feedback two")
    session.set_answer("first try")
    first = session.submit()

    assert len(session.history) == 1
    assert first == session.history[0]
    assert first.user_answer == "first try"
    assert first.model_example == "example one"
    assert first.feedback == "feedback one"
    assert session.current_result == EvaluationResult("example one", "feedback one")
    assert session.phase == SessionPhase.FEEDBACK

    session.new_topic()
    session.set_answer("second try")
    session.submit()
    assert [r.user_answer for r in session.history] == ["first try", "second try"]
    assert len(fake.calls) == 4


def test_round_trip_scenario(make_session):
    session, _ = make_session(
        "gravity pulls objects together",
        "nice simple explanation! ✅ ... 🔧 ...",
        topics=["gravity"],
    )
    session.set_mode(Mode.ELI5)
    session.set_answer("things fall down")
    session.submit()

    done = session.history[0]
    assert done.user_answer == "things fall down"
    assert done.model_example == "gravity pulls objects together"
    assert done.feedback == "nice simple explanation! ✅ ... 🔧 ..."
    assert done.topic == "gravity"
    assert done.mode == Mode.ELI5
    assert session.phase == SessionPhase.FEEDBACK


def test_step_one_failure_returns_to_input(make_session):
    session, fake = make_session(TransportError("Could not reach endpoint"), "unused")
    session.set_answer("answer")

    assert session.submit() is None

    assert session.history == ()
    assert session.phase == SessionPhase.INPUT
    assert session.error == "Could not reach endpoint"
    assert session.current_result is None
    assert session.answer == "answer"
    assert len(fake.calls) == 1


def test_step_two_failure_records_no_partial_round(make_session):
    session, fake = make_session("example", HttpError(500, "model crashed"))
    session.set_answer("answer")
    session.submit()

    assert session.history == ()
    assert session.phase == SessionPhase.INPUT
    assert session.error == "model crashed"
    assert session.current_result is None
    assert len(fake.calls) == 2


def test_error_without_detail_uses_generic_message(make_session):
    session, _ = make_session(HttpError(502, ""))
    session.set_answer("answer")
    session.submit()
    assert session.error == "API error, verify the endpoint is reachable"


def test_retry_after_failure_succeeds(make_session):
    session, _ = make_session(ProtocolError("Response contained no choices"), "ex", "fb")
    session.set_answer("answer")
    session.submit()
    assert session.error

    session.submit()
    assert session.phase == SessionPhase.FEEDBACK
    assert session.error is None
    assert len(session.history) == 1


def test_submit_only_valid_from_input(make_session):
    session, fake = make_session("ex", "fb")
    session.set_answer("answer")
    session.submit()
    assert session.phase == SessionPhase.FEEDBACK

    assert session.submit() is None
    session.set_answer("edited in feedback")
    assert session.answer == "answer"
    assert len(fake.calls) == 2


def test_evaluating_blocks_second_submission_and_edits(make_session):
    session, _ = make_session()
    session.set_answer("answer")
    pending = session.begin_submit()

    assert session.phase == SessionPhase.EVALUATING
    assert session.begin_submit() is None
    session.set_answer("changed")
    session.set_mode(Mode.ELI5)
    assert session.answer == "answer"
    assert session.mode == Mode.PARAPHRASE
    assert session.in_flight
    assert pending.user_answer == "answer"


def test_settings_read_once_per_submission(make_session, settings):
    session, fake = make_session("ex", "fb")
    session.set_answer("answer")
    pending = session.begin_submit()
    settings.save("new-key", "new-model")

    session.finish(pending, result=session.run(pending))

    assert {call["api_key"] for call in fake.calls} == {"lm-studio"}
    assert {call["model"] for call in fake.calls} == {"test-model"}


def test_stale_result_after_new_topic_is_discarded(make_session):
    session, _ = make_session(topics=["gravity", "inflation"])
    session.set_answer("answer")
    pending = session.begin_submit()

    session.new_topic()
    assert session.phase == SessionPhase.INPUT
    assert session.current_result is None
    assert pending.token.cancelled

    assert session.finish(pending, result=EvaluationResult("late example", "late feedback")) is None
    assert session.history == ()
    assert session.current_result is None
    assert session.phase == SessionPhase.INPUT


def test_stale_failure_after_new_topic_is_discarded(make_session):
    session, _ = make_session()
    session.set_answer("answer")
    pending = session.begin_submit()
    session.new_topic()

    session.finish(pending, error=TransportError("late failure"))
    assert session.error is None


def test_new_topic_while_background_evaluation_in_flight(make_session, completion_factory):
    session, _ = make_session(topics=["gravity", "inflation"])
    release = threading.Event()
    started = threading.Event()
    fake = completion_factory("late example", "late feedback")

    def blocking_complete(*args, **kwargs):
        started.set()
        release.wait(timeout=5)
        return fake(*args, **kwargs)

    session.protocol.complete = blocking_complete
    scheduled = []

    session.set_answer("answer")
    worker = session.submit_in_background(scheduled.append)
    assert started.wait(timeout=5)
    assert session.phase == SessionPhase.EVALUATING

    session.new_topic()
    session.set_answer("fresh draft")
    release.set()
    worker.join(timeout=5)
    for callback in scheduled:
        callback()

    assert session.history == ()
    assert session.phase == SessionPhase.INPUT
    assert session.answer == "fresh draft"
    assert session.current_result is None
    assert session.error is None
    assert len(fake.calls) == 1


def test_background_submission_commits_on_scheduled_callback(make_session):
    session, fake = make_session("ex", "fb")
    scheduled = []
    session.set_answer("answer")

    worker = session.submit_in_background(scheduled.append)
    worker.join(timeout=5)

    assert session.phase == SessionPhase.EVALUATING
    assert len(scheduled) == 1
    scheduled[0]()
    assert session.phase == SessionPhase.FEEDBACK
    assert len(session.history) == 1


def test_on_change_notified_on_transitions(settings, completion_factory):
    from trainer.evaluation import EvaluationProtocol
    from trainer.session import PracticeSession

    phases = []
    session = PracticeSession(
        settings,
        EvaluationProtocol(completion_factory("ex", "fb")),
        on_change=lambda s: phases.append(s.phase),
    )
    session.set_answer("answer")
    session.submit()
    assert phases[0] == SessionPhase.INPUT
    assert SessionPhase.EVALUATING in phases
    assert phases[-1] == SessionPhase.FEEDBACK


def test_empty_topic_list_rejected(settings, completion_factory):
    from trainer.evaluation import EvaluationProtocol
    from trainer.session import PracticeSession

    with pytest.raises(ValueError):
        PracticeSession(settings, EvaluationProtocol(completion_factory()), topics=[])
