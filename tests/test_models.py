import dataclasses

import pytest

from trainer.errors import GENERIC_API_ERROR, HttpError, TransportError, error_message
from trainer.models import Mode, Round


@pytest.mark.parametrize("raw", ["eli5", "ELI5", " Circumlocution ", "paraphrase", "CIRCUMLOCUTION"])
def test_mode_from_string(raw):
    assert Mode.from_string(raw).value.lower() == raw.strip().lower()


def test_mode_from_string_rejects_unknown():
    with pytest.raises(ValueError):
        Mode.from_string("haiku")


def test_every_mode_has_label_hint_and_description():
    for mode in Mode:
        assert mode.label == mode.value
        assert mode.hint
        assert mode.value in mode.description


def test_round_is_immutable():
    done = Round(user_answer="a", model_example="b", feedback="c")
    with pytest.raises(dataclasses.FrozenInstanceError):
        done.feedback = "changed"


def test_error_message_prefers_detail():
    assert error_message(HttpError(500, "boom")) == "boom"
    assert error_message(TransportError("refused")) == "refused"
    assert error_message(HttpError(500, "  ")) == GENERIC_API_ERROR
    assert error_message(RuntimeError()) == GENERIC_API_ERROR
