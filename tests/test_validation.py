from __future__ import annotations

import numpy as np
import pytest

from safe_ale import IllegalActionError, IllegalDifficultyError, IllegalModeError, InvalidCodeError, PreconditionError


def test_minimal_actions_subset_of_legal(ale) -> None:
    legal = ale.legal_action_set()
    minimal = ale.minimal_action_set()
    assert minimal
    assert set(minimal) <= set(legal)


def test_illegal_action_never_reaches_engine(ale, fake_native) -> None:
    with pytest.raises(IllegalActionError) as exc:
        ale.act(99)
    assert exc.value.value == 99
    assert exc.value.allowed == tuple(ale.legal_action_set())
    assert fake_native.called("act") == 0


def test_legal_action_forwarded_with_reward(ale, fake_native) -> None:
    assert ale.act(1) == 1
    assert ale.act(np.int64(0)) == 0
    assert fake_native.called("act") == 2


def test_non_integer_codes_are_precondition_errors(ale, fake_native) -> None:
    with pytest.raises(InvalidCodeError):
        ale.act(True)
    with pytest.raises(PreconditionError):
        ale.act(1.0)
    # still a TypeError for callers that catch that
    with pytest.raises(TypeError):
        ale.set_mode("1")
    assert fake_native.called("act") == 0
    assert fake_native.called("set_mode") == 0


def test_legal_set_is_queried_fresh(ale, fake_native) -> None:
    ale.act(5)
    fake_native.legal = [0, 1]
    with pytest.raises(IllegalActionError):
        ale.act(5)
    assert fake_native.called("act") == 1


def test_set_mode_checks_available_modes(ale, fake_native) -> None:
    ale.set_mode(2)
    with pytest.raises(IllegalModeError):
        ale.set_mode(7)
    assert [args[1] for name, args in fake_native.calls if name == "set_mode"] == [2]


def test_set_difficulty_checks_available_difficulties(ale, fake_native) -> None:
    ale.set_difficulty(1)
    with pytest.raises(IllegalDifficultyError, match="available difficulties"):
        ale.set_difficulty(3)
    assert fake_native.called("set_difficulty") == 1


def test_empty_mode_set_rejects_everything_without_fill(ale, fake_native) -> None:
    fake_native.modes = []
    assert ale.available_modes() == []
    with pytest.raises(IllegalModeError):
        ale.set_mode(0)
    assert fake_native.called("available_modes") == 0
    assert fake_native.called("set_mode") == 0
