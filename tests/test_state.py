import pytest

from app.modules.appointments.state import TRANSITIONS, can_transition, is_terminal
from app.modules.scheduling.schemas import BookingStatus as S


@pytest.mark.parametrize("terminal", [S.CANCELLED, S.COMPLETED, S.NO_SHOW])
def test_terminal_states_have_no_exits(terminal):
    assert is_terminal(terminal)
    assert not any(can_transition(terminal, target) for target in S)


def test_every_status_is_in_the_table():
    assert set(TRANSITIONS) == set(S)


def test_pending_cannot_jump_to_completed():
    assert not can_transition("PENDING", "COMPLETED")
    assert can_transition("CONFIRMED", "COMPLETED")


def test_reschedule_returns_to_pending():
    assert can_transition(S.PENDING, S.PENDING)
    assert can_transition(S.CONFIRMED, S.PENDING)
