from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from backend.lifecycle.eligibility import (
    available_actions,
    countdown_label,
    effective_ends_at,
    is_complete_available,
    is_join_available,
)
from backend.lifecycle.meeting import MeetingSlot

START = datetime(2026, 1, 5, 10, 0)


def make_appointment(**overrides) -> SimpleNamespace:
    values = {
        'id': 'apt-1',
        'starts_at': START,
        'ends_at': START + timedelta(minutes=50),
        'status': 'confirmed',
        'meeting_id': 'meeting-a',
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def action_names(actions) -> list[str]:
    return [action.name for action in actions]


def test_live_session_can_be_joined_but_not_completed() -> None:
    appointment = make_appointment()
    now = START + timedelta(minutes=10)

    assert is_join_available(appointment, now)
    assert not is_complete_available(appointment, now)
    assert countdown_label(appointment, now) == 'Live now'


def test_missing_end_defaults_to_one_hour_session() -> None:
    appointment = make_appointment(ends_at=None)
    now = START + timedelta(minutes=61)

    assert effective_ends_at(appointment) == START + timedelta(minutes=60)
    assert not is_join_available(appointment, now)
    assert is_complete_available(appointment, now)


@pytest.mark.parametrize(
    ('offset', 'expected'),
    [
        (timedelta(seconds=-1), False),
        (timedelta(0), True),
        (timedelta(minutes=50), True),
        (timedelta(minutes=50, seconds=1), False),
    ],
)
def test_join_window_is_closed_interval(offset: timedelta, expected: bool) -> None:
    assert is_join_available(make_appointment(), START + offset) is expected


def test_complete_opens_exactly_at_session_end_regardless_of_status() -> None:
    for status in ('scheduled', 'confirmed', 'cancelled', 'completed'):
        appointment = make_appointment(status=status)

        assert not is_complete_available(appointment, START + timedelta(minutes=49, seconds=59))
        assert is_complete_available(appointment, START + timedelta(minutes=50))


@pytest.mark.parametrize(
    ('now', 'expected'),
    [
        (START - timedelta(days=3, hours=5), 'In 3 days'),
        (START - timedelta(days=1, seconds=1), 'In 1 day'),
        (START - timedelta(hours=24), 'Starts in 24:00:00'),
        (START - timedelta(hours=24, microseconds=500000), 'In 1 day'),
        (START - timedelta(hours=2, minutes=15, seconds=9), 'Starts in 02:15:09'),
        (START, 'Live now'),
        (START + timedelta(minutes=50), 'Completed'),
    ],
)
def test_countdown_label(now: datetime, expected: str) -> None:
    assert countdown_label(make_appointment(), now) == expected


def test_countdown_reports_completed_even_for_cancelled_sessions() -> None:
    appointment = make_appointment(status='cancelled')

    assert countdown_label(appointment, START + timedelta(hours=2)) == 'Completed'


def test_scheduled_appointment_offers_accept_and_reject() -> None:
    actions = available_actions(make_appointment(status='scheduled'), START)

    assert action_names(actions) == ['accept', 'reject', 'message']
    assert all(action.enabled for action in actions)


def test_confirmed_appointment_gates_join_and_complete_on_time() -> None:
    before = available_actions(make_appointment(), START - timedelta(minutes=5))
    during = available_actions(make_appointment(), START + timedelta(minutes=5))
    after = available_actions(make_appointment(), START + timedelta(hours=1))

    assert action_names(during) == ['join', 'complete', 'reschedule', 'cancel', 'message']
    assert {action.name: action.enabled for action in before}['join'] is False
    assert {action.name: action.enabled for action in during}['join'] is True
    assert {action.name: action.enabled for action in during}['complete'] is False
    assert {action.name: action.enabled for action in after}['complete'] is True
    assert {action.name: action.enabled for action in after}['join'] is False


def test_confirmed_appointment_without_meeting_has_no_join_action() -> None:
    actions = available_actions(make_appointment(meeting_id=None), START)

    assert 'join' not in action_names(actions)


def test_join_is_disabled_while_another_meeting_is_active() -> None:
    slot = MeetingSlot()
    slot.try_acquire('meeting-b')

    actions = available_actions(make_appointment(), START + timedelta(minutes=5), slot)
    join = actions[0]

    assert join.name == 'join'
    assert not join.enabled
    assert join.reason == 'Already in meeting meeting-b.'


@pytest.mark.parametrize('status', ['cancelled', 'completed'])
def test_terminal_appointment_only_offers_message(status: str) -> None:
    assert action_names(available_actions(make_appointment(status=status), START)) == ['message']
