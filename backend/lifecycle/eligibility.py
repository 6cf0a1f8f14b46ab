"""Time gated actions for a single appointment.

Every function here is a pure function of an appointment and the current
time. Appointments are duck typed: ORM rows, API records and board records
all expose ``starts_at``, ``ends_at``, ``status`` and ``meeting_id``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from backend.core import config
from backend.lifecycle.meeting import MeetingSlot
from backend.lifecycle.status import AppointmentStatus, parse_status

SECONDS_PER_DAY = 24 * 60 * 60
LIVE_LABEL = 'Live now'
ENDED_LABEL = 'Completed'


@dataclass(frozen=True)
class ActionState:
    name: str
    enabled: bool = True
    reason: str | None = None


def to_local_naive(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def effective_ends_at(appointment) -> datetime:
    if appointment.ends_at is not None:
        return appointment.ends_at
    return appointment.starts_at + timedelta(minutes=config.DEFAULT_SESSION_MINUTES)


def is_join_available(appointment, now: datetime) -> bool:
    return appointment.starts_at <= now <= effective_ends_at(appointment)


def is_complete_available(appointment, now: datetime) -> bool:
    return now >= effective_ends_at(appointment)


def countdown_label(appointment, now: datetime) -> str:
    if now < appointment.starts_at:
        gap = (appointment.starts_at - now).total_seconds()
        remaining = int(gap)
        if gap > SECONDS_PER_DAY:
            days = remaining // SECONDS_PER_DAY
            return f"In {days} day{'s' if days != 1 else ''}"

        hours, remainder = divmod(remaining, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f'Starts in {hours:02d}:{minutes:02d}:{seconds:02d}'

    if now < effective_ends_at(appointment):
        return LIVE_LABEL

    return ENDED_LABEL


def join_state(appointment, now: datetime, meeting_slot: MeetingSlot | None = None) -> ActionState:
    if not is_join_available(appointment, now):
        if now < appointment.starts_at:
            return ActionState('join', enabled=False, reason='Session has not started yet.')
        return ActionState('join', enabled=False, reason='Session has ended.')

    if meeting_slot is not None and not meeting_slot.can_join(appointment.meeting_id):
        return ActionState(
            'join',
            enabled=False,
            reason=f'Already in meeting {meeting_slot.current_meeting_id}.',
        )

    return ActionState('join')


def available_actions(appointment, now: datetime, meeting_slot: MeetingSlot | None = None) -> list[ActionState]:
    status = parse_status(appointment.status)

    if status == AppointmentStatus.SCHEDULED:
        return [ActionState('accept'), ActionState('reject'), ActionState('message')]

    if status == AppointmentStatus.CONFIRMED:
        actions = []
        if appointment.meeting_id:
            actions.append(join_state(appointment, now, meeting_slot))

        complete_ready = is_complete_available(appointment, now)
        actions.extend([
            ActionState(
                'complete',
                enabled=complete_ready,
                reason=None if complete_ready else 'Session has not ended yet.',
            ),
            ActionState('reschedule'),
            ActionState('cancel'),
            ActionState('message'),
        ])
        return actions

    return [ActionState('message')]
