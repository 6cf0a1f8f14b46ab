"""Appointment status state machine.

An appointment starts as ``scheduled``. The coach either confirms it or
cancels it; a confirmed appointment can be completed once its session has
ended, rescheduled (a self transition that only moves the session window),
or cancelled. ``cancelled`` and ``completed`` are terminal.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    SCHEDULED = 'scheduled'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


class AppointmentAction(str, Enum):
    CONFIRM = 'confirm'
    CANCEL = 'cancel'
    COMPLETE = 'complete'
    RESCHEDULE = 'reschedule'


TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})

TRANSITIONS: dict[tuple[AppointmentStatus, AppointmentAction], AppointmentStatus] = {
    (AppointmentStatus.SCHEDULED, AppointmentAction.CONFIRM): AppointmentStatus.CONFIRMED,
    (AppointmentStatus.SCHEDULED, AppointmentAction.CANCEL): AppointmentStatus.CANCELLED,
    (AppointmentStatus.CONFIRMED, AppointmentAction.COMPLETE): AppointmentStatus.COMPLETED,
    (AppointmentStatus.CONFIRMED, AppointmentAction.CANCEL): AppointmentStatus.CANCELLED,
    (AppointmentStatus.CONFIRMED, AppointmentAction.RESCHEDULE): AppointmentStatus.CONFIRMED,
}


class LifecycleError(Exception):
    """Base class for rejected appointment lifecycle operations."""


class InvalidTransitionError(LifecycleError):
    def __init__(self, current: AppointmentStatus | str, requested: AppointmentAction | AppointmentStatus | str):
        self.current = _value(current)
        self.requested = _value(requested)
        if isinstance(requested, AppointmentAction):
            message = f"Cannot {self.requested} a {self.current} appointment."
        else:
            message = f"Cannot change a {self.current} appointment to {self.requested}."
        super().__init__(message)


class CompletionTooEarlyError(LifecycleError):
    def __init__(self):
        super().__init__('Appointments can only be completed after the session has ended.')


class RescheduleNotAllowedError(LifecycleError):
    def __init__(self, current: AppointmentStatus | str):
        self.current = _value(current)
        super().__init__(f"Only confirmed appointments can be rescheduled, this one is {self.current}.")


def _value(item) -> str:
    return item.value if isinstance(item, Enum) else str(item)


def parse_status(value: AppointmentStatus | str) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError as exc:
        raise LifecycleError(f"Unknown appointment status: {value!r}.") from exc


def is_terminal(status: AppointmentStatus | str) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def can_apply(status: AppointmentStatus | str, action: AppointmentAction) -> bool:
    return (parse_status(status), action) in TRANSITIONS


def next_status(current: AppointmentStatus | str, action: AppointmentAction) -> AppointmentStatus:
    current_status = parse_status(current)
    try:
        return TRANSITIONS[(current_status, action)]
    except KeyError:
        raise InvalidTransitionError(current_status, action) from None


def action_for_target(current: AppointmentStatus | str, target: AppointmentStatus | str) -> AppointmentAction:
    """Map a requested target status onto the action that reaches it.

    Reschedule never appears here because it does not change the status, so
    asking for the status an appointment already has is always rejected.
    """
    current_status = parse_status(current)
    target_status = parse_status(target)

    for (source, action), destination in TRANSITIONS.items():
        if source == current_status and destination == target_status and action != AppointmentAction.RESCHEDULE:
            return action

    raise InvalidTransitionError(current_status, target_status)
