"""Filtering, searching and sorting of a coach's appointment list."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable

from dateutil.relativedelta import relativedelta

from backend.lifecycle.status import AppointmentStatus


class AppointmentFilter(str, Enum):
    UPCOMING = 'upcoming'
    PAST = 'past'
    PENDING = 'pending'
    ALL = 'all'


class DateRange(str, Enum):
    ALL = 'all'
    THIS_WEEK = 'thisWeek'
    THIS_MONTH = 'thisMonth'
    LAST_3_MONTHS = 'last3Months'


class SortKey(str, Enum):
    DATE_ADDED = 'dateAdded'
    NAME = 'name'


class SortOrder(str, Enum):
    ASC = 'asc'
    DESC = 'desc'


# "upcoming" holds sessions the coach has not confirmed yet and "pending"
# holds confirmed ones. Client UIs depend on these names.
FILTER_STATUSES: dict[AppointmentFilter, frozenset[str] | None] = {
    AppointmentFilter.UPCOMING: frozenset({AppointmentStatus.SCHEDULED.value}),
    AppointmentFilter.PAST: frozenset({AppointmentStatus.CANCELLED.value, AppointmentStatus.COMPLETED.value}),
    AppointmentFilter.PENDING: frozenset({AppointmentStatus.CONFIRMED.value}),
    AppointmentFilter.ALL: None,
}

WEEK_WINDOW_DAYS = 7


def _status_value(appointment) -> str:
    status = appointment.status
    return status.value if isinstance(status, Enum) else str(status)


def display_name(appointment) -> str:
    client = getattr(appointment, 'client', None)
    if client is None:
        return ''
    parts = (getattr(client, 'first_name', None), getattr(client, 'last_name', None))
    return ' '.join(part for part in parts if part)


def display_date(value: datetime) -> str:
    return f'{value.month}/{value.day}/{value.year}'


def matches_filter(appointment, appointment_filter: AppointmentFilter | str) -> bool:
    statuses = FILTER_STATUSES[AppointmentFilter(appointment_filter)]
    return statuses is None or _status_value(appointment) in statuses


def apply_filter(appointments: Iterable, appointment_filter: AppointmentFilter | str) -> list:
    return [appointment for appointment in appointments if matches_filter(appointment, appointment_filter)]


def filter_counts(appointments: Iterable) -> dict[str, int]:
    appointments = list(appointments)
    return {
        appointment_filter.value: len(apply_filter(appointments, appointment_filter))
        for appointment_filter in AppointmentFilter
    }


def matches_search(appointment, query: str) -> bool:
    normalized = (query or '').strip().lower()
    if not normalized:
        return True

    fields = (
        display_name(appointment),
        appointment.notes or '',
        _status_value(appointment),
        display_date(appointment.starts_at),
    )
    return any(normalized in field.lower() for field in fields)


def date_range_bounds(date_range: DateRange | str, today: date) -> tuple[datetime | None, datetime | None]:
    """Return the inclusive ``(lower, upper)`` bounds on ``starts_at``.

    ``thisWeek`` is seven days either side of today rather than a calendar
    week.
    """
    date_range = DateRange(date_range)
    midnight = datetime.combine(today, time.min)

    if date_range == DateRange.THIS_WEEK:
        lower = midnight - timedelta(days=WEEK_WINDOW_DAYS)
        upper = datetime.combine(today + timedelta(days=WEEK_WINDOW_DAYS), time.max)
        return lower, upper

    if date_range == DateRange.THIS_MONTH:
        return midnight.replace(day=1), None

    if date_range == DateRange.LAST_3_MONTHS:
        return midnight - relativedelta(months=3), None

    return None, None


def apply_date_range(appointments: Iterable, date_range: DateRange | str, today: date) -> list:
    lower, upper = date_range_bounds(date_range, today)
    return [
        appointment
        for appointment in appointments
        if (lower is None or appointment.starts_at >= lower)
        and (upper is None or appointment.starts_at <= upper)
    ]


def sort_appointments(
    appointments: Iterable,
    sort_key: SortKey | str = SortKey.DATE_ADDED,
    sort_order: SortOrder | str = SortOrder.DESC,
) -> list:
    if SortKey(sort_key) == SortKey.NAME:
        def key(appointment):
            return display_name(appointment).lower()
    else:
        def key(appointment):
            return appointment.created_at

    return sorted(appointments, key=key, reverse=SortOrder(sort_order) == SortOrder.DESC)


def toggle_sort(
    current_key: SortKey | str,
    current_order: SortOrder | str,
    requested_key: SortKey | str,
) -> tuple[SortKey, SortOrder]:
    if SortKey(requested_key) == SortKey(current_key):
        flipped = SortOrder.ASC if SortOrder(current_order) == SortOrder.DESC else SortOrder.DESC
        return SortKey(current_key), flipped
    return SortKey(requested_key), SortOrder.ASC


def build_view(
    appointments: Iterable,
    appointment_filter: AppointmentFilter | str = AppointmentFilter.ALL,
    query: str = '',
    date_range: DateRange | str = DateRange.ALL,
    sort_key: SortKey | str = SortKey.DATE_ADDED,
    sort_order: SortOrder | str = SortOrder.DESC,
    today: date | None = None,
) -> list:
    today = today or date.today()
    visible = apply_filter(appointments, appointment_filter)
    visible = [appointment for appointment in visible if matches_search(appointment, query)]
    visible = apply_date_range(visible, date_range, today)
    return sort_appointments(visible, sort_key, sort_order)
