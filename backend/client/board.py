"""Coach appointment board.

Keeps the coach's appointment collection in memory, derives what each card
may show from the current time, and sends status changes to the
appointments API. Every mutation awaits the API before touching local
state; a failed call leaves the collection as it was and sets ``error``.
Pushed events patch single records in place, so whichever of a local
mutation or a pushed event lands last is what the board shows.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import AsyncIterator, Callable

from backend.client.appointments_api import (
    AppointmentRecord,
    AppointmentsApiClient,
    AppointmentsApiError,
)
from backend.core import config
from backend.events import (
    APPOINTMENT_BOOKED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_NEW,
    APPOINTMENT_RESCHEDULED,
    APPOINTMENT_STATUS_UPDATED,
)
from backend.lifecycle import views
from backend.lifecycle.eligibility import (
    ActionState,
    available_actions,
    countdown_label,
    is_complete_available,
    is_join_available,
    to_local_naive,
)
from backend.lifecycle.meeting import MeetingSlot
from backend.lifecycle.status import (
    AppointmentAction,
    AppointmentStatus,
    LifecycleError,
    action_for_target,
    parse_status,
)

logger = logging.getLogger(__name__)

LOAD_ERROR = 'Failed to load appointments'
STATUS_ERROR = 'Failed to update appointment status'
RESCHEDULE_ERROR = 'Failed to reschedule appointment'
NOTES_ERROR = 'Failed to save session notes'


@dataclass(frozen=True)
class JoinResult:
    joined: bool
    rejoined: bool = False
    reason: str | None = None


def _event_field(event: dict, name: str, camel_name: str):
    if name in event:
        return event[name]
    return event.get(camel_name)


def _parse_event_time(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_local_naive(value)
    return to_local_naive(datetime.fromisoformat(str(value).replace('Z', '+00:00')))


class CoachAppointmentBoard:
    def __init__(
        self,
        api: AppointmentsApiClient,
        meeting_slot: MeetingSlot | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.api = api
        self.meeting_slot = meeting_slot or MeetingSlot()
        self._clock = clock
        self.now = clock()

        self.appointments: list[AppointmentRecord] = []
        self.loading = False
        self.error = ''

        self.filter = views.AppointmentFilter.UPCOMING
        self.query = ''
        self.date_range = views.DateRange.ALL
        self.sort_key = views.SortKey.DATE_ADDED
        self.sort_order = views.SortOrder.DESC

    @property
    def coach_id(self) -> str:
        return self.api.coach_id

    def get(self, appointment_id: str) -> AppointmentRecord | None:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        return None

    def _replace(self, record: AppointmentRecord) -> None:
        self.appointments = [record if item.id == record.id else item for item in self.appointments]

    def _patch(self, appointment_id: str, **changes) -> bool:
        appointment = self.get(appointment_id)
        if appointment is None:
            logger.debug('Ignoring event for unknown appointment %s', appointment_id)
            return False
        self._replace(appointment.model_copy(update=changes))
        return True

    async def load(self, is_refresh: bool = False) -> bool:
        if not is_refresh:
            self.loading = True
        try:
            self.appointments = await self.api.list_appointments('all')
            self.error = ''
            return True
        except AppointmentsApiError:
            logger.exception('Error loading appointments for coach %s', self.coach_id)
            self.error = LOAD_ERROR
            return False
        finally:
            self.loading = False

    async def change_status(self, appointment_id: str, new_status: AppointmentStatus | str) -> bool:
        appointment = self.get(appointment_id)
        if appointment is None:
            logger.warning('Status change for unknown appointment %s', appointment_id)
            self.error = STATUS_ERROR
            return False

        try:
            action = action_for_target(appointment.status, new_status)
        except LifecycleError as exc:
            logger.warning('Rejected status change for appointment %s: %s', appointment_id, exc)
            self.error = STATUS_ERROR
            return False

        if action == AppointmentAction.COMPLETE and not is_complete_available(appointment, self.now):
            logger.warning('Appointment %s cannot be completed before it ends', appointment_id)
            self.error = STATUS_ERROR
            return False

        try:
            updated = await self.api.update_status(appointment_id, parse_status(new_status).value)
        except AppointmentsApiError:
            logger.exception('Error updating appointment status for %s', appointment_id)
            self.error = STATUS_ERROR
            return False

        self._replace(updated)
        self.error = ''
        return True

    async def confirm(self, appointment_id: str) -> bool:
        return await self.change_status(appointment_id, AppointmentStatus.CONFIRMED)

    async def cancel(self, appointment_id: str) -> bool:
        return await self.change_status(appointment_id, AppointmentStatus.CANCELLED)

    async def complete(self, appointment_id: str) -> bool:
        return await self.change_status(appointment_id, AppointmentStatus.COMPLETED)

    async def reschedule(self, appointment_id: str, starts_at: datetime, ends_at: datetime | None = None) -> bool:
        appointment = self.get(appointment_id)
        if appointment is None or appointment.status != AppointmentStatus.CONFIRMED.value:
            self.error = RESCHEDULE_ERROR
            return False

        if ends_at is not None and ends_at <= starts_at:
            self.error = RESCHEDULE_ERROR
            return False

        try:
            await self.api.reschedule(appointment_id, starts_at, ends_at)
        except AppointmentsApiError:
            logger.exception('Error rescheduling appointment %s', appointment_id)
            self.error = RESCHEDULE_ERROR
            return False

        # Moving a session can affect other cards, so reload the whole list.
        self.error = ''
        await self.load(is_refresh=True)
        return True

    async def update_notes(self, appointment_id: str, notes: str) -> bool:
        if self.get(appointment_id) is None:
            self.error = NOTES_ERROR
            return False

        try:
            updated = await self.api.update_notes(appointment_id, notes)
        except AppointmentsApiError:
            logger.exception('Error saving notes for appointment %s', appointment_id)
            self.error = NOTES_ERROR
            return False

        self._replace(updated)
        self.error = ''
        return True

    def apply_event(self, event: dict) -> bool:
        """Patch the collection from a pushed event.

        Returns True when the event announces an appointment the board does
        not hold yet and the caller should reload.
        """
        event_type = event.get('type')
        appointment_id = _event_field(event, 'session_id', 'sessionId')

        if event_type in (APPOINTMENT_NEW, APPOINTMENT_BOOKED):
            return True

        if event_type == APPOINTMENT_STATUS_UPDATED:
            new_status = _event_field(event, 'new_status', 'newStatus')
            try:
                new_status = parse_status(new_status).value
            except LifecycleError:
                logger.warning('Ignoring status event with unknown status %r', new_status)
                return False
            self._patch(appointment_id, status=new_status)
        elif event_type == APPOINTMENT_RESCHEDULED:
            changes = {'starts_at': _parse_event_time(_event_field(event, 'new_scheduled_at', 'newScheduledAt'))}
            if changes['starts_at'] is None:
                logger.warning('Ignoring reschedule event without a start time for %s', appointment_id)
                return False
            new_ends_at = _event_field(event, 'new_ends_at', 'newEndsAt')
            if new_ends_at is not None:
                changes['ends_at'] = _parse_event_time(new_ends_at)
            if event.get('status') in {status.value for status in AppointmentStatus}:
                changes['status'] = event['status']
            self._patch(appointment_id, **changes)
        elif event_type == APPOINTMENT_CANCELLED:
            self._patch(appointment_id, status=AppointmentStatus.CANCELLED.value)
        else:
            logger.debug('Ignoring event type %r', event_type)

        return False

    async def handle_event(self, event: dict) -> None:
        if self.apply_event(event):
            await self.load(is_refresh=True)

    async def listen(self, events: AsyncIterator[dict]) -> None:
        async for event in events:
            await self.handle_event(event)

    def tick(self, now: datetime | None = None) -> datetime:
        self.now = now or self._clock()
        return self.now

    async def run_clock(self, interval: float | None = None) -> None:
        interval = interval or config.CLOCK_TICK_SECONDS
        while True:
            self.tick()
            await asyncio.sleep(interval)

    def set_filter(self, appointment_filter: views.AppointmentFilter | str) -> None:
        self.filter = views.AppointmentFilter(appointment_filter)

    def search(self, query: str) -> None:
        self.query = query

    def set_date_range(self, date_range: views.DateRange | str) -> None:
        self.date_range = views.DateRange(date_range)

    def toggle_sort(self, sort_key: views.SortKey | str) -> None:
        self.sort_key, self.sort_order = views.toggle_sort(self.sort_key, self.sort_order, sort_key)

    def clear_filters(self) -> None:
        self.query = ''
        self.date_range = views.DateRange.ALL

    def visible_appointments(self, today: date | None = None) -> list[AppointmentRecord]:
        return views.build_view(
            self.appointments,
            appointment_filter=self.filter,
            query=self.query,
            date_range=self.date_range,
            sort_key=self.sort_key,
            sort_order=self.sort_order,
            today=today or self.now.date(),
        )

    def counts(self) -> dict[str, int]:
        return views.filter_counts(self.appointments)

    def actions_for(self, appointment_id: str) -> list[ActionState]:
        appointment = self.get(appointment_id)
        if appointment is None:
            return []
        return available_actions(appointment, self.now, self.meeting_slot)

    def countdown_for(self, appointment_id: str) -> str | None:
        appointment = self.get(appointment_id)
        if appointment is None:
            return None
        return countdown_label(appointment, self.now)

    def join_meeting(self, appointment_id: str) -> JoinResult:
        appointment = self.get(appointment_id)
        if appointment is None:
            return JoinResult(joined=False, reason='Appointment not found.')

        if appointment.status != AppointmentStatus.CONFIRMED.value:
            return JoinResult(joined=False, reason='Only confirmed sessions can be joined.')

        if not appointment.meeting_id:
            return JoinResult(joined=False, reason='No meeting has been set up for this session.')

        if not is_join_available(appointment, self.now):
            return JoinResult(joined=False, reason='Session is not live.')

        meeting_id = appointment.meeting_id
        rejoined = self.meeting_slot.current_meeting_id == meeting_id
        if not self.meeting_slot.register_attempt(meeting_id):
            return JoinResult(joined=False, reason=self._busy_reason())

        if not self.meeting_slot.try_acquire(meeting_id):
            self.meeting_slot.unregister_attempt(meeting_id)
            return JoinResult(joined=False, reason=self._busy_reason())

        logger.info('Coach %s joined meeting %s', self.coach_id, appointment.meeting_id)
        return JoinResult(joined=True, rejoined=rejoined)

    def _busy_reason(self) -> str:
        if self.meeting_slot.is_in_meeting:
            return f'Already in meeting {self.meeting_slot.current_meeting_id}.'
        return 'Another meeting is being joined.'

    def leave_meeting(self) -> None:
        self.meeting_slot.release()
