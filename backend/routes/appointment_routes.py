import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.database import SessionLocal, ensure_appointment_schema
from backend.events import manager, rescheduled_event, status_event
from backend.lifecycle.eligibility import is_complete_available, to_local_naive
from backend.lifecycle.status import (
    AppointmentAction,
    AppointmentStatus,
    CompletionTooEarlyError,
    LifecycleError,
    RescheduleNotAllowedError,
    action_for_target,
    next_status,
    parse_status,
)
from backend.lifecycle.views import AppointmentFilter, FILTER_STATUSES, filter_counts
from backend.models.appointment import Appointment
from backend.models.participant import Coach

router = APIRouter(tags=['appointments'])
logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


class ClientResponse(BaseModel):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: str
    client_id: str
    coach_id: str
    starts_at: datetime
    ends_at: datetime | None = None
    status: str
    meeting_id: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    client: ClientResponse | None = None

    class Config:
        from_attributes = True


class AppointmentCountsResponse(BaseModel):
    upcoming: int
    past: int
    pending: int
    all: int


class UpdateAppointmentRequest(BaseModel):
    status: AppointmentStatus | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized

    @field_validator('starts_at', 'ends_at')
    @classmethod
    def normalize_session_time(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value)

    @model_validator(mode='after')
    def validate_single_change(self) -> 'UpdateAppointmentRequest':
        requested = [
            self.status is not None,
            self.starts_at is not None or self.ends_at is not None,
            self.notes is not None,
        ]
        if sum(requested) != 1:
            raise ValueError('Send exactly one of status, a new session time, or notes.')

        if self.ends_at is not None and self.starts_at is None:
            raise ValueError('A new start time is required to reschedule.')

        if self.starts_at is not None and self.ends_at is not None and self.ends_at <= self.starts_at:
            raise ValueError('Session must end after it starts.')

        return self


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_coach_or_404(coach_id: str, db: Session) -> Coach:
    normalized_coach_id = (coach_id or '').strip()
    if not normalized_coach_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Coach id is required.',
        )

    coach = db.query(Coach).filter(Coach.id == normalized_coach_id).first()
    if not coach:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Coach profile not found.',
        )

    return coach


def get_coach_appointment_or_404(appointment_id: str, coach_id: str, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.coach_id == coach_id,
    ).first()
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )

    return appointment


def apply_status_change(appointment: Appointment, target: AppointmentStatus, now: datetime) -> AppointmentStatus:
    action = action_for_target(appointment.status, target)
    if action == AppointmentAction.COMPLETE and not is_complete_available(appointment, now):
        raise CompletionTooEarlyError()

    new_status = next_status(appointment.status, action)
    appointment.status = new_status.value
    return new_status


def apply_reschedule(appointment: Appointment, starts_at: datetime, ends_at: datetime | None) -> None:
    if parse_status(appointment.status) != AppointmentStatus.CONFIRMED:
        raise RescheduleNotAllowedError(appointment.status)

    if ends_at is None and appointment.ends_at is not None:
        ends_at = starts_at + (appointment.ends_at - appointment.starts_at)

    appointment.starts_at = starts_at
    appointment.ends_at = ends_at


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    coach_id: str = Query(...),
    appointment_filter: AppointmentFilter = Query(default=AppointmentFilter.ALL, alias='filter'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        coach = get_coach_or_404(coach_id, db)

        query = db.query(Appointment).filter(Appointment.coach_id == coach.id)
        statuses = FILTER_STATUSES[appointment_filter]
        if statuses is not None:
            query = query.filter(Appointment.status.in_(sorted(statuses)))

        appointments = query.order_by(Appointment.starts_at.asc()).all()
        return [AppointmentResponse.model_validate(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/counts', response_model=AppointmentCountsResponse)
def count_appointments(
    coach_id: str = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        coach = get_coach_or_404(coach_id, db)
        appointments = db.query(Appointment).filter(Appointment.coach_id == coach.id).all()
        return AppointmentCountsResponse(**filter_counts(appointments))
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    background_tasks: BackgroundTasks,
    coach_id: str = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        coach = get_coach_or_404(coach_id, db)
        appointment = get_coach_appointment_or_404(appointment_id, coach.id, db)
        now = datetime.now()

        try:
            if data.status is not None:
                previous_status = appointment.status
                new_status = apply_status_change(appointment, data.status, now)
                event = status_event(appointment.id, new_status.value)
                logger.info(
                    'Appointment %s moved from %s to %s by coach %s',
                    appointment.id, previous_status, new_status.value, coach.id,
                )
            elif data.starts_at is not None:
                apply_reschedule(appointment, data.starts_at, data.ends_at)
                event = rescheduled_event(appointment.id, appointment.starts_at, appointment.ends_at, appointment.status)
                logger.info('Appointment %s rescheduled to %s by coach %s', appointment.id, appointment.starts_at, coach.id)
            else:
                appointment.notes = data.notes or None
                event = None
        except LifecycleError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=str(exc),
            ) from exc

        appointment.updated_at = now
        db.commit()
        db.refresh(appointment)

        if event is not None:
            background_tasks.add_task(manager.publish, [appointment.coach_id, appointment.client_id], event)

        return AppointmentResponse.model_validate(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
