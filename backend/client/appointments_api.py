"""HTTP client for the coach appointments API."""

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from backend.core import config
from backend.lifecycle.eligibility import to_local_naive

logger = logging.getLogger(__name__)


class AppointmentsApiError(Exception):
    """Raised when the appointments API cannot be reached or rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class Participant(BaseModel):
    id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None

    @property
    def display_name(self) -> str:
        return ' '.join(part for part in (self.first_name, self.last_name) if part)


class AppointmentRecord(BaseModel):
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
    client: Participant | None = None

    @field_validator('starts_at', 'ends_at', 'created_at', 'updated_at')
    @classmethod
    def normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value)

    @property
    def client_name(self) -> str:
        return self.client.display_name if self.client else ''

    @property
    def client_email(self) -> str | None:
        return self.client.email if self.client else None


class AppointmentsApiClient:
    def __init__(
        self,
        coach_id: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.coach_id = coach_id
        self._client = httpx.AsyncClient(
            base_url=base_url or config.APPOINTMENTS_API_URL,
            timeout=timeout or config.APPOINTMENTS_API_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> 'AppointmentsApiClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_appointments(self, appointment_filter: str = 'all') -> list[AppointmentRecord]:
        payload = await self._request('GET', '/appointments', params={'filter': appointment_filter})
        return [self._parse(item) for item in payload]

    async def update_status(self, appointment_id: str, new_status: str) -> AppointmentRecord:
        payload = await self._request('PUT', f'/appointments/{appointment_id}', json={'status': new_status})
        return self._parse(payload)

    async def reschedule(
        self,
        appointment_id: str,
        starts_at: datetime,
        ends_at: datetime | None = None,
    ) -> AppointmentRecord:
        body = {'starts_at': starts_at.isoformat()}
        if ends_at is not None:
            body['ends_at'] = ends_at.isoformat()
        payload = await self._request('PUT', f'/appointments/{appointment_id}', json=body)
        return self._parse(payload)

    async def update_notes(self, appointment_id: str, notes: str) -> AppointmentRecord:
        payload = await self._request('PUT', f'/appointments/{appointment_id}', json={'notes': notes})
        return self._parse(payload)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        params = {'coach_id': self.coach_id, **kwargs.pop('params', {})}
        try:
            response = await self._client.request(method, path, params=params, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                'Appointments API %s %s failed with %s: %s',
                method, path, exc.response.status_code, exc.response.text,
            )
            raise AppointmentsApiError(
                f'{method} {path} failed with status {exc.response.status_code}',
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise AppointmentsApiError(f'{method} {path} failed: {exc}') from exc

        try:
            return response.json()
        except ValueError as exc:
            raise AppointmentsApiError(f'{method} {path} returned invalid JSON') from exc

    @staticmethod
    def _parse(item: dict) -> AppointmentRecord:
        try:
            return AppointmentRecord.model_validate(item)
        except ValidationError as exc:
            raise AppointmentsApiError(f'Malformed appointment record: {exc}') from exc
