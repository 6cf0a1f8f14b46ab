"""Appointment model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.participant import Client


def generate_appointment_id() -> str:
    return str(uuid.uuid4())


class Appointment(Base):
    """Represents a coaching session between a coach and a client."""
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_appointment_id)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    coach_id = Column(String(36), ForeignKey("coaches.id"), nullable=False, index=True)
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled/confirmed/cancelled/completed
    meeting_id = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True)

    client = relationship(Client, lazy="joined")
