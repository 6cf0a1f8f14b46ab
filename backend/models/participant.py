"""Coach and client model definitions."""

import uuid

from sqlalchemy import Column, String
from backend.database import Base


def generate_participant_id() -> str:
    return str(uuid.uuid4())


class Coach(Base):
    """Represents a coach offering sessions."""
    __tablename__ = "coaches"

    id = Column(String(36), primary_key=True, default=generate_participant_id)
    email = Column(String, unique=True, index=True)
    first_name = Column(String)
    last_name = Column(String)


class Client(Base):
    """Represents a client booking sessions with coaches."""
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_participant_id)
    email = Column(String, index=True)
    first_name = Column(String)
    last_name = Column(String)
    phone = Column(String, nullable=True)
