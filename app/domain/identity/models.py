"""
Identity records read by the prescription views.

Users, doctors and patients are owned by the identity/registration services;
this service only reads them to authorize creation and to label views.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
import uuid

from app.infrastructure.database import Base


def gen_uuid():
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    username = Column(String(100), unique=True, nullable=True)
    name = Column(String(100), nullable=True)
    lastname = Column(String(100), nullable=True)
    hospital_number = Column(String(64), unique=True, nullable=True, index=True)
    role = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=func.now())


class Doctor(Base):
    """A doctor shares its primary key with the user account it belongs to"""
    __tablename__ = "doctors"

    id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    specialization = Column(String(100), nullable=True)

    user = relationship("User")


class Patient(Base):
    """
    Patient record with two optional links to a user account: by user id
    (primary) and by hospital number (secondary).
    """
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=True)
    hospital_number = Column(String(64), ForeignKey("users.hospital_number"), nullable=True)

    user_by_id = relationship("User", foreign_keys=[user_id])
    user_by_hospital_number = relationship("User", foreign_keys=[hospital_number])
