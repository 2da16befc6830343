from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Personal information
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    profile_picture = Column(String(500), nullable=True)

    # Contact information
    phone_number = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)

    # Medical information
    blood_type = Column(String(10), nullable=True)
    allergies = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="patient")
    appointments = relationship("Appointment", back_populates="patient")

    @property
    def name(self) -> str:
        return self.user.full_name if self.user else ""

    def __repr__(self):
        return f"<Patient(id={self.id}, user_id={self.user_id})>"
