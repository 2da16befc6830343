from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Float, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=True, index=True)

    # Professional information
    specialization = Column(String(100), nullable=False)
    qualifications = Column(JSON, nullable=False, default=list)
    license_number = Column(String(50), nullable=True, unique=True)
    years_of_experience = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)
    languages = Column(JSON, nullable=True)
    consultation_fee = Column(Float, nullable=True)

    # Contact information
    phone_number = Column(String(20), nullable=True)
    profile_picture = Column(String(500), nullable=True)

    # Availability
    is_available = Column(Boolean, default=True)

    # [{"patient_id": 1, "score": 5, "comment": "..."}]
    ratings = Column(JSON, nullable=True, default=list)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")
    clinic = relationship("Clinic", back_populates="doctors")
    appointments = relationship(
        "Appointment",
        back_populates="doctor",
        order_by="Appointment.appointment_date.desc()",
    )

    @property
    def name(self) -> str:
        return self.user.full_name if self.user else ""

    def __repr__(self):
        return f"<Doctor(id={self.id}, user_id={self.user_id}, specialization='{self.specialization}')>"
