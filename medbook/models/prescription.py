from datetime import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Text, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, unique=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)

    diagnosis = Column(Text, nullable=True)
    tests = Column(JSON, nullable=True, default=list)
    notes = Column(Text, nullable=True)
    follow_up_date = Column(Date, nullable=True)

    issued_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    appointment = relationship("Appointment")
    doctor = relationship("Doctor")
    patient = relationship("Patient")
    medications = relationship(
        "Medication",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="Medication.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Prescription(id={self.id}, appointment_id={self.appointment_id}, doctor_id={self.doctor_id})>"

class Medication(Base):
    __tablename__ = "prescription_medications"

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(Integer, ForeignKey("prescriptions.id"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    dosage = Column(String(100), nullable=False)
    frequency = Column(String(100), nullable=False)
    duration = Column(String(100), nullable=False)
    instructions = Column(Text, nullable=True)

    prescription = relationship("Prescription", back_populates="medications")

    def __repr__(self):
        return f"<Medication(id={self.id}, name='{self.name}')>"
