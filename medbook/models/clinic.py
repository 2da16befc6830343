from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Clinic(Base):
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    address = Column(String(255), nullable=True)
    location = Column(String(150), nullable=True)
    # e.g. {"phone": "...", "email": "..."}
    contact_info = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    doctors = relationship("Doctor", back_populates="clinic")

    def __repr__(self):
        return f"<Clinic(id={self.id}, name='{self.name}')>"
