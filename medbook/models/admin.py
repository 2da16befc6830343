from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    department = Column(String(100), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="admin")

    @property
    def name(self) -> str:
        return self.user.full_name if self.user else ""

    def __repr__(self):
        return f"<Admin(id={self.id}, user_id={self.user_id})>"
