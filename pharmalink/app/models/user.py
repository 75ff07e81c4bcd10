"""
Everyone who signs in: prescribers, patients, pharmacy staff and drivers.
"""

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String
from sqlalchemy.sql import func

from pharmalink.app.db.session import Base
from pharmalink.app.models.enums import PHARMACY_ROLES, UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    role = Column(Enum(UserRole), default=UserRole.PATIENT, nullable=False, index=True)
    # Set for PHARMACIST and DISPATCHER only; scopes every pharmacy-side operation
    pharmacy_id = Column(Integer, index=True, nullable=True)
    # Deactivated drivers cannot be assigned and tokens stop working immediately
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_pharmacy_staff(self) -> bool:
        return self.role in PHARMACY_ROLES

    def __repr__(self):
        return f"<User(id={self.id}, role='{self.role.value}', pharmacy_id={self.pharmacy_id})>"
