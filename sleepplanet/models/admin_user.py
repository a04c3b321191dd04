"""AdminUser model: operator accounts"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from sleepplanet.database import Base


class AdminUser(Base):
    """An administrator account.

    ``username``, ``email`` and ``phone_number`` are unique across active and
    frozen rows alike. Freezing only flips ``is_active``; deletion removes the
    row together with its role assignments.
    """

    __tablename__ = "admin_user"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    phone_number = Column(String(20), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    role_links = relationship("UserRole", back_populates="user", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<AdminUser id={self.id} username={self.username!r} active={self.is_active}>"
