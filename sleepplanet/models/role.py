"""Role reference data and the admin/role assignment table"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from sleepplanet.database import Base

SUPER_ADMIN = "super_admin"


class Role(Base):
    """A named privilege bucket. Seeded by migration, never created by the API."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False, index=True)   # super_admin, content_admin, ...
    display_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UserRole(Base):
    """Edge between an AdminUser and a Role."""

    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("admin_user.id", ondelete="CASCADE"), primary_key=True, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("AdminUser", back_populates="role_links")
    role = relationship("Role")


# Reference roles seeded by migration 001 and by ``sleepplanet-bootstrap``.
DEFAULT_ROLES = (
    (SUPER_ADMIN, "Super administrator", "Full access, including administrator management"),
    ("content_admin", "Content administrator", "Manages audio content"),
    ("user_admin", "User administrator", "Manages end-user accounts"),
)
