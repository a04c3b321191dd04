"""Database models"""
from sleepplanet.models.admin_user import AdminUser
from sleepplanet.models.role import Role, UserRole

__all__ = ["AdminUser", "Role", "UserRole"]
