"""Account Store: transactional access to administrators and their roles.

Every write goes through this module. Callers group statements with
:meth:`AccountStore.transaction`, which commits once at the end or rolls the
whole unit back.
"""
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sleepplanet.errors import ConflictError, InternalError, NotFoundError
from sleepplanet.models.admin_user import AdminUser
from sleepplanet.models.role import Role, UserRole
from sleepplanet.utils.logger import logger


class UniqueColumn(str, Enum):
    """Columns that may be checked for uniqueness."""
    USERNAME = "username"
    EMAIL = "email"
    PHONE = "phone_number"


_UNIQUE_ATTRIBUTES = {
    UniqueColumn.USERNAME: AdminUser.username,
    UniqueColumn.EMAIL: AdminUser.email,
    UniqueColumn.PHONE: AdminUser.phone_number,
}

_CONFLICT_MESSAGES = {
    UniqueColumn.USERNAME: "username already exists: {value}",
    UniqueColumn.EMAIL: "email already exists: {value}",
    UniqueColumn.PHONE: "phone number already exists: {value}",
}


def conflict_from_integrity_error(exc: IntegrityError) -> ConflictError:
    """Name the offending column of a unique-constraint violation.

    SQLite reports ``admin_user.email``, PostgreSQL ``admin_user_email_key``;
    both contain the column name.
    """
    detail = str(exc.orig)
    for column in (UniqueColumn.PHONE, UniqueColumn.USERNAME, UniqueColumn.EMAIL):
        if column.value in detail:
            return ConflictError(f"{column.value.replace('_', ' ')} already exists", field=column.value)
    return ConflictError("conflicting administrator data")


class AccountStore:
    """CRUD over ``admin_user``, ``roles`` and ``user_roles`` for one session."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self, step: str) -> Iterator[None]:
        """Run the enclosed statements as one unit of work.

        Commits on success. On any failure the session is rolled back;
        driver errors are re-raised as ConflictError (unique violations) or
        InternalError naming ``step``; anything else propagates unchanged.
        """
        try:
            yield
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(f"{step} rejected by constraint", extra={"action": step, "reason": str(exc.orig)})
            raise conflict_from_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise InternalError(f"{step} failed: {exc.__class__.__name__}") from exc
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_username(self, username: str) -> Optional[AdminUser]:
        """Active administrator with exactly this username, or None."""
        return self.db.execute(
            select(AdminUser).where(AdminUser.username == username, AdminUser.is_active.is_(True))
        ).scalar_one_or_none()

    def get(self, admin_id: int) -> Optional[AdminUser]:
        """Administrator by id regardless of state, or None."""
        return self.db.get(AdminUser, admin_id)

    def roles_of(self, admin_id: int) -> List[str]:
        rows = self.db.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == admin_id)
            .order_by(Role.name)
        )
        return [name for (name,) in rows]

    def role_id_by_name(self, name: str) -> int:
        role_id = self.db.execute(select(Role.id).where(Role.name == name)).scalar_one_or_none()
        if role_id is None:
            raise NotFoundError(f"role does not exist: {name}")
        return role_id

    def check_unique(self, column: UniqueColumn, value: str) -> None:
        """Raise ConflictError when some administrator already has ``value`` in ``column``.

        Must run inside the same transaction as the insert it guards. The
        table's unique constraint stays the final authority under races.
        """
        attribute = _UNIQUE_ATTRIBUTES[column]
        taken = self.db.execute(select(exists().where(attribute == value))).scalar()
        if taken:
            raise ConflictError(_CONFLICT_MESSAGES[column].format(value=value), field=column.value)

    def list_active_with_roles(self) -> List[Tuple[AdminUser, List[str]]]:
        """All active administrators, oldest first, each with its role names."""
        admins = self.db.execute(
            select(AdminUser).where(AdminUser.is_active.is_(True)).order_by(AdminUser.id)
        ).scalars().all()
        if not admins:
            return []

        roles_by_admin: Dict[int, List[str]] = {admin.id: [] for admin in admins}
        rows = self.db.execute(
            select(UserRole.user_id, Role.name)
            .join(Role, Role.id == UserRole.role_id)
            .where(UserRole.user_id.in_(list(roles_by_admin)))
            .order_by(Role.name)
        )
        for user_id, role_name in rows:
            roles_by_admin[user_id].append(role_name)

        return [(admin, roles_by_admin[admin.id]) for admin in admins]

    # ------------------------------------------------------------------
    # Writes (call inside transaction())
    # ------------------------------------------------------------------

    def create_administrator(
        self,
        username: str,
        email: str,
        password_hash: str,
        phone_number: Optional[str] = None,
    ) -> int:
        now = datetime.utcnow()
        user = AdminUser(
            username=username,
            email=email,
            password_hash=password_hash,
            phone_number=phone_number,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(user)
        self.db.flush()
        return user.id

    def assign_role(self, admin_id: int, role_id: int) -> None:
        self.db.add(UserRole(user_id=admin_id, role_id=role_id))
        self.db.flush()

    def delete_administrator(self, admin_id: int) -> bool:
        """Remove the role assignments, then the administrator row if it is still active.

        Returns False when no active row was deleted; the caller must then
        abandon the transaction so the assignments are restored.
        """
        self.db.query(UserRole).filter(UserRole.user_id == admin_id).delete(synchronize_session=False)
        deleted = self.db.query(AdminUser).filter(
            AdminUser.id == admin_id, AdminUser.is_active.is_(True)
        ).delete(synchronize_session=False)
        self.db.flush()
        self.db.expire_all()
        return deleted == 1

    def set_active(self, admin_id: int, active: bool) -> bool:
        """Flip ``is_active`` only if it currently holds the opposite value.

        Returns False when no row changed (missing, or already in that state).
        """
        changed = self.db.query(AdminUser).filter(
            AdminUser.id == admin_id, AdminUser.is_active.is_(not active)
        ).update(
            {AdminUser.is_active: active, AdminUser.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
        self.db.flush()
        self.db.expire_all()
        return changed == 1

    def update_password_hash(self, admin_id: int, password_hash: str) -> None:
        self.db.query(AdminUser).filter(AdminUser.id == admin_id).update(
            {AdminUser.password_hash: password_hash, AdminUser.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
        self.db.flush()

    def ensure_roles(self, roles: Iterable[Tuple[str, str, str]]) -> List[str]:
        """Insert any of ``(name, display_name, description)`` not yet present; return the names added."""
        existing = set(self.db.execute(select(Role.name)).scalars())
        added = []
        for name, display_name, description in roles:
            if name in existing:
                continue
            self.db.add(Role(name=name, display_name=display_name, description=description))
            added.append(name)
        self.db.flush()
        return added
