"""Admin Lifecycle Service: login and the privileged create/list/freeze/delete operations.

Every privileged operation re-reads the acting administrator and its roles
from the database instead of trusting the roles embedded in the token, so
role changes, freezes and deletions take effect on the next call.
"""
from typing import List, Optional, Sequence

from sleepplanet.errors import ConflictError, HashingError, NotFoundError, PrivilegeError, PublicError
from sleepplanet.middleware.monitoring import record_lifecycle_operation, record_login
from sleepplanet.models.admin_user import AdminUser
from sleepplanet.models.role import SUPER_ADMIN
from sleepplanet.schemas.admin_user import AdminSummary, LoginResult
from sleepplanet.services.account_store import AccountStore, UniqueColumn
from sleepplanet.utils.jwt_utils import TokenService
from sleepplanet.utils.logger import logger
from sleepplanet.utils.passwords import PasswordHasher

LOGIN_FAILED_MESSAGE = "username or password incorrect"


class AdminLifecycleService:
    def __init__(self, store: AccountStore, hasher: PasswordHasher, tokens: TokenService):
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> LoginResult:
        """Verify credentials of an active administrator and issue a token.

        Unknown user, frozen user and wrong password all produce the same
        PublicError so usernames cannot be enumerated.
        """
        logger.info("Admin login attempt", extra={"username": username, "action": "login"})

        user = self.store.find_by_username(username)
        if user is None:
            self._login_failed(username, "unknown or frozen account")

        try:
            verified = self.hasher.verify(password, user.password_hash)
        except HashingError:
            logger.error(
                "Stored password hash is unreadable",
                extra={"admin_id": user.id, "action": "login"},
                exc_info=True,
            )
            verified = False
        if not verified:
            self._login_failed(username, "password mismatch")

        if self.hasher.needs_rehash(user.password_hash):
            with self.store.transaction("rehash password"):
                self.store.update_password_hash(user.id, self.hasher.hash(password))
            logger.info("Password hash upgraded", extra={"admin_id": user.id, "action": "rehash"})

        roles = self.store.roles_of(user.id)
        token, claims = self.tokens.issue_claims(user.id, user.username, roles)

        record_login("success")
        logger.info(
            "Admin login succeeded",
            extra={"admin_id": user.id, "username": user.username, "action": "login"},
        )
        return LoginResult(admin_id=user.id, username=user.username, token=token, exp=claims.exp)

    def _login_failed(self, username: str, reason: str) -> None:
        record_login("failure")
        logger.warning("Admin login failed", extra={"username": username, "reason": reason, "action": "login"})
        raise PublicError(LOGIN_FAILED_MESSAGE)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def require_super_admin(self, acting_admin_id: int) -> AdminUser:
        """Return the acting administrator if it is active and holds ``super_admin``.

        Raises:
            PrivilegeError: the actor no longer exists, is frozen, or lacks the role.
        """
        actor = self.store.get(acting_admin_id)
        if actor is None or not actor.is_active:
            logger.warning(
                "Privileged call by missing or frozen account",
                extra={"admin_id": acting_admin_id, "reason": "inactive"},
            )
            raise PrivilegeError()

        if SUPER_ADMIN not in self.store.roles_of(acting_admin_id):
            logger.warning(
                "Privileged call without super_admin role",
                extra={"admin_id": acting_admin_id, "reason": "role"},
            )
            raise PrivilegeError()
        return actor

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def create(
        self,
        acting_admin_id: int,
        username: str,
        password: str,
        email: str,
        phone_number: Optional[str],
        role_names: Sequence[str],
    ) -> int:
        """Create an administrator with its roles in one transaction and return its id."""
        self.require_super_admin(acting_admin_id)
        password_hash = self.hasher.hash(password)

        with self.store.transaction("create administrator"):
            self.store.check_unique(UniqueColumn.USERNAME, username)
            self.store.check_unique(UniqueColumn.EMAIL, email)
            if phone_number:
                self.store.check_unique(UniqueColumn.PHONE, phone_number)

            admin_id = self.store.create_administrator(username, email, password_hash, phone_number)

            role_ids = [self.store.role_id_by_name(name) for name in dict.fromkeys(role_names)]
            for role_id in role_ids:
                self.store.assign_role(admin_id, role_id)

        record_lifecycle_operation("create")
        logger.info(
            f"Created administrator: {admin_id}",
            extra={"admin_id": acting_admin_id, "username": username, "action": "create"},
        )
        return admin_id

    def list(self, acting_admin_id: int) -> List[AdminSummary]:
        self.require_super_admin(acting_admin_id)
        with self.store.transaction("list administrators"):
            rows = self.store.list_active_with_roles()
            summaries = [AdminSummary.from_admin(admin, roles) for admin, roles in rows]

        logger.info(
            f"Listed {len(summaries)} administrators",
            extra={"admin_id": acting_admin_id, "action": "list"},
        )
        return summaries

    def freeze(self, acting_admin_id: int, target_admin_id: int) -> None:
        self.require_super_admin(acting_admin_id)
        self._require_other(acting_admin_id, target_admin_id, "freeze")

        with self.store.transaction("freeze administrator"):
            target = self.store.get(target_admin_id)
            if target is None:
                raise NotFoundError(f"administrator not found: {target_admin_id}")
            if not target.is_active:
                raise ConflictError(f"administrator already frozen: {target_admin_id}")

            # The read above may be stale; only the conditional write decides.
            if not self.store.set_active(target_admin_id, False):
                raise ConflictError(f"administrator already frozen: {target_admin_id}")

        record_lifecycle_operation("freeze")
        logger.info(
            f"Froze administrator: {target_admin_id}",
            extra={"admin_id": acting_admin_id, "action": "freeze"},
        )

    def delete(self, acting_admin_id: int, target_admin_id: int) -> None:
        self.require_super_admin(acting_admin_id)
        self._require_other(acting_admin_id, target_admin_id, "delete")

        with self.store.transaction("delete administrator"):
            target = self.store.get(target_admin_id)
            if target is None:
                raise NotFoundError(f"administrator not found: {target_admin_id}")
            if not target.is_active:
                raise ConflictError(f"administrator is frozen: {target_admin_id}")

            if not self.store.delete_administrator(target_admin_id):
                raise ConflictError(f"administrator was frozen or deleted concurrently: {target_admin_id}")

        record_lifecycle_operation("delete")
        logger.info(
            f"Deleted administrator: {target_admin_id}",
            extra={"admin_id": acting_admin_id, "action": "delete"},
        )

    @staticmethod
    def _require_other(acting_admin_id: int, target_admin_id: int, action: str) -> None:
        if acting_admin_id == target_admin_id:
            raise PublicError(f"cannot {action} your own account")
