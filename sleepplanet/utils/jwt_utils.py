"""JWT utilities: HS256 token signing and classified verification"""
import binascii
import json
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence, Tuple

from jose import jws, jwt
from jose.exceptions import JOSEError, JWSError
from jose.utils import base64url_decode, base64url_encode

from sleepplanet.errors import ConfigError

ROLE_DELIMITER = ","
_BASE64URL = re.compile(r"[A-Za-z0-9_-]*")


class TokenErrorKind(str, Enum):
    """Why a presented token was rejected."""
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED = "malformed"
    OTHER = "other"


class TokenError(Exception):
    def __init__(self, kind: TokenErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class Claims:
    """Decoded token payload. Roles travel as one comma-joined string."""

    admin_id: int
    username: str
    role: str
    exp: int

    @property
    def roles(self) -> List[str]:
        return [name for name in self.role.split(ROLE_DELIMITER) if name]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "admin_id": self.admin_id,
            "username": self.username,
            "role": self.role,
            "exp": self.exp,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "Claims":
        """Build Claims from a decoded payload, raising ValueError on a wrong shape."""
        if not isinstance(payload, dict):
            raise ValueError("token payload is not a JSON object")
        admin_id = payload.get("admin_id")
        username = payload.get("username")
        role = payload.get("role")
        exp = payload.get("exp")
        if not isinstance(admin_id, int) or isinstance(admin_id, bool):
            raise ValueError("admin_id claim missing or not an integer")
        if not isinstance(username, str) or not isinstance(role, str):
            raise ValueError("username/role claims missing or not strings")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise ValueError("exp claim missing or not an integer")
        return cls(admin_id=admin_id, username=username, role=role, exp=exp)


class TokenService:
    """Issues and validates signed, time-bounded admin tokens.

    Tokens are stateless: there is no server-side revocation list, a token is
    accepted until its ``exp``. Expiry is checked with no grace period.
    """

    def __init__(
        self,
        secret: str,
        expires_in: int,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret
        self._expires_in = expires_in
        self._algorithm = algorithm
        self._clock = clock
        self._check_config()

    @classmethod
    def from_settings(cls, settings, clock: Callable[[], float] = time.time) -> "TokenService":
        jwt_config = settings.jwt
        return cls(
            secret=jwt_config.secret,
            expires_in=jwt_config.expires_in,
            algorithm=jwt_config.algorithm,
            clock=clock,
        )

    @property
    def expires_in(self) -> int:
        return self._expires_in

    def _check_config(self) -> None:
        if not self._secret:
            raise ConfigError("JWT secret is empty")
        if self._expires_in <= 0:
            raise ConfigError("JWT expires_in must be positive")

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue(self, admin_id: int, username: str, roles: Sequence[str]) -> str:
        """Sign and return a token for ``admin_id`` valid for the configured ttl."""
        token, _ = self.issue_claims(admin_id, username, roles)
        return token

    def issue_claims(self, admin_id: int, username: str, roles: Sequence[str]) -> Tuple[str, Claims]:
        """Like :meth:`issue` but also returns the signed Claims (for the absolute ``exp``)."""
        self._check_config()
        claims = Claims(
            admin_id=admin_id,
            username=username,
            role=ROLE_DELIMITER.join(roles),
            exp=int(self._clock()) + self._expires_in,
        )
        token = jwt.encode(claims.to_payload(), self._secret, algorithm=self._algorithm)
        return token, claims

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, token: str) -> Claims:
        """Verify ``token`` and return its Claims.

        Checks run in order: token structure, signature, payload shape, expiry.
        A token whose header and payload segments decode is judged on its
        signature: any change to the signature segment, including characters
        outside the base64url alphabet or a non-canonical final character, is
        BAD_SIGNATURE, whatever the payload says.

        Raises:
            TokenError: classified by :class:`TokenErrorKind`.
        """
        signature = self._check_structure(token)

        if not _is_canonical_base64url(signature):
            raise TokenError(TokenErrorKind.BAD_SIGNATURE, "signature segment is not canonical base64url")

        try:
            payload = jws.verify(token, self._secret, algorithms=[self._algorithm])
        except JWSError as exc:
            raise TokenError(TokenErrorKind.BAD_SIGNATURE, f"signature verification failed: {exc}") from exc
        except JOSEError as exc:
            raise TokenError(TokenErrorKind.OTHER, f"token verification failed: {exc}") from exc

        try:
            claims = Claims.from_payload(json.loads(payload))
        except ValueError as exc:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors too
            raise TokenError(TokenErrorKind.MALFORMED, f"token payload invalid: {exc}") from exc

        if self._clock() >= claims.exp:
            raise TokenError(TokenErrorKind.EXPIRED, "token has expired")

        return claims

    @staticmethod
    def _check_structure(token: str) -> str:
        """Require ``header.payload.signature`` with a decodable JSON header; return the signature segment."""
        segments = token.split(".")
        if len(segments) != 3:
            raise TokenError(TokenErrorKind.MALFORMED, "token must have three segments")
        header_segment, payload_segment, signature = segments

        try:
            header = json.loads(base64url_decode(header_segment.encode("ascii")))
            base64url_decode(payload_segment.encode("ascii"))
        except (ValueError, TypeError, binascii.Error) as exc:
            # UnicodeEncodeError and json.JSONDecodeError are ValueErrors too
            raise TokenError(TokenErrorKind.MALFORMED, f"token structure invalid: {exc}") from exc
        if not isinstance(header, dict):
            raise TokenError(TokenErrorKind.MALFORMED, "token header is not a JSON object")
        return signature


def _is_canonical_base64url(segment: str) -> bool:
    """True when ``segment`` is exactly what base64url-encoding its decoded bytes produces."""
    if not _BASE64URL.fullmatch(segment):
        return False
    try:
        return base64url_encode(base64url_decode(segment.encode("ascii"))).decode("ascii") == segment
    except (ValueError, TypeError, binascii.Error):
        return False
