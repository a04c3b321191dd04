"""Tests for token issuance and classified validation"""
import string

import pytest
from jose import jwt

from sleepplanet.errors import ConfigError
from sleepplanet.utils.jwt_utils import Claims, TokenError, TokenErrorKind, TokenService

SECRET = "unit-test-secret"
TTL = 60
BASE64URL_ALPHABET = string.ascii_letters + string.digits + "-_"


class FakeClock:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1_750_000_000.0)


@pytest.fixture
def tokens(clock: FakeClock) -> TokenService:
    return TokenService(SECRET, TTL, clock=clock)


def _tamper_signature(token: str) -> str:
    header, payload, signature = token.split(".")
    i = len(signature) // 2
    replacement = "A" if signature[i] != "A" else "B"
    return ".".join([header, payload, signature[:i] + replacement + signature[i + 1:]])


def test_validate_returns_issued_claims(tokens: TokenService, clock: FakeClock):
    token = tokens.issue(7, "alice", ["super_admin", "editor"])
    claims = tokens.validate(token)

    assert claims == Claims(admin_id=7, username="alice", role="super_admin,editor", exp=int(clock.now) + TTL)
    assert claims.roles == ["super_admin", "editor"]


def test_issue_claims_reports_absolute_expiry(tokens: TokenService, clock: FakeClock):
    token, claims = tokens.issue_claims(1, "alice", ["super_admin"])
    assert claims.exp == int(clock.now) + TTL
    assert tokens.validate(token) == claims


def test_empty_role_list_round_trips(tokens: TokenService):
    claims = tokens.validate(tokens.issue(3, "nobody", []))
    assert claims.role == ""
    assert claims.roles == []


def test_valid_until_just_before_exp(tokens: TokenService, clock: FakeClock):
    token = tokens.issue(1, "alice", ["super_admin"])
    clock.now += TTL - 0.001
    assert tokens.validate(token).admin_id == 1


def test_expired_at_exp(tokens: TokenService, clock: FakeClock):
    """No grace period: a token is expired the moment now reaches exp"""
    token = tokens.issue(1, "alice", ["super_admin"])
    clock.now += TTL
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(token)
    assert exc_info.value.kind is TokenErrorKind.EXPIRED


def test_expired_after_exp(tokens: TokenService, clock: FakeClock):
    token = tokens.issue(1, "alice", ["super_admin"])
    clock.now += TTL + 3600
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(token)
    assert exc_info.value.kind is TokenErrorKind.EXPIRED


def test_tampered_signature_is_bad_signature(tokens: TokenService):
    token = tokens.issue(1, "alice", ["super_admin"])
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(_tamper_signature(token))
    assert exc_info.value.kind is TokenErrorKind.BAD_SIGNATURE


def test_tampered_signature_on_expired_token_is_still_bad_signature(tokens: TokenService, clock: FakeClock):
    token = tokens.issue(1, "alice", ["super_admin"])
    clock.now += TTL * 10
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(_tamper_signature(token))
    assert exc_info.value.kind is TokenErrorKind.BAD_SIGNATURE


def test_every_single_character_signature_change_is_bad_signature(tokens: TokenService):
    """Any character at any position, including the padding bits of the last one"""
    token = tokens.issue(1, "alice", ["super_admin"])
    header, payload, signature = token.split(".")
    outcomes = {}
    for position, current in enumerate(signature):
        for replacement in BASE64URL_ALPHABET + "!*":
            if replacement == current:
                continue
            forged = ".".join([header, payload, signature[:position] + replacement + signature[position + 1:]])
            try:
                tokens.validate(forged)
                outcome = "accepted"
            except TokenError as exc:
                outcome = exc.kind.value
            if outcome != TokenErrorKind.BAD_SIGNATURE.value:
                outcomes[(position, replacement)] = outcome
    assert outcomes == {}


@pytest.mark.parametrize("signature", ["", "A", "!!!!", "abc="])
def test_unusable_signature_segment_is_bad_signature(tokens: TokenService, signature: str):
    header, payload, _ = tokens.issue(1, "alice", ["super_admin"]).split(".")
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(".".join([header, payload, signature]))
    assert exc_info.value.kind is TokenErrorKind.BAD_SIGNATURE


def test_token_from_other_secret_is_bad_signature(tokens: TokenService, clock: FakeClock):
    foreign = TokenService("another-secret", TTL, clock=clock).issue(1, "alice", ["super_admin"])
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(foreign)
    assert exc_info.value.kind is TokenErrorKind.BAD_SIGNATURE


def test_payload_change_is_bad_signature(tokens: TokenService, clock: FakeClock):
    """Swapping in another token's payload breaks the signature"""
    original = tokens.issue(2, "edward", ["editor"])
    elevated = tokens.issue(2, "edward", ["super_admin"])
    header, _, signature = original.split(".")
    forged = ".".join([header, elevated.split(".")[1], signature])
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(forged)
    assert exc_info.value.kind is TokenErrorKind.BAD_SIGNATURE


@pytest.mark.parametrize("garbage", ["not-a-token", "a.b.c", "...", "abc.def"])
def test_garbage_is_malformed(tokens: TokenService, garbage: str):
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(garbage)
    assert exc_info.value.kind is TokenErrorKind.MALFORMED


def test_signed_payload_missing_claims_is_malformed(tokens: TokenService):
    token = jwt.encode({"sub": "alice"}, SECRET, algorithm="HS256")
    with pytest.raises(TokenError) as exc_info:
        tokens.validate(token)
    assert exc_info.value.kind is TokenErrorKind.MALFORMED


def test_empty_secret_rejected_at_construction():
    with pytest.raises(ConfigError):
        TokenService("", TTL)


def test_zero_ttl_rejected_at_construction():
    with pytest.raises(ConfigError):
        TokenService(SECRET, 0)


def test_from_settings(settings):
    service = TokenService.from_settings(settings)
    assert service.expires_in == settings.JWT_EXPIRES_IN
    claims = service.validate(service.issue(1, "alice", ["super_admin"]))
    assert claims.username == "alice"
