"""Middleware modules: authorization guard, monitoring and rate limiting"""
from sleepplanet.middleware.auth import AuthGuardMiddleware, Authorized, AuthState, Forbidden, Unauthorized
from sleepplanet.middleware.monitoring import (
    MonitoringMiddleware,
    record_auth_failure,
    record_lifecycle_operation,
    record_login,
)
from sleepplanet.middleware.rate_limit import build_limiter, get_identifier

__all__ = [
    "AuthGuardMiddleware",
    "AuthState",
    "Authorized",
    "Forbidden",
    "Unauthorized",
    "MonitoringMiddleware",
    "record_auth_failure",
    "record_lifecycle_operation",
    "record_login",
    "build_limiter",
    "get_identifier",
]
