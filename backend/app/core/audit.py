"""Audit logging for account and relationship changes."""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fastapi import Request


logger = logging.getLogger("gifiti.audit")


class AuditAction(str, Enum):
    """Audit action types."""
    # Authentication
    LOGIN = "login"
    LOGOUT = "logout"
    LOGIN_FAILED = "login_failed"
    REGISTER = "register"
    ACCOUNT_DELETE = "account_delete"

    # Contacts
    CONTACT_REQUEST = "contact_request"
    CONTACT_ACCEPT = "contact_accept"
    CONTACT_REJECT = "contact_reject"
    CONTACT_REMOVE = "contact_remove"
    CONTACT_BLOCK = "contact_block"
    CONTACT_UNBLOCK = "contact_unblock"

    # Reservations
    WISH_RESERVE = "wish_reserve"
    WISH_RESERVATION_CANCEL = "wish_reservation_cancel"

    # Rate limit
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"


_SENSITIVE_KEYS = ("password", "token", "secret", "key", "authorization")


def audit_log(
    action: AuditAction,
    request: Request | None = None,
    user_id: int | str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """
    Log an audit event.

    Args:
        action: The action being performed
        request: FastAPI request object (for IP, user agent)
        user_id: ID of the user performing the action
        details: Additional details about the action
        success: Whether the action was successful
    """
    event: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action.value,
        "success": success,
    }

    if user_id is not None:
        event["user_id"] = str(user_id)

    if request:
        client_host = request.client.host if request.client else None
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_host = forwarded.split(",")[0].strip()

        event["ip"] = client_host
        event["user_agent"] = request.headers.get("User-Agent", "")[:200]
        event["request_id"] = request.headers.get("X-Request-Id", "")

    if details:
        event["details"] = {
            key: "***REDACTED***" if key in _SENSITIVE_KEYS else value
            for key, value in details.items()
        }

    if success:
        logger.info("AUDIT: %s", event)
    else:
        logger.warning("AUDIT: %s", event)


def audit_login_success(request: Request, user_id: int, email: str) -> None:
    audit_log(AuditAction.LOGIN, request=request, user_id=user_id, details={"email": email})


def audit_login_failed(request: Request, email: str, reason: str) -> None:
    audit_log(
        AuditAction.LOGIN_FAILED,
        request=request,
        details={"email": email, "reason": reason},
        success=False,
    )


def audit_logout(request: Request, user_id: int) -> None:
    audit_log(AuditAction.LOGOUT, request=request, user_id=user_id)


def audit_register(request: Request, user_id: int, email: str) -> None:
    audit_log(AuditAction.REGISTER, request=request, user_id=user_id, details={"email": email})


def audit_account_delete(request: Request, user_id: int) -> None:
    audit_log(AuditAction.ACCOUNT_DELETE, request=request, user_id=user_id)


def audit_contact_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    contact_row_id: int,
    other_user_id: int | None = None,
) -> None:
    """Log a contact state transition."""
    details: dict[str, Any] = {"contact_row_id": contact_row_id}
    if other_user_id is not None:
        details["other_user_id"] = other_user_id
    audit_log(action, request=request, user_id=user_id, details=details)


def audit_reservation_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    wish_id: int,
) -> None:
    audit_log(action, request=request, user_id=user_id, details={"wish_id": wish_id})


def audit_rate_limit_exceeded(request: Request, endpoint: str, retry_after: int) -> None:
    audit_log(
        AuditAction.RATE_LIMIT_EXCEEDED,
        request=request,
        details={"endpoint": endpoint, "retry_after": retry_after},
        success=False,
    )
