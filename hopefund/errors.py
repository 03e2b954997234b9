# hopefund/errors.py
"""
Service-level exceptions.

Services raise these; the app factory renders them as the standard JSON
error body. Each carries the HTTP status it maps to.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    status_code = 400
    code = "service_error"

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"type": self.code, "message": self.message}
        body.update(self.extra)
        return body


class ValidationError(ServiceError):
    status_code = 422
    code = "validation_error"

    def __init__(self, errors: List[str], fields: Optional[Dict[str, List[str]]] = None) -> None:
        errors = [e for e in errors if e]
        super().__init__(", ".join(errors) or "Invalid input")
        self.errors = errors
        self.fields = fields or {}

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.errors
        if self.fields:
            body["fields"] = self.fields
        return body


class AuthenticationRequired(ServiceError):
    status_code = 401
    code = "authentication_required"

    def __init__(self, message: str = "Authentication required. Please log in.") -> None:
        super().__init__(message)


class PermissionDenied(ServiceError):
    status_code = 403
    code = "permission_denied"

    def __init__(self, permission: Optional[str] = None, message: Optional[str] = None) -> None:
        if message is None:
            message = (
                f"Access denied. Required permission: {permission}"
                if permission
                else "You don't have permission to perform this action."
            )
        super().__init__(message)
        self.permission = permission

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.permission:
            body["permission"] = self.permission
        return body


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"


class Conflict(ServiceError):
    status_code = 409
    code = "conflict"


class PaymentError(ServiceError):
    status_code = 402
    code = "payment_error"

    def __init__(self, message: str, provider_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.provider_code = provider_code

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.provider_code:
            body["provider_code"] = self.provider_code
        return body


__all__ = [
    "ServiceError",
    "ValidationError",
    "AuthenticationRequired",
    "PermissionDenied",
    "NotFound",
    "Conflict",
    "PaymentError",
]
