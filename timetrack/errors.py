from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class _TypedApiError(ApiError):
    status_code_default = 400
    code_default = "BAD_REQUEST"
    message_default = "Request failed."

    def __init__(self, message: str | None = None):
        super().__init__(
            status_code=self.status_code_default,
            code=self.code_default,
            message=message or self.message_default,
        )


class InvalidIntervalError(_TypedApiError):
    status_code_default = 422
    code_default = "INVALID_INTERVAL"
    message_default = "End time must be after start time."


class InvalidClockTimeError(_TypedApiError):
    status_code_default = 422
    code_default = "INVALID_CLOCK_TIME"
    message_default = "Time values must be in 24-hour HH:mm format."


class PolicyViolationError(_TypedApiError):
    status_code_default = 422
    code_default = "POLICY_VIOLATION"
    message_default = "Entry violates the time entry policy."


class FutureDateNotAllowedError(PolicyViolationError):
    code_default = "FUTURE_DATE_NOT_ALLOWED"
    message_default = "Cannot create time entries for future dates."


class BackdateLimitExceededError(PolicyViolationError):
    code_default = "BACKDATE_LIMIT_EXCEEDED"
    message_default = "Entry date is older than the allowed backdate window."


class NotFoundError(_TypedApiError):
    status_code_default = 404
    code_default = "NOT_FOUND"
    message_default = "Entity not found."


class UserNotFoundError(NotFoundError):
    code_default = "USER_NOT_FOUND"
    message_default = "User not found or inactive."


class ProjectNotFoundError(NotFoundError):
    code_default = "PROJECT_NOT_FOUND"
    message_default = "Project not found or inactive."


class WorkspaceNotFoundError(NotFoundError):
    code_default = "WORKSPACE_NOT_FOUND"
    message_default = "Workspace not found or inactive."


class CrossTenantError(_TypedApiError):
    status_code_default = 403
    code_default = "CROSS_TENANT"
    message_default = "Cross-tenant access is not allowed."


class ForbiddenError(_TypedApiError):
    status_code_default = 403
    code_default = "FORBIDDEN"
    message_default = "Insufficient permissions."


class WorkspaceMismatchError(_TypedApiError):
    status_code_default = 422
    code_default = "WORKSPACE_MISMATCH"
    message_default = "Project is not linked to the selected workspace."


class ImmutableApprovedEntryError(_TypedApiError):
    status_code_default = 409
    code_default = "IMMUTABLE_APPROVED_ENTRY"
    message_default = "Approved entries are immutable."


class InvalidTokenError(_TypedApiError):
    status_code_default = 401
    code_default = "INVALID_TOKEN"
    message_default = "Token is invalid."


class InvalidCredentialsError(_TypedApiError):
    status_code_default = 401
    code_default = "INVALID_CREDENTIALS"
    message_default = "Invalid email or password."


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
