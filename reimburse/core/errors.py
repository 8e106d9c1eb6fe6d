# core/errors.py
"""
Errores del panel de reembolsos.

Cada error lleva el mensaje que ve el usuario, el tipo de notificación y el
código HTTP con el que responde la capa de páginas. Ninguno se reintenta de
forma automática.
"""

from typing import Optional


class DashboardError(Exception):
    status_code = 500
    notification_type = "error"
    default_message = "Unexpected error."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DashboardError):
    status_code = 422
    notification_type = "warning"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class AuthError(DashboardError):
    status_code = 401
    default_message = "Your session has expired. Please sign in again."


class ForbiddenError(DashboardError):
    status_code = 403
    default_message = "You are not allowed to perform this action."


class InvalidTransitionError(DashboardError):
    status_code = 409
    default_message = "This request can no longer change status. Reload the list and try again."


class ConflictError(DashboardError):
    status_code = 409
    default_message = "Could not delete. The request may have linked records."


class ActionInProgressError(DashboardError):
    status_code = 409
    notification_type = "info"
    default_message = "This action is already in progress."


class RequestTimeoutError(DashboardError):
    status_code = 504
    default_message = "The server took too long to respond. Try again."


class RemoteError(DashboardError):
    status_code = 502
    default_message = "Could not reach the server. Try again."

    def __init__(self, message: Optional[str] = None, remote_status: Optional[int] = None):
        self.remote_status = remote_status
        super().__init__(message)


class NotFoundError(RemoteError):
    status_code = 404
    default_message = "Reimbursement request not found."


class InvalidCredentialsError(DashboardError):
    status_code = 401
    default_message = "Invalid email or password."
