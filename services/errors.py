"""
Checkmate error taxonomy.

Every failure a service can surface is a CheckmateError carrying a category and
an HTTP status; app.py turns them into JSON responses.
"""

import logging
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    UNKNOWN = "unknown"


class CheckmateError(Exception):
    """Base exception for Checkmate service errors."""
    category = ErrorCategory.UNKNOWN
    status_code = 500

    def __init__(
        self,
        message: str,
        category: Optional[ErrorCategory] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'success': False,
            'message': self.message,
            'category': self.category.value,
        }
        if self.context:
            data['context'] = self.context
        return data


class ValidationError(CheckmateError):
    category = ErrorCategory.VALIDATION
    status_code = 400


class AuthenticationError(CheckmateError):
    category = ErrorCategory.AUTHENTICATION
    status_code = 401


class PermissionDenied(CheckmateError):
    category = ErrorCategory.PERMISSION
    status_code = 403


class NotFoundError(CheckmateError):
    category = ErrorCategory.NOT_FOUND
    status_code = 404


class ConflictError(CheckmateError):
    category = ErrorCategory.CONFLICT
    status_code = 409


class StaleTaskListError(ConflictError):
    """The edited task list was built from an outdated copy of the project."""


class ReconciliationError(CheckmateError):
    """A task-list save could not be applied; nothing was committed."""
    category = ErrorCategory.VALIDATION
    status_code = 400

    @classmethod
    def from_database_error(cls, exc: Exception, project_id: int) -> "ReconciliationError":
        return cls(
            "Task list could not be saved",
            category=ErrorCategory.DATABASE,
            status_code=500,
            context={'project_id': project_id, 'error_type': type(exc).__name__},
        )


def database_error(action: str, exc: Exception) -> CheckmateError:
    """Wrap a storage failure without leaking driver details to the client."""
    logger.error(f"[DB] {action} failed: {exc}", exc_info=True)
    return CheckmateError(
        f"Could not {action}",
        category=ErrorCategory.DATABASE,
        status_code=500,
    )
