"""
LifeMon Backend — Error Types
===============================

Every error the API reports on purpose. The global handlers in main.py turn
them into `{"success": false, "error": <message>}`.

    LifeMonError
    ├── ValidationError    400  bad or missing client input
    │   └── ConflictError  400  a unique value (email) already belongs to someone else
    ├── FileStorageError   500  the uploads volume failed
    └── DatabaseError      500  the database failed

`message` is what the client sees. `context` carries debugging details for
the logs; DatabaseError keeps the driver text under "original_error".
"""

from typing import Any, Dict, Optional


class LifeMonError(Exception):
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.context: Dict[str, Any] = dict(context or {})
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ValidationError(LifeMonError):
    """
    Client input the request cannot proceed with: no caller id, no file,
    a non-image or oversize upload, an unknown user.

    `field` names the offending input when there is one.
    """

    default_message = "Invalid request"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.field = field
        if field:
            self.context.setdefault("field", field)


class ConflictError(ValidationError):
    default_message = "Email is already used by another user"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = "email",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, field, context)


class FileStorageError(LifeMonError):
    default_message = "File storage operation failed"


class DatabaseError(LifeMonError):
    default_message = "A database error occurred. Please try again later."
