"""Domain exceptions raised by the service layer.

Routes translate these into HTTP responses:

    ValidationError  -> 400
    NotFoundError    -> 404
    DuplicateError   -> 409
    DependencyError  -> 409 (code DEPENDENCY_ERROR)
"""


class BusinessError(Exception):
    """Base class for expected, client-caused failures."""

    code = "BUSINESS_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BusinessError):
    """Raised when input fails a business rule (required field, bad FK, ...)."""

    code = "VALIDATION_ERROR"


class NotFoundError(BusinessError):
    """Raised when the requested row does not exist."""

    code = "NOT_FOUND"

    def __init__(self, label: str, item_id: int):
        self.label = label
        self.item_id = item_id
        super().__init__(f"{label} {item_id} not found")


class DuplicateError(BusinessError):
    """Raised when a natural key is already taken."""

    code = "DUPLICATE"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class DependencyError(BusinessError):
    """Raised when a row cannot be deleted because other rows reference it."""

    code = "DEPENDENCY_ERROR"
