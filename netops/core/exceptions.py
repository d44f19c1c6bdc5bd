"""
Application-wide exception hierarchy.

Services raise these; blueprints map each type to one HTTP status in a
single error handler (see netops.blueprints.register_error_handlers).

Usage:
    from netops.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Breakdown", resource_id=breakdown_id)
    raise ValidationError("consumption_kwh must be positive",
                          details={"consumption_kwh": "must be > 0"})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Breakdown", "Site").
        resource_id: The id that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names;
                 values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not an edge of the lifecycle table.

    Maps to HTTP 422.
    """

    def __init__(self, resource: str, old_status: str, new_status: str,
                 allowed: list[str] | None = None) -> None:
        self.resource = resource
        self.old_status = old_status
        self.new_status = new_status
        self.allowed = allowed or []
        super().__init__(
            f"Invalid {resource} transition: {old_status} → {new_status}",
            details={"from": old_status, "to": new_status, "allowed": self.allowed},
        )


class ConflictError(Exception):
    """Raised on a uniqueness clash or when a conditional write lost a race.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The field that conflicted (``code``, ``status`` ...).
        value: The conflicting / expected value.
        message: Optional override for the default duplicate-value message.
    """

    def __init__(self, resource: str, field: str, value: str | None = None,
                 message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = message or f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
