"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

    ValidationError    422  malformed or missing business input (no mutation)
    PermissionDenied   403  actor / role / identity matches no transition rule
    NotFoundError      404  project or location does not exist (or is not visible)
    ConflictError      409  duplicate operation or unique-constraint clash
    TransientError     503  store unreachable; caller re-queries and retries
    NotificationError  -    best-effort side channel failure, logged only

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=project_id)
    raise ValidationError("reason required", details={"reason": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the actor's view.

    Used for BOTH genuinely missing records AND projects the actor may not
    access, so that a 404 never confirms that a hidden project exists.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Location").
        resource_id: The key that was looked up. Included in logs.
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
    """Raised when input violates a business rule before any mutation.

    Args:
        message: Human-readable explanation of the unmet condition.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class PermissionDenied(Exception):
    """Raised when the actor's role or identity matches no transition rule.

    Args:
        actor_id: Identity of the calling actor.
        action: Requested action.
        reason: The specific unmet condition ("not the project creator", ...).
    """

    def __init__(self, actor_id: str | None, action: str, reason: str | None = None) -> None:
        self.actor_id = actor_id
        self.action = action
        self.reason = reason
        msg = f"Actor {actor_id} may not '{action}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ConflictError(Exception):
    """Raised when an operation would violate a uniqueness rule.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class TransientError(Exception):
    """Raised when the underlying store is unreachable.

    Transitions are never retried automatically; the caller should re-query
    the project's current status before retrying.
    """

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Store unavailable during '{operation}', please retry")


class NotificationError(Exception):
    """Raised (and logged) when a notification could not be dispatched.

    Never propagates to the acting user; the committed transition stands.
    """

    def __init__(self, notification_type: str, project_id: str | None, cause: Exception | None = None) -> None:
        self.notification_type = notification_type
        self.project_id = project_id
        self.cause = cause
        super().__init__(
            f"Notification '{notification_type}' for project {project_id} failed: {cause}"
        )
