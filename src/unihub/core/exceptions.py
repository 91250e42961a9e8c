"""Domain error taxonomy.

Every error carries a stable ``kind`` and the HTTP status the web layer maps it
to. ``retryable`` is only true when the failed operation left nothing applied.
"""


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "domain_error"
    status_code = 400
    retryable = False


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation_error"


class NoTargetStudents(ValidationError):
    kind = "no_target_students"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    kind = "authentication_error"
    status_code = 401


class PermissionDenied(DomainError):
    """Raised when a role lacks the permission or scope for an action."""

    kind = "permission_denied"
    status_code = 403


class Forbidden(PermissionDenied):
    """Raised when the caller holds the permission but not the relationship."""

    kind = "forbidden"


class NotFound(DomainError):
    kind = "not_found"
    status_code = 404


class InvalidCode(NotFound):
    kind = "invalid_code"


class Conflict(DomainError):
    kind = "conflict"
    status_code = 409


class DuplicateEntry(Conflict):
    """Raised by repositories when a unique key is violated."""

    kind = "duplicate_entry"


class AlreadyMember(Conflict):
    kind = "already_member"


class SingleDepartmentViolation(Conflict):
    kind = "single_department_violation"


class AlreadySubmitted(Conflict):
    kind = "already_submitted"


class AlreadyAudited(Conflict):
    kind = "already_audited"


class NoDepartment(Conflict):
    kind = "no_department"


class Expired(Conflict):
    kind = "expired"


class RateLimited(DomainError):
    kind = "rate_limited"
    status_code = 429

    def __init__(self, message: str, *, retry_after: float = 0.0):
        super().__init__(message)
        self.retry_after = retry_after


class TransientStorageError(DomainError):
    """Persistence failure; the operation was rolled back and may be retried."""

    kind = "transient_storage_error"
    status_code = 503
    retryable = True


class FollowUpTaskFailed(TransientStorageError):
    """Leave approval rolled back because its return check-in could not be created."""

    kind = "follow_up_task_failed"

    def __init__(self, leave_id: str):
        super().__init__(f"Approval of leave {leave_id} rolled back: return check-in could not be created")
        self.leave_id = leave_id
