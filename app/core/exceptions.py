"""
Service-wide exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes and response envelopes everywhere.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Program", resource_id=42)
    raise ValidationError(
        'Invalid start date for cohort "Cohort A"',
        details=[{"field": "cohortDetails[0].startDate", "message": "not a date"}],
    )

Resolution misses (facilitator email or location name not found) are NOT
exceptions. They are collected as warnings on the provisioning result; see
``app.services.resource_matcher.UnmatchedRecord``.
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Program", "Cohort").
        resource_id: The key that was looked up. Included in logs and message.
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
    """Raised when input is missing, malformed or violates a business rule.

    Surfaced verbatim to the caller and never retried. Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Field-level breakdown, a list of ``{"field", "message"}``
                 dicts where ``field`` is a dotted/indexed path into the
                 request payload (e.g. ``cohortDetails[1].startDate``).
    """

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        self.details = details or []
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        """Build a single-field error whose message is also the summary."""
        return cls(message, details=[{"field": field, "message": message}])


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique pair.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field (or pair) that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class TransactionFailure(Exception):
    """Raised after a storage error rolled back a provisioning transaction.

    Carries enough context to diagnose without reproducing. Maps to HTTP 500.

    Args:
        message: Underlying error text.
        program_name: Program being provisioned or updated.
        cohort_name: Cohort being processed when the failure happened, if any.
        stage: Provisioning stage at the time of failure.
    """

    def __init__(
        self,
        message: str,
        *,
        program_name: str | None = None,
        cohort_name: str | None = None,
        stage: str | None = None,
    ) -> None:
        self.program_name = program_name
        self.cohort_name = cohort_name
        self.stage = stage
        super().__init__(message)
