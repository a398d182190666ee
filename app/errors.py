"""Error taxonomy for time record operations.

Every failure the services raise is a TimeTrackingError carrying a stable
``kind`` so callers can branch on it. Only StoreUnavailable can be retryable.
"""
from typing import Optional


class TimeTrackingError(Exception):
    """Base class for all domain and store failures."""

    kind = "InternalError"
    http_status = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict:
        """Extra fields included in the error response."""
        return {}

    def to_response(self) -> dict:
        """Convert to the JSON error envelope."""
        body = {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        body.update(self.details())
        return {"error": body}


class Unauthenticated(TimeTrackingError):
    kind = "Unauthenticated"
    http_status = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class MalformedInput(TimeTrackingError):
    """Request body could not be parsed into a candidate payload."""

    kind = "MalformedInput"
    http_status = 400


class ValidationFailed(TimeTrackingError):
    """Payload parsed but broke one or more validation rules."""

    kind = "ValidationFailed"
    http_status = 400

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Validation errors: {', '.join(self.errors)}")

    def details(self) -> dict:
        return {"errors": self.errors}


class NotFound(TimeTrackingError):
    kind = "NotFound"
    http_status = 404

    def __init__(self, message: str = "Time record not found", record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id

    def details(self) -> dict:
        return {"recordId": self.record_id} if self.record_id else {}


class ActiveRecordExists(TimeTrackingError):
    kind = "ActiveRecordExists"
    http_status = 409

    def __init__(self, active_record_id: Optional[str] = None):
        super().__init__("An active timer is already running")
        self.active_record_id = active_record_id

    def details(self) -> dict:
        return {"activeRecordId": self.active_record_id} if self.active_record_id else {}


class StoreUnavailable(TimeTrackingError):
    """
    Backing store call failed or timed out.

    When ``outcome_unknown`` is set the call may still have been applied;
    non-idempotent operations must not be blindly retried, so services
    re-raise those through ``not_retryable``.
    """

    kind = "StoreUnavailable"
    http_status = 503

    def __init__(
        self,
        message: str = "Record store unavailable",
        operation: Optional[str] = None,
        outcome_unknown: bool = False,
        retryable: bool = True,
    ):
        super().__init__(message)
        self.operation = operation
        self.outcome_unknown = outcome_unknown
        self.retryable = retryable

    def not_retryable(self) -> "StoreUnavailable":
        """The same failure, flagged so clients do not repeat the request."""
        return StoreUnavailable(
            self.message,
            operation=self.operation,
            outcome_unknown=self.outcome_unknown,
            retryable=False,
        )

    def details(self) -> dict:
        body = {"outcomeUnknown": self.outcome_unknown}
        if self.operation:
            body["operation"] = self.operation
        return body


class RelocationIncomplete(StoreUnavailable):
    """
    A date-change relocation wrote the new item but could not remove the old one.

    The record exists at both keys until the same update is retried.
    """

    kind = "RelocationIncomplete"

    def __init__(self, record_id: str, old_key: str, new_key: str):
        super().__init__(
            f"Record {record_id} was written to {new_key} but {old_key} could not be removed",
            operation="delete",
        )
        self.record_id = record_id
        self.old_key = old_key
        self.new_key = new_key

    def details(self) -> dict:
        body = super().details()
        body.update({"recordId": self.record_id, "oldKey": self.old_key, "newKey": self.new_key})
        return body
