"""Typed errors for the SafeWork risk core.

Every error carries a machine-readable ``code`` so the request layer can map
it to a response without parsing messages:

    RiskCoreError
    +-- NotFoundError
    +-- ForbiddenError
    +-- ConflictError
    |   +-- ConcurrencyConflictError   (retryable)
    +-- ValidationError
    |   +-- ChecklistIncompleteError
    +-- InvalidScoreError
    +-- PersistenceError
"""

from typing import Any, Dict, List, Optional


class RiskCoreError(Exception):
    """Base class for all risk core errors."""

    code = "RISK_CORE_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(RiskCoreError):
    """Raised when a document, workflow or step does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Optional[str] = None):
        message = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


class ForbiddenError(RiskCoreError):
    """Raised when the actor is not allowed to perform an action."""

    code = "FORBIDDEN"

    def __init__(self, action: str, actor_id: Optional[str] = None):
        super().__init__(f"Permission denied: cannot {action}")
        self.action = action
        self.actor_id = actor_id


class ConflictError(RiskCoreError):
    """Raised when the current state does not allow the requested transition."""

    code = "CONFLICT"
    retryable = False


class ConcurrencyConflictError(ConflictError):
    """Raised when a conditional write lost an optimistic-concurrency race.

    Safe for the caller to retry a small bounded number of times.
    """

    code = "VERSION_CONFLICT"
    retryable = True

    def __init__(self, path: str, doc_id: str, expected_version: Optional[int], actual_version: Optional[int]):
        super().__init__(
            f"Document {path}/{doc_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.path = path
        self.doc_id = doc_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class ValidationError(RiskCoreError):
    """Raised when input or document state fails validation."""

    code = "VALIDATION_ERROR"


class ChecklistIncompleteError(ValidationError):
    """Raised when an LMRA session is completed before its checklist is filled in.

    ``missing`` lists the absent categories; ``details`` maps every category
    to whether it is satisfied.
    """

    code = "INCOMPLETE_CHECKS"

    def __init__(self, missing: List[str], details: Dict[str, bool]):
        super().__init__(
            "All required checks must be completed before finalizing LMRA",
            details=details,
        )
        self.missing = list(missing)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["missing"] = self.missing
        return payload


class InvalidScoreError(RiskCoreError):
    """Raised by strict scoring helpers when a factor is outside the Kinney scale."""

    code = "INVALID_SCORE"

    def __init__(self, factor: str, value: Any):
        super().__init__(f"Invalid {factor} score: {value!r}")
        self.factor = factor
        self.value = value


class PersistenceError(RiskCoreError):
    """Raised when the document store fails for infrastructure reasons."""

    code = "STORE_ERROR"
