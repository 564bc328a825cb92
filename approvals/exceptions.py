"""
Errors raised by the approval workflow.

Every engine operation is atomic: when one of these is raised nothing has been
written and no audit entry exists for the attempt.
"""


class WorkflowError(Exception):
    """Base class for approval workflow errors"""


class ValidationError(WorkflowError):
    """Malformed or missing input (blank rejection comment, score out of range...)"""


class AuthorizationError(WorkflowError):
    """The actor lacks the role or identity the operation requires"""


class NotFoundError(WorkflowError):
    """Unknown result id"""


class InvalidStateError(WorkflowError):
    """Operation attempted out of turn or on a result that is already terminal"""


class ImmutableEntryError(WorkflowError):
    """Audit entries are append-only"""
