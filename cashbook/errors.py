class LedgerError(RuntimeError):
    """Base class for every error the cash book core surfaces to callers."""


class ValidationError(LedgerError, ValueError):
    """Malformed intake. Nothing was written."""


class PermissionDenied(LedgerError):
    """The acting principal lacks the role or ownership for the operation."""


class InvalidState(LedgerError):
    """The transaction is missing or its status does not allow the transition."""

    def __init__(self, message: str, *, txn_id=None, missing: bool = False):
        super().__init__(message)
        self.txn_id = txn_id
        self.missing = missing


class PersistenceFailure(LedgerError):
    """The backing store could not confirm the operation."""


class AuthenticationFailed(LedgerError):
    pass
