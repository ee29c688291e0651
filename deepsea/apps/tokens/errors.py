"""
Failure kinds raised by the token ledger and the treasury.

Every error aborts the whole operation (the surrounding transaction is
rolled back) and carries a machine-readable ``code`` plus a human-readable
``detail`` string.
"""


class LedgerError(Exception):
    """Base class for ledger and treasury failures"""

    code = "Unknown"

    def __init__(self, detail: str = ""):
        self.detail = detail or self.code
        super().__init__(self.detail)

    def as_dict(self):
        return {"success": False, "error": self.code, "detail": self.detail}


class Unauthorized(LedgerError):
    code = "Unauthorized"


class NotFound(LedgerError):
    code = "NotFound"


class AlreadyExists(LedgerError):
    code = "AlreadyExists"


class InvalidArgument(LedgerError):
    code = "InvalidArgument"


class SupplyExceeded(LedgerError):
    code = "SupplyExceeded"


class InsufficientBalance(LedgerError):
    code = "InsufficientBalance"


class LengthMismatch(LedgerError):
    code = "LengthMismatch"


class TransferFailed(LedgerError):
    code = "TransferFailed"
