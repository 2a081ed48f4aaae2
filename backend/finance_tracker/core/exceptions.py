"""Custom exception classes for the application."""

from fastapi import HTTPException, status


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundError(HTTPException):
    """Missing resource, or one owned by another user (never distinguished)."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class InvalidAmountError(ValidationError):
    def __init__(self, detail: str = "Amount must be a positive number"):
        super().__init__(detail)


class InvalidTransactionTypeError(ValidationError):
    def __init__(self, value: object = None):
        super().__init__(f"Invalid transaction type: {value!r} (expected 'expense' or 'income')")


class StorageFailureError(HTTPException):
    """The store failed before anything was written; nothing changed."""

    def __init__(self, detail: str = "Storage temporarily unavailable, nothing was saved"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )


class PartialWriteError(HTTPException):
    """The store failed after part of an operation was written.

    Clients must not treat this as a clean failure: for a store without
    transactions the row and its account balance may disagree until the data
    is refreshed or reconciled. With ``SqlLedgerStore`` the request's database
    transaction is rolled back by ``get_db``, so nothing was persisted and a
    refresh shows the state from before the request.
    """

    def __init__(self, operation: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=(
                f"Transaction {operation} may have partially succeeded; "
                "account balances may be stale, please refresh"
            ),
        )
        self.operation = operation
