"""
Billing error taxonomy.

Every error carries the HTTP status code the API layer answers with,
so services can raise them directly and main.py renders them in one place.
"""

import re


class BillingError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    @property
    def error_type(self) -> str:
        name = type(self).__name__
        if name.endswith("Error"):
            name = name[: -len("Error")]
        return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class NotFoundError(BillingError):
    status_code = 404


class ConflictError(BillingError):
    status_code = 409


class ConcurrentUpdateError(ConflictError):
    """The account kept changing underneath the operation."""


class InsufficientFundsError(BillingError):
    status_code = 402

    def __init__(self, balance, required):
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient funds: balance {balance}, required {required}"
        )


class ValidationError(BillingError):
    status_code = 400


class UnauthenticatedError(BillingError):
    status_code = 401


class ForbiddenError(BillingError):
    status_code = 403


class TransportFailure(BillingError):
    status_code = 502

    @property
    def error_type(self) -> str:
        return "transport_failure"
