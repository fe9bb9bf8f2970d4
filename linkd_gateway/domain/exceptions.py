"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidArgumentError(DomainException):
    """Input violates a positivity, range or format constraint"""

    pass


class NotFoundError(DomainException):
    """Requested record does not exist"""

    pass


class DispatchError(DomainException):
    """Report dispatcher returned an error or is unavailable"""

    pass
