"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected before anything was persisted"""

    pass


class NotFoundError(DomainException):
    """Referenced card, transaction or bill does not exist"""

    pass


class AccountsAPIError(DomainException):
    """Accounts service returned an error or is unavailable"""

    pass


class LimitRecomputeError(DomainException):
    """Used-limit recomputation failed after a successful mutation"""

    pass
