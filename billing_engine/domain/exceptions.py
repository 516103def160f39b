"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Required field missing or malformed"""

    pass


class RecordNotFoundError(DomainException):
    """Referenced financial record does not exist"""

    pass


class ImmutableRecordError(DomainException):
    """Attempted mutation of a settled financial record"""

    pass


class StoreUnavailableError(DomainException):
    """Persistence layer returned an error or is unreachable"""

    pass
