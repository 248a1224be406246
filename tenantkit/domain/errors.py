class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class CacheUnavailable(DomainError):
    """The cache store is unreachable or answered with an error."""

    pass


class NonNumericValue(DomainError):
    """Counter operation on a cached value that is not an integer."""

    pass


class PersistenceFailure(DomainError):
    """The OTP record store could not complete a create, query or delete."""

    pass


class DeliveryFailure(DomainError):
    """A notification channel could not deliver a message."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
