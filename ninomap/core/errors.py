"""Project error hierarchy."""


class NinomapError(Exception):
    """Base error."""


class DuplicateKeyError(NinomapError):
    """Raised by a store when a unique column already holds the value."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"duplicate {field}: {value}")
        self.field = field
        self.value = value


class StoreUnavailableError(NinomapError):
    """Raised when the durable store cannot be reached or fails mid-call."""


class StoreTimeoutError(StoreUnavailableError):
    """Store call exceeded its timeout; the write may or may not have landed."""


class CacheUnavailableError(NinomapError):
    """Raised by cache backends on transport failures."""
