class StoreError(Exception):
    """Base class for every failure raised by the storefront client."""


class ActorUnavailableError(StoreError):
    """The transport handle for the current identity is not ready yet."""

    def __init__(self, message: str = "Actor not available") -> None:
        super().__init__(message)


class BackendError(StoreError):
    """A remote call was rejected or failed on the backend."""


class AlreadyAuthenticatedError(StoreError):
    """Login was attempted while an identity is still active."""

    def __init__(self, message: str = "User is already authenticated") -> None:
        super().__init__(message)


class ValidationError(StoreError):
    """Client side input check failed; nothing was sent to the backend."""
