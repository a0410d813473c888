"""Exceptions raised by the session core and its collaborators."""


class IdxWatchError(Exception):
    """Base exception for idxwatch."""

    pass


class FetchError(IdxWatchError):
    """Network fetch failed (timeout, bad status, malformed payload)."""

    pass


class AuthError(FetchError):
    """Quote endpoint rejected the credential even after re-authentication."""

    pass


class PersistenceError(IdxWatchError):
    """Configuration could not be read or written."""

    pass


class LotOverflowError(IdxWatchError):
    """Merged lot count would not fit in an unsigned 32-bit integer."""

    pass


class LastItemError(IdxWatchError):
    """Refused to delete the only remaining watchlist or portfolio."""

    pass


class StartupError(IdxWatchError):
    """The session cannot start (no usable configuration directory)."""

    pass
