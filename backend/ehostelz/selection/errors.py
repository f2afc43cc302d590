"""Error taxonomy for option fetching and cascading selection."""

from __future__ import annotations


class SelectionError(Exception):
    """Base class for every error raised by the selection subsystem."""


class FetchError(SelectionError):
    """A remote option list could not be produced."""

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        level_key: str | None = None,
        parent_key: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.level_key = level_key
        self.parent_key = parent_key

    def for_level(self, level_key: str, parent_key: str | None) -> "FetchError":
        """Attach the level/parent pair the failing request was made for."""
        self.level_key = level_key
        self.parent_key = parent_key
        return self


class TransientFetchError(FetchError):
    """Timeouts, connection failures and 5xx responses; worth retrying."""

    retryable = True


class RemoteDataError(FetchError):
    """The remote answered but the body could not be decoded into options."""


class RemoteClientError(FetchError):
    """The remote rejected the request with a 4xx status."""

    def __init__(self, message: str, *, status_code: int, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class InvalidSelection(SelectionError):
    """An option id was selected that is not in the level's current options."""

    def __init__(self, level_key: str, option_id: str):
        super().__init__(f"Option {option_id!r} is not available for level {level_key!r}")
        self.level_key = level_key
        self.option_id = option_id


class UnknownLevel(SelectionError, KeyError):
    """The level key is not part of the chain or cell configuration."""

    def __init__(self, level_key: str):
        super().__init__(level_key)
        self.level_key = level_key

    def __str__(self) -> str:
        return f"Unknown level {self.level_key!r}"
