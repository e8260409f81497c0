"""
Signage Errors

Exception taxonomy for the sync engine.

Failed fetches are NOT exceptions (see FetchResult). Exceptions are
reserved for conditions that abort a unit of work: a roster, a day,
or process startup.
"""


class SignageError(Exception):
    """Base class for all signage errors."""


class SnapshotUnavailableError(SignageError):
    """No fresh download and no previously cached file to fall back on."""

    def __init__(self, destination, reason: str):
        super().__init__(f"{destination}: {reason}")
        self.destination = destination
        self.reason = reason


class MalformedDocumentError(SignageError):
    """A downloaded JSON document is unreadable or has the wrong shape."""


class ConfigError(SignageError):
    """Configuration is missing a mandatory value or holds an invalid one."""


class UnknownRoomError(SignageError):
    """A room id does not follow the configured naming convention."""
