"""Exception types raised by the finance tracker."""

from __future__ import annotations


class FinanceError(Exception):
    """Base class for all finance tracker errors."""


class SnapshotError(FinanceError, ValueError):
    """A record in the loaded data is missing a required field or is malformed."""


class StorageError(FinanceError, OSError):
    """A JSON document could not be read or written."""


class NotFoundError(FinanceError, KeyError):
    """An update or delete referenced an id that does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ''
