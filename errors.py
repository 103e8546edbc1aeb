"""Domain exceptions shared by the stores, services and routes."""

from __future__ import annotations


class SmartBinError(Exception):
    """Base class for every error raised by the smart bin service."""


class ValidationError(SmartBinError, ValueError):
    """A request is missing fields or carries malformed values."""


class NotFoundError(SmartBinError, KeyError):
    """A bin or user with the requested identity does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead.
        return str(self.args[0]) if self.args else ""


class ConflictError(SmartBinError, ValueError):
    """A record with the same unique key already exists."""


class AuthError(SmartBinError):
    """Credentials were rejected or the account is deactivated."""


class TransientStoreError(SmartBinError):
    """The backing store could not persist or load records."""


class ChannelError(SmartBinError):
    """The realtime channel is closed or unreachable."""
