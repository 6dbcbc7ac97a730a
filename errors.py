"""
errors.py
Exception types shared by the store, repositories and auth.
"""

from __future__ import annotations


class CotisationsError(Exception):
    """Base class for every error shown to the user."""


class ValidationError(CotisationsError):
    """Raised before any write when user input is rejected."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class RepositoryError(CotisationsError):
    """A list/create/update/delete call failed. The message is the driver's."""


class AuthError(CotisationsError):
    pass


class BackupError(CotisationsError):
    """A backup file could not be read."""
