"""Exceptions raised by the loyalty engine."""

from __future__ import annotations


class LoyaltyError(RuntimeError):
    """Base class for loyalty ledger errors."""


class NonPositiveAward(LoyaltyError, ValueError):
    """Raised when a transaction would carry zero or negative points."""


class DuplicateRolloverAttempt(LoyaltyError):
    """Raised when a rollover would archive a year twice or move backwards."""


class MalformedPersistedState(LoyaltyError):
    """Raised when a persisted ledger document cannot be interpreted."""


class PersistenceError(LoyaltyError):
    """Raised when the ledger document cannot be read or written."""


class StaleRolloverResult(LoyaltyError):
    """Raised when a rollover result no longer matches the live ledger."""
