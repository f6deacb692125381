from __future__ import annotations


class LedgerError(RuntimeError):
    """Base exception for ledger collaborator failures."""


class LedgerWriteFailed(LedgerError):
    """A provisioning, initialization or snapshot transaction was rejected or failed."""


class LedgerConfirmationTimeout(LedgerWriteFailed):
    """A submitted transaction was not confirmed within the allowed time."""
