"""
Exceptions raised by the sync engine.
"""

from typing import List, Optional


class HubSyncError(Exception):
    """Base class for sync engine errors."""
    pass


class DomainNotFoundError(HubSyncError):
    """Raised when no tenant record exists to sync."""
    pass


class AccountNotFoundError(HubSyncError):
    """Raised when a HubSpot account id is not connected to the domain."""

    def __init__(self, hub_id: str):
        super().__init__(f"HubSpot account {hub_id} not found on domain")
        self.hub_id = hub_id


class RetryExhaustedError(HubSyncError):
    """Raised when a remote call keeps failing after every retry."""

    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException] = None):
        message = f"{operation} failed after {attempts} attempts"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class CredentialRefreshError(HubSyncError):
    """Raised when the OAuth token endpoint returns an unusable response."""
    pass


class FlushError(HubSyncError):
    """Raised by a drain when one or more action batches failed to insert."""

    def __init__(self, failed_batches: List[BaseException]):
        super().__init__(f"{len(failed_batches)} action batch(es) failed to insert")
        self.failed_batches = failed_batches
