"""
Error kinds raised by the marketplace core.
Handlers turn these into API Gateway responses via their status codes.
"""
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base class for every failure the core reports to its callers."""

    status_code = 500
    code = 'InternalError'
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'error': self.code,
            'message': self.message,
            'retryable': self.retryable,
        }
        if self.details:
            body['details'] = self.details
        return body


class InvalidInput(MarketplaceError):
    """Malformed or out-of-range fields."""
    status_code = 400
    code = 'InvalidInput'


class NotFound(MarketplaceError):
    """Referenced job, submission or account does not exist."""
    status_code = 404
    code = 'NotFound'


class Unauthorized(MarketplaceError):
    """Actor has the wrong role or is not the owning party."""
    status_code = 403
    code = 'Unauthorized'


class InvalidStateTransition(MarketplaceError):
    """Action attempted against an entity in an incompatible status."""
    status_code = 409
    code = 'InvalidStateTransition'


class InsufficientFunds(MarketplaceError):
    """Balance does not cover a required debit."""
    status_code = 402
    code = 'InsufficientFunds'


class AlreadyProcessed(MarketplaceError):
    """Idempotency guard: refund, payout or application already happened."""
    status_code = 409
    code = 'AlreadyProcessed'


class StorageUnavailable(MarketplaceError):
    """DynamoDB could not be reached or rejected the request. Safe to retry."""
    status_code = 503
    code = 'StorageUnavailable'
    retryable = True


class ConcurrentModification(StorageUnavailable):
    """Another writer changed the item first (optimistic lock lost)."""
    status_code = 409
    code = 'ConcurrentModification'
