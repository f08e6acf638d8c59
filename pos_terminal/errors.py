"""
pos_terminal/errors.py
----------------------
Exception hierarchy for the POS terminal.

Every error a cashier can trigger derives from PosError and carries the
user-facing message plus the HTTP status the JSON layer answers with.
The app-level handler in create_app() turns them into {"error": message}.
"""


class PosError(Exception):
    """Base class for every error surfaced to the cashier."""
    status_code = 400
    default_message = 'Request could not be processed.'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'error': self.message, 'kind': type(self).__name__}


# ── Cart / stock ──────────────────────────────────────────────────

class OutOfStockError(PosError):
    default_message = 'Product is out of stock.'


class StockLimitError(PosError):
    default_message = 'Requested quantity exceeds available stock.'

    def __init__(self, available: int, message: str = None):
        self.available = available
        super().__init__(message or f'Only {available} item(s) available in stock.')


class LineNotFoundError(PosError):
    status_code = 404
    default_message = 'Product is not in the cart.'


class ProductNotFoundError(PosError):
    status_code = 404
    default_message = 'Product is not available at this store.'


# ── Discounts / loyalty ───────────────────────────────────────────

class DiscountNotEligibleError(PosError):
    default_message = 'Discount is not available for this customer.'


class RedemptionUnavailableError(PosError):
    default_message = 'Loyalty points cannot be redeemed for this transaction.'


# ── Checkout validation (checked before any network call) ─────────

class NoStoreSelectedError(PosError):
    default_message = 'Please select a store first.'


class EmptyCartError(PosError):
    default_message = 'Cart is empty.'


class InsufficientTenderError(PosError):
    default_message = 'Paid amount is less than total.'


class StoreLockedError(PosError):
    status_code = 403
    default_message = 'You are assigned to a store and cannot switch.'


class NoStoreAssignedError(PosError):
    status_code = 403
    default_message = 'You are not assigned to any store. Please contact an administrator.'


# ── Backend ───────────────────────────────────────────────────────

class BackendError(PosError):
    """Non-2xx response or transport failure talking to the retail backend."""
    status_code = 502
    default_message = 'Backend request failed.'

    def __init__(self, message: str = None, status_code: int = None, detail: str = None):
        super().__init__(message or detail)
        self.backend_status = status_code
        # the backend's own "error" text, when it sent one
        self.detail = detail
        # 4xx from the backend is the cashier's problem, pass it through
        if status_code is not None and 400 <= status_code < 500:
            self.status_code = status_code


class BackendAuthError(BackendError):
    status_code = 401
    default_message = 'Session expired. Please log in again.'

    def __init__(self, message: str = None, status_code: int = 401, detail: str = None):
        super().__init__(message, status_code, detail)


class SubmissionError(PosError):
    """Sale creation rejected by the backend. Nothing local was mutated."""
    status_code = 400
    default_message = 'Failed to process payment.'

    def __init__(self, message: str = None, status_code: int = None):
        super().__init__(message)
        if status_code is not None and 400 <= status_code < 500:
            self.status_code = status_code
        elif status_code is not None:
            self.status_code = 502
