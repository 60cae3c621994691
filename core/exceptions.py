"""
Marketplace Exceptions
Error taxonomy shared by the wallet, order and payout services
"""


class MarketplaceError(Exception):
    """Base class for all service-level errors"""

    default_message = 'Marketplace operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ==========================================
# VALIDATION ERRORS (rejected before any write)
# ==========================================

class ValidationFailed(MarketplaceError):
    default_message = 'Invalid request'


class InvalidAmount(ValidationFailed):
    default_message = 'Amount must be greater than zero'


class InvalidTransition(ValidationFailed):
    default_message = 'Invalid status transition'


class InvalidPayoutMethod(ValidationFailed):
    default_message = 'Invalid payout method'


class InvalidOrderData(ValidationFailed):
    default_message = 'Invalid order data'


# ==========================================
# NOT-FOUND ERRORS
# ==========================================

class NotFound(MarketplaceError):
    default_message = 'Resource not found'


class UserNotFound(NotFound):
    default_message = 'User not found'


class OrderNotFound(NotFound):
    default_message = 'Order not found'


class WalletNotFound(NotFound):
    default_message = 'Wallet not found'


class PayoutRequestNotFound(NotFound):
    default_message = 'Payout request not found'


class OrderCreationError(MarketplaceError):
    default_message = 'Failed to create order'


class ProductNotFound(OrderCreationError, NotFound):
    default_message = 'One or more products not found'


class VariationNotFound(OrderCreationError, NotFound):
    default_message = 'Product variation not found'


# ==========================================
# BUSINESS-RULE VIOLATIONS
# ==========================================

class BusinessRuleViolation(MarketplaceError):
    default_message = 'Operation not allowed'


class InsufficientBalance(BusinessRuleViolation):
    default_message = 'Insufficient wallet balance'


class PendingRequestExists(BusinessRuleViolation):
    default_message = 'You already have a pending payout request. Please wait for it to be processed.'


class NotCancellable(BusinessRuleViolation):
    default_message = 'Order cannot be cancelled'


class NotProcessable(BusinessRuleViolation):
    default_message = 'Payout request cannot be processed'


class PaymentAlreadyCompleted(BusinessRuleViolation):
    default_message = 'Order is already paid'
