"""Billing error taxonomy.

Every error carries a stable ``code`` so outcome reports and logs can be
filtered without parsing messages.
"""


class BillingError(Exception):
    """Base exception for billing and feature-gating errors."""

    code = "billing_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SignatureVerificationError(BillingError):
    """Raised when a webhook signature is missing, malformed or does not match."""

    code = "signature_verification_failed"


class ConfigurationError(BillingError):
    """Raised when required configuration (secrets, catalog rows) is missing."""

    code = "configuration_error"


class UserResolutionError(BillingError):
    """No internal user could be resolved for a Stripe customer reference."""

    code = "user_unresolved"


class PriceResolutionError(BillingError):
    """A Stripe price id is unknown to the internal catalog."""

    code = "price_unresolved"


class InvalidSubscriptionError(BillingError):
    """The subscription object is structurally unfit for persistence."""

    code = "invalid_subscription"


class PersistenceError(BillingError):
    """The store rejected a write."""

    code = "persistence_failed"


class ProviderError(BillingError):
    """A call to the billing provider failed."""

    code = "provider_error"

    def __init__(self, message: str, not_found: bool = False, transient: bool = False):
        super().__init__(message)
        self.not_found = not_found
        self.transient = transient


class NotFoundError(BillingError):
    """A referenced project or record does not exist."""

    code = "not_found"


class ConflictError(BillingError):
    """The write would duplicate an existing record."""

    code = "conflict"


class LimitReachedError(BillingError):
    """A plan limit blocks the action."""

    code = "limit_reached"
