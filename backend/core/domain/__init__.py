# Domain Entities
# Pure business objects with no external dependencies
from .errors import (
    BillingError,
    ConfigurationError,
    ConflictError,
    InvalidSubscriptionError,
    LimitReachedError,
    NotFoundError,
    PersistenceError,
    PriceResolutionError,
    ProviderError,
    SignatureVerificationError,
    UserResolutionError,
)
from .features import FeatureDecision, PriceTierConfig, evaluate_limit, select_config
from .result import Err, Ok, Result
from .subscription import (
    BillingTimestamps,
    CanonicalSubscription,
    PriceDetails,
    SubscriptionStatus,
)

__all__ = [
    "BillingError",
    "ConfigurationError",
    "ConflictError",
    "InvalidSubscriptionError",
    "LimitReachedError",
    "NotFoundError",
    "PersistenceError",
    "PriceResolutionError",
    "ProviderError",
    "SignatureVerificationError",
    "UserResolutionError",
    "FeatureDecision",
    "PriceTierConfig",
    "evaluate_limit",
    "select_config",
    "Ok",
    "Err",
    "Result",
    "BillingTimestamps",
    "CanonicalSubscription",
    "PriceDetails",
    "SubscriptionStatus",
]
