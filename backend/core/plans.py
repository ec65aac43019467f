"""
Feature gating configuration shared by the service and API layers.

Limits themselves live in the admin-managed ``feature_flags`` table; this
module only names the features and the subscription statuses that matter
when resolving them. It lives in core/ so both layers can import it
without creating circular dependencies.
"""

# Feature flag names (rows in the feature_flags table)
PROJECT_LIMIT = "project_limit"
REMOVE_BRANDING_ON_PAGE = "remove_branding_on_page"
EMAIL_COLLECTION_LIMIT = "email_collection_limit"

FEATURE_FLAGS = (PROJECT_LIMIT, REMOVE_BRANDING_ON_PAGE, EMAIL_COLLECTION_LIMIT)

# Limit value that never runs out
UNLIMITED = "unlimited"

# Statuses that grant paid-tier access
ACCESS_STATUSES = frozenset({"active", "trialing"})

# Statuses that must carry a current billing period when persisted
PERIOD_BEARING_STATUSES = frozenset({"active", "trialing", "past_due"})

# Remaining-quota threshold under which the email collection warning is shown
EMAIL_LIMIT_WARNING_THRESHOLD = 5
