"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .billing import Plan, Price, Subscription
from .feature_flag import FeatureFlag
from .profile import Profile
from .project import DeviceType, Lead, Project

__all__ = [
    "Base",
    "TimestampMixin",
    "Profile",
    "Plan",
    "Price",
    "Subscription",
    "FeatureFlag",
    "Project",
    "Lead",
    "DeviceType",
]
