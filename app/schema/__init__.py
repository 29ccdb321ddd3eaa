"""Schema package exports."""

from .push_subscriptions import PushSubscriptionRecord
from .sql import Role, User, UserStatus

__all__ = ["PushSubscriptionRecord", "Role", "User", "UserStatus"]
