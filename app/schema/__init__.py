"""Schema package exports."""

from .push_subscriptions import PushSubscriptionRow

__all__ = ["PushSubscriptionRow"]
