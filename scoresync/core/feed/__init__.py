"""Change feed: push subscriptions for score, history and rate changes."""

from .change_feed import Backoff, ChangeFeed, Subscription

__all__ = ["Backoff", "ChangeFeed", "Subscription"]
