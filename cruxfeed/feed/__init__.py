"""Feed composition and request superseding."""

from cruxfeed.feed.composer import FeedComposer
from cruxfeed.feed.request_gate import RequestGate, RequestSupersededError

__all__ = ["FeedComposer", "RequestGate", "RequestSupersededError"]
