from .sse import ServerSentEvent, SSEDecoder
from .subscription import Subscription, SubscriptionController

__all__ = [
    "SSEDecoder",
    "ServerSentEvent",
    "Subscription",
    "SubscriptionController",
]
