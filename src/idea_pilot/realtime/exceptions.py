from __future__ import annotations


class RealtimeError(Exception):
    """Base error of the realtime transport."""


class SubscriptionError(RealtimeError):
    """The channel handshake was rejected or the channel broke."""


class SubscriptionTimeout(SubscriptionError):
    """The channel handshake did not complete in time."""


class ChannelClosedError(RealtimeError):
    pass
