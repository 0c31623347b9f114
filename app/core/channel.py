"""Identity-change channel with independent subscriptions."""

import asyncio
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """
    One subscriber's view of a channel.

    Receives the channel's value at subscription time, then every value
    published afterwards, in order. Cancelling a subscription ends its
    iteration without touching other subscribers.
    """

    def __init__(self, channel: "StateChannel[T]", initial: T):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._queue.put_nowait(initial)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """True once the subscription has been cancelled or the channel closed."""
        return self._cancelled

    def _deliver(self, value: object) -> None:
        if not self._cancelled:
            self._queue.put_nowait(value)

    async def next(self) -> T:
        """
        Wait for the next value.

        Raises:
            StopAsyncIteration: If the subscription is cancelled or the channel closed
        """
        if self._cancelled:
            raise StopAsyncIteration
        value = await self._queue.get()
        if value is _CLOSED or self._cancelled:
            self._cancelled = True
            raise StopAsyncIteration
        return value  # type: ignore[return-value]

    def cancel(self) -> None:
        """Stop receiving values."""
        if self._cancelled:
            return
        self._channel._unsubscribe(self)
        self._queue.put_nowait(_CLOSED)
        self._cancelled = True

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        return await self.next()

    async def __aenter__(self) -> "Subscription[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.cancel()


class StateChannel(Generic[T]):
    """Holds a current value and fans every change out to subscribers."""

    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: list[Subscription[T]] = []
        self._closed = False

    @property
    def value(self) -> T:
        """Current value."""
        return self._value

    @property
    def subscriber_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._subscribers)

    def publish(self, value: T) -> None:
        """Set the current value and deliver it to every subscriber."""
        if self._closed:
            raise RuntimeError("Channel is closed")
        self._value = value
        for subscription in list(self._subscribers):
            subscription._deliver(value)

    def subscribe(self) -> Subscription[T]:
        """Open a subscription that starts with the current value."""
        subscription: Subscription[T] = Subscription(self, self._value)
        if self._closed:
            subscription._deliver(_CLOSED)
        else:
            self._subscribers.append(subscription)
        return subscription

    def close(self) -> None:
        """End every subscription."""
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscribers):
            subscription._deliver(_CLOSED)
        self._subscribers.clear()
        logger.debug("state_channel_closed")

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
