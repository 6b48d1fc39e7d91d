"""Queue sinks that mentions are published to.

The crawl only depends on ``publish_mention``; which queue technology sits
behind it is picked from the broker URI at startup.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Protocol
from urllib.parse import urlparse

import redis

from .mention import Mention

logger = logging.getLogger(__name__)

REDIS_SCHEMES = {"redis", "rediss", "unix"}
MEMORY_SCHEME = "memory"


class PublishError(RuntimeError):
    """A mention could not be serialized or the sink rejected it."""


class BrokerError(RuntimeError):
    """The broker named by the configuration cannot be used."""


class MentionSink(Protocol):
    queue_name: str

    def publish(self, mention: Mention) -> None:
        ...

    def close(self) -> None:
        ...


PersistMentionFn = Callable[[Mention], None]


class RedisQueueSink:
    """Push serialized mentions onto a Redis list named after the queue."""

    def __init__(self, client: redis.Redis, queue_name: str) -> None:
        self.client = client
        self.queue_name = queue_name

    def publish(self, mention: Mention) -> None:
        try:
            message = mention.to_message()
        except (TypeError, ValueError) as exc:
            raise PublishError(f"cannot serialize mention: {exc}") from exc
        try:
            self.client.rpush(self.queue_name, message)
        except redis.RedisError as exc:
            raise PublishError(f"queue {self.queue_name} rejected mention: {exc}") from exc

    def close(self) -> None:
        self.client.close()


class MemoryQueueSink:
    """Keep serialized mentions in memory; used for dry runs and tests."""

    def __init__(self, queue_name: str) -> None:
        self.queue_name = queue_name
        self.messages: List[bytes] = []

    def publish(self, mention: Mention) -> None:
        try:
            self.messages.append(mention.to_message())
        except (TypeError, ValueError) as exc:
            raise PublishError(f"cannot serialize mention: {exc}") from exc

    def mentions(self) -> List[Mention]:
        return [Mention.from_message(message) for message in self.messages]

    def close(self) -> None:
        return None


def open_sink(broker_uri: str, queue_name: str) -> MentionSink:
    """Connect to the broker and return a sink for `queue_name`.

    Raises BrokerError when the scheme is unsupported or the broker is unreachable.
    """
    scheme = urlparse(broker_uri).scheme.lower()
    if scheme == MEMORY_SCHEME:
        return MemoryQueueSink(queue_name)
    if scheme not in REDIS_SCHEMES:
        raise BrokerError(f"unsupported broker URI scheme {scheme!r} in {broker_uri}")

    try:
        client = redis.Redis.from_url(broker_uri)
        client.ping()
    except (redis.RedisError, ValueError) as exc:
        raise BrokerError(f"cannot connect to broker {broker_uri}: {exc}") from exc

    logger.info("[broker] connected to %s, queue=%s", broker_uri, queue_name)
    return RedisQueueSink(client, queue_name)


def publish_mention(sink: MentionSink, mention: Mention) -> None:
    """Hand `mention` to the sink once; failures surface as PublishError."""
    try:
        sink.publish(mention)
    except PublishError:
        raise
    except Exception as exc:
        raise PublishError(f"publishing to {getattr(sink, 'queue_name', '?')} failed: {exc}") from exc


def enqueue_mention(sink: MentionSink) -> PersistMentionFn:
    """Bind a sink into the single-argument publish function the crawl uses."""

    def persist(mention: Mention) -> None:
        publish_mention(sink, mention)

    return persist


__all__ = [
    "PublishError",
    "BrokerError",
    "MentionSink",
    "PersistMentionFn",
    "RedisQueueSink",
    "MemoryQueueSink",
    "open_sink",
    "publish_mention",
    "enqueue_mention",
]
