"""Hazard event messaging: wire codec, durable topic, publisher and consumer."""

from .codec import SCHEMA_VERSION, decode_event, encode_event
from .consumer import EventConsumer, validate_event
from .exceptions import AggregatePublishError, EventValidationError, MessagingError, PublishError
from .publisher import EventPublisher, PublishReport
from .topic import SqlTopic, TopicDrainResult

__all__ = [
    "SCHEMA_VERSION",
    "encode_event",
    "decode_event",
    "SqlTopic",
    "TopicDrainResult",
    "EventPublisher",
    "PublishReport",
    "EventConsumer",
    "validate_event",
    "MessagingError",
    "EventValidationError",
    "PublishError",
    "AggregatePublishError",
]
