"""Webhook event correlation: inbound events to reindexes and head deltas."""

from .events import (
    Change,
    EventRepository,
    HookEventType,
    InstanceKind,
    PullRequestEvent,
    PushEvent,
    Reference,
)
from .exceptions import WebhookRejectedError
from .processors import (
    HeadDeltaEvent,
    HeadEventType,
    HookProcessor,
    PullRequestHookProcessor,
    PushHookProcessor,
    infer_event_type,
)
from .receiver import ParsedEvent, WebhookEnvelope, WebhookReceiver
from .registry import SourceNavigator, SourceRegistry

__all__ = [
    "Change",
    "EventRepository",
    "HeadDeltaEvent",
    "HeadEventType",
    "HookEventType",
    "HookProcessor",
    "InstanceKind",
    "ParsedEvent",
    "PullRequestEvent",
    "PullRequestHookProcessor",
    "PushEvent",
    "PushHookProcessor",
    "Reference",
    "SourceNavigator",
    "SourceRegistry",
    "WebhookEnvelope",
    "WebhookReceiver",
    "WebhookRejectedError",
    "infer_event_type",
]
