"""Inbound webhook receiver.

The receiver validates the envelope synchronously, so a malformed or unknown
event is reported to the caller as a client error before any work starts.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .events import HookEventType, InstanceKind, PullRequestEvent, PushEvent
from .exceptions import WebhookRejectedError
from .processors import HookProcessor, PullRequestHookProcessor, PushHookProcessor
from .registry import SourceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookEnvelope:
    """Raw inbound event."""

    event_type: str | None
    body: bytes | str
    instance_kind: str | None = None


@dataclass(frozen=True)
class ParsedEvent:
    """Envelope that passed validation."""

    event_type: HookEventType
    processor: HookProcessor
    event: PushEvent | PullRequestEvent


class WebhookReceiver:
    """Classifies inbound events and hands them to a processor."""

    def __init__(
        self,
        registry: SourceRegistry,
        processors: dict[HookEventType, HookProcessor] | None = None,
    ):
        self.registry = registry
        if processors is None:
            push = PushHookProcessor()
            pull_request = PullRequestHookProcessor()
            processors = {
                event_type: push if event_type.is_push else pull_request
                for event_type in HookEventType
            }
        self.processors = processors

    def parse(self, envelope: WebhookEnvelope) -> ParsedEvent:
        """Validate an envelope.

        Raises:
            WebhookRejectedError: If the event type is missing or unknown, the
                instance kind is unknown or the body is malformed
        """
        if not envelope.event_type:
            raise WebhookRejectedError("Missing event type")
        event_type = HookEventType.from_key(envelope.event_type)
        if event_type is None or event_type not in self.processors:
            raise WebhookRejectedError(
                f"Unsupported event type '{envelope.event_type}'",
                details={"event_type": envelope.event_type},
            )
        kind = InstanceKind.from_header(envelope.instance_kind)
        if kind is None:
            raise WebhookRejectedError(
                f"Unknown instance kind '{envelope.instance_kind}'"
            )

        body = envelope.body
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise WebhookRejectedError("Payload is not valid UTF-8") from e

        processor = self.processors[event_type]
        event = processor.parse(event_type, body, kind)
        logger.info(
            f"Received {event_type.value} event from {kind.value} "
            f"for {event.repository.full_name}"
        )
        return ParsedEvent(event_type=event_type, processor=processor, event=event)

    async def receive(self, envelope: WebhookEnvelope) -> HookEventType:
        """Validate an envelope and process it to completion."""
        parsed = self.parse(envelope)
        await parsed.processor.apply(parsed.event, self.registry)
        return parsed.event_type

    def submit(self, envelope: WebhookEnvelope) -> "asyncio.Task[Any]":
        """Validate an envelope and process it in the background.

        Returns:
            Task processing the event
        """
        parsed = self.parse(envelope)
        return self.registry.dispatch(
            parsed.processor.apply(parsed.event, self.registry)
        )
