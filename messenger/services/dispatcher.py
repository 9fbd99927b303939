"""Fan-out of decoded webhook events to registered handlers.

Entries, events and handlers are processed strictly in order and one at a
time: a handler that never returns stalls the rest of the delivery. No
timeout is imposed here; handlers that do long work should poll
``DispatchContext.is_cancelled`` and stop on their own.
"""

import inspect
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

import logfire

from messenger.models.events import ClassifiedEvent, Envelope, OptIn
from messenger.models.send_models import Recipient
from messenger.services.classifier import to_classified
from messenger.services.graph_api import GraphAPIClient
from messenger.services.registry import HandlerRegistry
from messenger.services.response import Response


@dataclass
class DispatchContext:
    """Request-scoped execution context handed to every handler.

    Attributes:
        correlation_id: Id of the originating webhook request
        deadline: ``time.monotonic()`` value after which the request is
            considered cancelled, or None for no deadline
        disconnected: Coroutine function reporting whether the platform
            hung up on the originating request
    """

    correlation_id: str | None = None
    deadline: float | None = None
    disconnected: Callable[[], Awaitable[bool]] | None = None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    async def is_cancelled(self) -> bool:
        """Whether the deadline passed or the client disconnected."""
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return True
        if self.disconnected is not None:
            return await self.disconnected()
        return False


def _reply_recipient(classified: ClassifiedEvent) -> Recipient:
    """Address replies to the sender, or to the opt-in user_ref when there is none."""
    if classified.sender is not None:
        return Recipient(id=classified.sender.id)
    if isinstance(classified.payload, OptIn) and classified.payload.user_ref:
        return Recipient(user_ref=classified.payload.user_ref)
    return Recipient()


@dataclass
class DispatchSummary:
    """Counters for one dispatch pass."""

    dispatched: int = 0
    skipped: int = 0
    handler_calls: int = 0


class Dispatcher:
    """Classify every messaging event and invoke its handlers in order."""

    def __init__(self, registry: HandlerRegistry, graph: GraphAPIClient):
        self._registry = registry
        self._graph = graph

    async def dispatch(self, ctx: DispatchContext, envelope: Envelope) -> DispatchSummary:
        """Run every handler registered for each event of ``envelope``.

        Unknown events are logged and skipped. Handler exceptions propagate
        to the caller and abort the remainder of the delivery.
        """
        # Serving has begun; no more registrations from here on
        self._registry.freeze()

        summary = DispatchSummary()
        for entry in envelope.entries:
            for event in entry.messaging:
                classified = to_classified(event)
                if classified is None:
                    logfire.warn(
                        "Unknown messaging event",
                        correlation_id=ctx.correlation_id,
                        entry_id=entry.id,
                        event=event.model_dump(mode="json", exclude_none=True),
                    )
                    summary.skipped += 1
                    continue

                response = Response(_reply_recipient(classified), self._graph)
                for handler in self._registry.handlers_for(classified.category):
                    result = handler(ctx, classified.payload, response)
                    if inspect.isawaitable(result):
                        await result
                    summary.handler_calls += 1
                summary.dispatched += 1

        logfire.info(
            "Webhook delivery dispatched",
            correlation_id=ctx.correlation_id,
            dispatched=summary.dispatched,
            skipped=summary.skipped,
            handler_calls=summary.handler_calls,
        )
        return summary
