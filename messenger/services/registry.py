"""Handler registry owned by a Messenger client.

Handlers are registered during setup and read by the dispatcher while
serving. The registry is frozen when serving begins; after that every
registration or removal raises ``RegistryFrozenError``, so concurrent
webhook requests only ever read it.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

import logfire

from messenger.models.events import EventCategory

if TYPE_CHECKING:
    from messenger.services.dispatcher import DispatchContext
    from messenger.services.response import Response

# (ctx, payload, response) -> None, sync or async
Handler = Callable[["DispatchContext", Any, "Response"], Union[Awaitable[None], None]]


class RegistryFrozenError(RuntimeError):
    """Raised when the registry is modified after serving has begun."""

    pass


@dataclass(frozen=True)
class HandlerToken:
    """Receipt returned by ``register``, used to unregister the handler."""

    category: EventCategory
    id: int


class HandlerRegistry:
    """Ordered handler lists keyed by event category."""

    def __init__(self):
        self._handlers: dict[EventCategory, list[tuple[int, Handler]]] = {}
        self._ids = itertools.count(1)
        self._frozen = False
        self._lock = Lock()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, category: EventCategory, handler: Handler) -> HandlerToken:
        """Append ``handler`` to the handlers invoked for ``category``.

        Args:
            category: Category the handler receives events for
            handler: Callable taking ``(ctx, payload, response)``

        Returns:
            Token identifying this registration

        Raises:
            ValueError: ``category`` is UNKNOWN (never dispatched)
            RegistryFrozenError: Serving has already begun
        """
        if category is EventCategory.UNKNOWN:
            raise ValueError("handlers cannot be registered for unknown events")

        with self._lock:
            self._ensure_mutable()
            token = HandlerToken(category=category, id=next(self._ids))
            self._handlers.setdefault(category, []).append((token.id, handler))

        logfire.debug(
            "Handler registered",
            category=category.value,
            handler=getattr(handler, "__qualname__", repr(handler)),
        )
        return token

    def unregister(self, token: HandlerToken) -> bool:
        """Remove the registration identified by ``token``.

        Returns:
            True if a handler was removed, False if the token was unknown
        """
        with self._lock:
            self._ensure_mutable()
            handlers = self._handlers.get(token.category, [])
            for index, (handler_id, _) in enumerate(handlers):
                if handler_id == token.id:
                    del handlers[index]
                    return True
        return False

    def handlers_for(self, category: EventCategory) -> tuple[Handler, ...]:
        """Handlers for ``category`` in registration order."""
        return tuple(handler for _, handler in self._handlers.get(category, ()))

    def freeze(self) -> None:
        """Make the registry read-only. Idempotent."""
        with self._lock:
            if self._frozen:
                return
            self._frozen = True

        logfire.info(
            "Handler registry frozen",
            handler_counts={
                category.value: len(handlers)
                for category, handlers in self._handlers.items()
            },
        )

    def __len__(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                "handler registry is frozen once the webhook starts serving"
            )
