"""Tests for the dispatcher and dispatch context."""

import asyncio
import time

import pytest

from messenger.models.events import Envelope, EventCategory, Message, Read
from messenger.models.send_models import Recipient
from messenger.services.dispatcher import DispatchContext, Dispatcher
from messenger.services.registry import HandlerRegistry, RegistryFrozenError
from messenger.services.response import Response


def _envelope(*events_per_entry) -> Envelope:
    return Envelope.model_validate(
        {
            "object": "page",
            "entry": [{"messaging": list(events)} for events in events_per_entry],
        }
    )


def _event(sender=1, **fields) -> dict:
    return {"sender": {"id": sender}, "recipient": {"id": 2}, "timestamp": 1000000, **fields}


@pytest.fixture
def registry() -> HandlerRegistry:
    return HandlerRegistry()


@pytest.fixture
def dispatcher(registry, mock_graph) -> Dispatcher:
    return Dispatcher(registry, mock_graph)


class TestDispatch:
    """Test Dispatcher.dispatch()."""

    @pytest.mark.asyncio
    async def test_text_event_reaches_handler(
        self, registry, dispatcher, recorder, dispatch_context, text_payload
    ):
        registry.register(EventCategory.TEXT, recorder.handler("h1"))

        summary = await dispatcher.dispatch(
            dispatch_context, Envelope.model_validate(text_payload)
        )

        assert recorder.names == ["h1"]
        _, ctx, message, response = recorder.calls[0]
        assert ctx is dispatch_context
        assert isinstance(message, Message)
        assert message.text == "hi"
        assert message.sender.id == 1
        assert message.recipient.id == 2
        assert message.time.timestamp() == 1
        assert isinstance(response, Response)
        assert response.to.id == 1
        assert summary.dispatched == 1
        assert summary.handler_calls == 1

    @pytest.mark.asyncio
    async def test_handlers_run_in_registration_order(
        self, registry, dispatcher, recorder, dispatch_context
    ):
        registry.register(EventCategory.TEXT, recorder.handler("h1"))
        registry.register(EventCategory.TEXT, recorder.handler("h2"))
        registry.register(EventCategory.TEXT, recorder.handler("h3"))

        await dispatcher.dispatch(
            dispatch_context, _envelope([_event(message={"text": "hi"})])
        )

        assert recorder.names == ["h1", "h2", "h3"]

    @pytest.mark.asyncio
    async def test_events_and_entries_in_order(
        self, registry, dispatcher, recorder, dispatch_context
    ):
        registry.register(EventCategory.TEXT, recorder.handler("text"))
        registry.register(EventCategory.READ, recorder.handler("read"))

        await dispatcher.dispatch(
            dispatch_context,
            _envelope(
                [_event(message={"text": "a"}), _event(read={"watermark": 1})],
                [_event(message={"text": "b"})],
            ),
        )

        assert recorder.names == ["text", "read", "text"]
        assert [call[2].text for call in recorder.calls if call[0] == "text"] == ["a", "b"]
        assert isinstance(recorder.calls[1][2], Read)

    @pytest.mark.asyncio
    async def test_unknown_event_skipped_batch_continues(
        self, registry, dispatcher, recorder, dispatch_context
    ):
        registry.register(EventCategory.TEXT, recorder.handler("text"))

        summary = await dispatcher.dispatch(
            dispatch_context,
            _envelope([_event(), _event(message={"text": "after"})]),
        )

        assert recorder.names == ["text"]
        assert summary.skipped == 1
        assert summary.dispatched == 1

    @pytest.mark.asyncio
    async def test_unknown_only_invokes_nothing(
        self, registry, dispatcher, recorder, dispatch_context
    ):
        for category in EventCategory:
            if category is not EventCategory.UNKNOWN:
                registry.register(category, recorder.handler(category.value))

        summary = await dispatcher.dispatch(dispatch_context, _envelope([_event()]))

        assert recorder.calls == []
        assert summary.handler_calls == 0

    @pytest.mark.asyncio
    async def test_no_handlers_is_fine(self, dispatcher, dispatch_context):
        summary = await dispatcher.dispatch(
            dispatch_context, _envelope([_event(message={"text": "hi"})])
        )
        assert summary.dispatched == 1
        assert summary.handler_calls == 0

    @pytest.mark.asyncio
    async def test_sync_handlers_supported(self, registry, dispatcher, dispatch_context):
        seen = []
        registry.register(
            EventCategory.TEXT, lambda ctx, message, response: seen.append(message.text)
        )

        await dispatcher.dispatch(
            dispatch_context, _envelope([_event(message={"text": "sync"})])
        )

        assert seen == ["sync"]

    @pytest.mark.asyncio
    async def test_fresh_response_per_event(
        self, registry, dispatcher, recorder, dispatch_context
    ):
        registry.register(EventCategory.TEXT, recorder.handler("h1"))
        registry.register(EventCategory.TEXT, recorder.handler("h2"))

        await dispatcher.dispatch(
            dispatch_context,
            _envelope(
                [_event(sender=10, message={"text": "a"}), _event(sender=20, message={"text": "b"})]
            ),
        )

        responses = [call[3] for call in recorder.calls]
        # Handlers of one event share its response; events never do
        assert responses[0] is responses[1]
        assert responses[2] is responses[3]
        assert responses[0] is not responses[2]
        assert [r.to.id for r in responses] == [10, 10, 20, 20]

    @pytest.mark.asyncio
    async def test_senderless_optin_replies_to_user_ref(
        self, registry, dispatcher, recorder, dispatch_context
    ):
        registry.register(EventCategory.OPTIN, recorder.handler("optin"))
        registry.register(EventCategory.ACCOUNT_LINKING, recorder.handler("linking"))

        summary = await dispatcher.dispatch(
            dispatch_context,
            _envelope(
                [
                    {"recipient": {"id": 2}, "optin": {"ref": "x", "user_ref": "u-1"}},
                    {"recipient": {"id": 2}, "account_linking": {}},
                ]
            ),
        )

        assert recorder.names == ["optin", "linking"]
        assert recorder.calls[0][3].to == Recipient(user_ref="u-1")
        assert recorder.calls[1][3].to == Recipient()
        assert summary.dispatched == 2

    @pytest.mark.asyncio
    async def test_handler_exception_propagates(
        self, registry, dispatcher, recorder, dispatch_context
    ):
        async def boom(ctx, message, response):
            raise RuntimeError("handler failed")

        registry.register(EventCategory.TEXT, boom)
        registry.register(EventCategory.TEXT, recorder.handler("after"))

        with pytest.raises(RuntimeError, match="handler failed"):
            await dispatcher.dispatch(
                dispatch_context, _envelope([_event(message={"text": "hi"})])
            )
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_dispatch_freezes_registry(self, registry, dispatcher, dispatch_context):
        await dispatcher.dispatch(dispatch_context, _envelope([]))

        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register(EventCategory.TEXT, lambda *args: None)


class TestDispatchContext:
    """Test cooperative cancellation signals."""

    @pytest.mark.asyncio
    async def test_no_deadline_not_cancelled(self):
        ctx = DispatchContext()
        assert ctx.remaining() is None
        assert await ctx.is_cancelled() is False

    @pytest.mark.asyncio
    async def test_expired_deadline(self):
        ctx = DispatchContext(deadline=time.monotonic() - 1)
        assert ctx.remaining() == 0.0
        assert await ctx.is_cancelled() is True

    @pytest.mark.asyncio
    async def test_future_deadline(self):
        ctx = DispatchContext(deadline=time.monotonic() + 60)
        assert 0 < ctx.remaining() <= 60
        assert await ctx.is_cancelled() is False

    @pytest.mark.asyncio
    async def test_disconnect_reported(self):
        async def disconnected():
            return True

        ctx = DispatchContext(disconnected=disconnected)
        assert await ctx.is_cancelled() is True

    @pytest.mark.asyncio
    async def test_handler_observes_cancellation(self, registry, dispatcher):
        observed = []

        async def long_running(ctx, message, response):
            for _ in range(3):
                if await ctx.is_cancelled():
                    observed.append("stopped")
                    return
                await asyncio.sleep(0)
            observed.append("finished")

        registry.register(EventCategory.TEXT, long_running)
        ctx = DispatchContext(deadline=time.monotonic() - 1)

        await dispatcher.dispatch(ctx, _envelope([_event(message={"text": "hi"})]))

        assert observed == ["stopped"]
