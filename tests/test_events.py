"""Tests for event fan-out and console alerts."""

import asyncio
from io import StringIO

from rich.console import Console

from focus_flow.focus.alerts import ConsoleAlerts
from focus_flow.focus.events import EventChannel, Notification, Signal


class TestEventChannel:
    """Subscriber isolation."""

    def test_failing_subscriber_does_not_block_others(self):
        channel = EventChannel("test")
        received = []

        def broken(event):
            raise RuntimeError("boom")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        channel.publish(1)
        channel.publish(2)

        assert received == [1, 2]

    def test_unsubscribe(self):
        channel = EventChannel()
        received = []
        unsubscribe = channel.subscribe(received.append)

        channel.publish("a")
        unsubscribe()
        unsubscribe()
        channel.publish("b")

        assert received == ["a"]
        assert len(channel) == 0

    async def test_coroutine_subscribers_are_scheduled(self):
        channel = EventChannel()
        received = []

        async def handler(event):
            received.append(event)

        channel.subscribe(handler)
        channel.publish("tick")
        await asyncio.sleep(0)

        assert received == ["tick"]

    async def test_failing_coroutine_subscriber_is_logged(self, caplog):
        channel = EventChannel("alerts")

        async def broken(event):
            raise RuntimeError("boom")

        channel.subscribe(broken)
        channel.publish("tick")
        assert len(channel._pending) == 1

        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert channel._pending == set()
        assert "Error in alerts subscriber: boom" in caplog.text


class TestNotification:
    def test_messages(self):
        brk = Notification(Signal.BREAK_STARTED, "t1", "Deep work")
        assert brk.title == "Break Time!"
        assert brk.message == 'Take a break from "Deep work"'

        goal = Notification(Signal.GOAL_REACHED, "t1", "Read")
        assert goal.title == "Goal reached!"
        assert "Read" in goal.message


class TestConsoleAlerts:
    def test_prints_toast(self):
        output = StringIO()
        alerts = ConsoleAlerts(Console(file=output, width=80), bell=False)

        alerts.handle(Notification(Signal.FOCUS_STARTED, "t1", "Deep work"))

        text = output.getvalue()
        assert "Focus Time!" in text
        assert "Deep work" in text
