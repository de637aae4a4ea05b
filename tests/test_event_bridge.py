"""
Unit tests for the transport event bridge.
"""

from app.config.constants import TRANSPORT_EVENTS
from app.models.session import TransportEvent
from app.session.event_bridge import EventBridge

from fakes import FakeHandle


class RecordingSink:
    def __init__(self, accept=True):
        self.accept = accept
        self.events = []

    def __call__(self, event):
        self.events.append(event)
        return self.accept


def test_registers_every_event_kind():
    handle = FakeHandle("key")
    EventBridge(handle, 1, RecordingSink())

    for kind in TRANSPORT_EVENTS:
        assert len(handle.listeners[kind]) == 1


def test_events_are_tagged_with_generation():
    handle = FakeHandle("key")
    sink = RecordingSink()
    EventBridge(handle, 7, sink)

    handle.emit("call-start")
    handle.emit("speech-start")
    handle.emit("error", {"message": "boom"})

    assert sink.events == [
        TransportEvent(kind="call-start", generation=7),
        TransportEvent(kind="speech-start", generation=7),
        TransportEvent(kind="error", generation=7, payload={"message": "boom"}),
    ]


def test_rejected_call_start_hangs_up():
    handle = FakeHandle("key")
    EventBridge(handle, 1, RecordingSink(accept=False))

    handle.emit("call-start")

    assert handle.stop_calls == 1


def test_rejected_call_end_does_not_hang_up():
    handle = FakeHandle("key")
    EventBridge(handle, 1, RecordingSink(accept=False))

    handle.emit("call-end")

    assert handle.stop_calls == 0


def test_detach_unregisters_all_but_call_start():
    handle = FakeHandle("key")
    sink = RecordingSink()
    bridge = EventBridge(handle, 1, sink)

    bridge.detach()

    assert bridge.detached is True
    assert len(handle.listeners["call-start"]) == 1
    for kind in ("call-end", "error", "speech-start", "speech-end"):
        assert handle.listeners[kind] == []


def test_late_call_start_after_detach_hangs_up_without_forwarding():
    handle = FakeHandle("key")
    sink = RecordingSink()
    bridge = EventBridge(handle, 1, sink)
    bridge.detach()

    handle.emit("call-start")

    assert sink.events == []
    assert handle.stop_calls == 1


def test_detach_mutes_handles_without_off():
    class OnlyOnHandle:
        def __init__(self):
            self.callbacks = {}
            self.stop_calls = 0

        def on(self, event, callback):
            self.callbacks[event] = callback

        def stop(self):
            self.stop_calls += 1

    handle = OnlyOnHandle()
    sink = RecordingSink()
    bridge = EventBridge(handle, 1, sink)
    bridge.detach()

    handle.callbacks["call-end"](None)
    handle.callbacks["error"]("late")

    assert sink.events == []
    assert handle.stop_calls == 0


def test_corrective_hangup_failure_is_swallowed():
    handle = FakeHandle("key", stop_error=RuntimeError("already gone"))
    EventBridge(handle, 1, RecordingSink(accept=False))

    handle.emit("call-start")

    assert handle.stop_calls == 1
