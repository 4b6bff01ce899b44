import asyncio

from mosaik.server.trace import socket_server
from mosaik.server.trace.trace_emitter import TraceEmitter, global_tracer


class TestTraceEmitter:

    def setup_method(self):
        self.emitter = TraceEmitter()
        self.received = []

    def test_fire_stamps_and_broadcasts(self):
        self.emitter.on_trace(self.received.append)
        self.emitter.fire({"type": "NODE_RUNNING", "nodeId": 3})
        assert self.received[0]["nodeId"] == 3
        assert isinstance(self.received[0]["ts"], int)

    def test_broken_listener_does_not_stop_others(self):
        def broken(event):
            raise RuntimeError("listener bug")

        self.emitter.on_trace(broken)
        self.emitter.on_trace(self.received.append)
        self.emitter.fire({"type": "EXEC_START", "order": []})
        assert len(self.received) == 1

    def test_off_trace(self):
        self.emitter.on_trace(self.received.append)
        self.emitter.off_trace(self.received.append)
        self.emitter.fire({"type": "EXEC_START", "order": []})
        assert self.received == []


class TestSocketBroadcast:

    def setup_method(self):
        self.emitted = []

    def test_global_tracer_events_are_emitted_as_trace(self, monkeypatch):
        async def fake_emit(name, data):
            self.emitted.append((name, data))

        monkeypatch.setattr(socket_server.sio, "emit", fake_emit)

        async def scenario():
            global_tracer.fire({"type": "NODE_DONE", "nodeId": 1, "durationMs": 2.0})
            await asyncio.sleep(0)

        asyncio.run(scenario())
        assert [name for name, _ in self.emitted] == ["trace"]
        assert self.emitted[0][1]["nodeId"] == 1

    def test_no_running_loop_is_a_no_op(self, monkeypatch):
        async def fake_emit(name, data):
            self.emitted.append((name, data))

        monkeypatch.setattr(socket_server.sio, "emit", fake_emit)
        socket_server._broadcast({"type": "EXEC_START", "order": []})
        assert self.emitted == []
