import time

from conftest import FakeSink
from wa_webhook import app as app_module
from wa_webhook.app import Application
from wa_webhook.events import ConnectedEvent, MessageEvent


def test_forwarded_events_reach_the_sink(store, monkeypatch):
    sink = FakeSink()
    monkeypatch.setattr(app_module, "SinkClient", lambda: sink)
    application = Application(store=store)

    application.start()
    try:
        forwarder = application.forwarder("6281234")
        forwarder.handle(ConnectedEvent())
        forwarder.handle(MessageEvent(id="1", sender="a", chat="a", timestamp=1, type="text", body="hi"))

        deadline = time.monotonic() + 5
        while len(sink.delivered) < 2 and time.monotonic() < deadline:
            time.sleep(0.02)
    finally:
        application.stop()

    assert [p.event for p in sink.delivered] == ["connection", "message"]
    assert not application.running
    assert not application.worker.running


def test_stop_before_start_is_a_no_op(store):
    Application(store=store).stop()
