import asyncio
import json

import pytest
from unittest.mock import MagicMock

from bami_service.app.models import NarrationEvent
from bami_service.infrastructure.events import KEEPALIVE_FRAME, EventChannel, QueueSink, format_sse_frame


def decode(frame):
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):-2])

def test_format_sse_frame_keeps_non_ascii():
    frame = format_sse_frame(NarrationEvent(text="📥 Recibí"))

    assert frame == 'data: {"role": "ai", "text": "📥 Recibí"}\n\n'

def test_format_sse_frame_accepts_dicts():
    assert decode(format_sse_frame({"role": "ai", "text": "hi"})) == {"role": "ai", "text": "hi"}

def test_publish_without_subscribers_is_a_silent_no_op(channel):
    delivered = channel.publish("C-50001", NarrationEvent(text="nobody listening"))

    assert delivered == 0
    assert channel.subscriber_count("C-50001") == 0
    assert channel.subscriber_count() == 0

def test_late_subscriber_only_sees_later_events_in_order(channel, recording_sink):
    for index in range(3):
        channel.publish("C-50001", NarrationEvent(text=f"early {index}"))

    channel.subscribe("C-50001", recording_sink)
    for index in range(3):
        channel.publish("C-50001", NarrationEvent(text=f"late {index}"))

    assert [decode(frame)["text"] for frame in recording_sink.frames] == ["late 0", "late 1", "late 2"]

def test_publish_is_scoped_per_case(channel, recording_sink):
    channel.subscribe("C-50001", recording_sink)

    channel.publish("C-50002", NarrationEvent(text="other case"))

    assert recording_sink.frames == []

def test_failing_sink_does_not_block_others(channel, recording_sink):
    broken = MagicMock()
    broken.write.side_effect = RuntimeError("connection reset")
    channel.subscribe("C-50001", broken)
    channel.subscribe("C-50001", recording_sink)

    delivered = channel.publish("C-50001", NarrationEvent(text="still delivered"))

    assert delivered == 1
    assert len(recording_sink.frames) == 1

def test_publish_to_closed_sink_never_raises(channel):
    sink = QueueSink()
    channel.subscribe("C-50001", sink)
    sink.close()

    assert channel.publish("C-50001", NarrationEvent(text="dropped")) == 0

def test_unsubscribe_removes_exactly_once(channel, recording_sink):
    channel.subscribe("C-50001", recording_sink)

    assert channel.unsubscribe("C-50001", recording_sink) is True
    assert channel.unsubscribe("C-50001", recording_sink) is False
    assert recording_sink.closed is True
    assert channel.subscriber_count("C-50001") == 0

def test_subscribe_same_sink_twice_registers_once(channel, recording_sink):
    channel.subscribe("C-50001", recording_sink)
    channel.subscribe("C-50001", recording_sink)

    channel.publish("C-50001", NarrationEvent(text="once"))

    assert channel.subscriber_count("C-50001") == 1
    assert len(recording_sink.frames) == 1

def test_close_detaches_every_sink(channel):
    sinks = [MagicMock(closed=False) for _ in range(3)]
    channel.subscribe("C-50001", sinks[0])
    channel.subscribe("C-50001", sinks[1])
    channel.subscribe("C-50002", sinks[2])

    channel.close()

    assert channel.subscriber_count() == 0
    for sink in sinks:
        sink.close.assert_called_once()

@pytest.mark.asyncio
async def test_keepalive_frames_are_sent_periodically(recording_sink):
    channel = EventChannel(keepalive_interval=0.01)
    channel.subscribe("C-50001", recording_sink)

    await asyncio.sleep(0.05)
    channel.unsubscribe("C-50001", recording_sink)

    assert KEEPALIVE_FRAME in recording_sink.frames

@pytest.mark.asyncio
async def test_unsubscribe_cancels_keepalive(recording_sink):
    channel = EventChannel(keepalive_interval=0.01)
    channel.subscribe("C-50001", recording_sink)
    task = channel._keepalive_tasks[recording_sink]

    channel.unsubscribe("C-50001", recording_sink)
    await asyncio.sleep(0.02)

    assert task.done()
    assert recording_sink not in channel._keepalive_tasks

@pytest.mark.asyncio
async def test_queue_sink_stream_receives_published_frames(channel):
    sink = QueueSink()
    channel.subscribe("C-50001", sink)

    channel.publish("C-50001", NarrationEvent(text="one"))
    channel.publish("C-50001", NarrationEvent(text="two"))
    channel.unsubscribe("C-50001", sink)

    frames = [frame async for frame in sink.frames()]
    assert [decode(frame)["text"] for frame in frames] == ["one", "two"]
