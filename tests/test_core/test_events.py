from uuid import uuid4

import pytest

from app.core.events import EpisodeDeleted, EventBus, ProgramDeleted
from tests.fixtures.fakes import RecordingSubscriber


class _Exploding:
    async def handle(self, event):
        raise RuntimeError("subscriber bug")


@pytest.mark.anyio
async def test_publish_with_no_subscribers_is_a_noop():
    await EventBus().publish(EpisodeDeleted(uuid4()))


@pytest.mark.anyio
async def test_subscribers_receive_events_in_order():
    bus, first, second = EventBus(), RecordingSubscriber(), RecordingSubscriber()
    bus.subscribe(first)
    bus.subscribe(second)
    events = [EpisodeDeleted(uuid4()), ProgramDeleted(uuid4())]

    for event in events:
        await bus.publish(event)

    assert first.events == events
    assert second.events == events


@pytest.mark.anyio
async def test_failing_subscriber_does_not_reach_publisher_or_others():
    bus, after = EventBus(), RecordingSubscriber()
    bus.subscribe(_Exploding())
    bus.subscribe(after)

    event = EpisodeDeleted(uuid4())
    await bus.publish(event)

    assert after.events == [event]


@pytest.mark.anyio
async def test_unknown_event_type_is_rejected():
    with pytest.raises(TypeError):
        await EventBus().publish({"type": "EpisodeDeleted"})


def test_subscribe_is_idempotent_and_unsubscribe_removes():
    bus, sub = EventBus(), RecordingSubscriber()
    bus.subscribe(sub)
    bus.subscribe(sub)
    assert bus.subscribers == [sub]
    bus.unsubscribe(sub)
    assert bus.subscribers == []


def test_events_are_frozen():
    event = EpisodeDeleted(uuid4())
    with pytest.raises(AttributeError):
        event.episode_id = uuid4()
