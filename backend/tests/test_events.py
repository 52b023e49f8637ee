from events import MessageCreated, MessageEventBus


def _event(message_id, channel_id=1):
    return MessageCreated(message_id=message_id, channel_id=channel_id, sender_id=1, content=f"m{message_id}")


def test_publish_reaches_every_subscriber_of_the_channel():
    bus = MessageEventBus()
    first = bus.subscribe(1)
    second = bus.subscribe(1)
    elsewhere = bus.subscribe(2)

    assert bus.publish(_event(10)) == 2
    assert first.get_nowait().message_id == 10
    assert second.get_nowait().message_id == 10
    assert elsewhere.empty()


def test_publish_without_subscribers_delivers_nothing():
    assert MessageEventBus().publish(_event(1, channel_id=42)) == 0


def test_full_queue_drops_new_events_and_keeps_old_ones():
    bus = MessageEventBus(max_queue_size=1)
    queue = bus.subscribe(1)

    assert bus.publish(_event(1)) == 1
    assert bus.publish(_event(2)) == 0

    assert queue.qsize() == 1
    assert queue.get_nowait().message_id == 1


def test_unsubscribe_removes_queue_and_channel():
    bus = MessageEventBus()
    queue = bus.subscribe(1)
    assert bus.subscriber_count(1) == 1

    bus.unsubscribe(1, queue)

    assert bus.subscriber_count(1) == 0
    assert 1 not in bus._subscribers
    assert bus.publish(_event(3)) == 0
    assert queue.empty()


def test_unsubscribe_keeps_other_subscribers():
    bus = MessageEventBus()
    leaving = bus.subscribe(1)
    staying = bus.subscribe(1)

    bus.unsubscribe(1, leaving)
    bus.unsubscribe(1, leaving)

    assert bus.subscriber_count(1) == 1
    assert bus.publish(_event(4)) == 1
    assert staying.get_nowait().message_id == 4
