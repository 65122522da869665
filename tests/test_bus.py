from streamclip.events.bus import EventBus


def test_publish_reaches_every_open_subscriber():
    bus = EventBus()
    a = bus.subscribe(name="a")
    b = bus.subscribe(name="b")
    assert bus.publish("x") == 2
    assert a.get_nowait() == "x"
    assert b.get_nowait() == "x"


def test_closed_subscriber_is_skipped():
    bus = EventBus()
    a = bus.subscribe()
    b = bus.subscribe()
    b.close()
    assert bus.publish("x") == 1
    assert a.pending() == 1
    assert bus.subscriber_count == 1


def test_full_subscriber_drops_without_blocking_others():
    bus = EventBus()
    slow = bus.subscribe(maxsize=1, name="slow")
    fast = bus.subscribe(maxsize=10, name="fast")
    for i in range(5):
        bus.publish(i)
    assert slow.pending() == 1
    assert slow.dropped == 4
    assert fast.pending() == 5


def test_failing_subscriber_does_not_stop_fan_out():
    bus = EventBus()
    broken = bus.subscribe()

    def explode(item):
        raise RuntimeError("listener broke")

    broken.deliver = explode
    healthy = bus.subscribe()
    assert bus.publish("x") == 1
    assert healthy.get_nowait() == "x"
