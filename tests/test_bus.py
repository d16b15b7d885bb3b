"""NotificationBus tests — fanout, isolation of failures, no replay."""

from datetime import datetime

import pytest


async def _stored(store, user_id="1", message="hello"):
    return await store.create(user_id, "like", message)


@pytest.mark.asyncio
async def test_publish_reaches_every_session_of_the_user(store, registry, bus, fake_transport):
    tab, phone, stranger = fake_transport(), fake_transport(), fake_transport()
    for t, uid in ((tab, "1"), (phone, "1"), (stranger, "2")):
        registry.join(registry.on_connect(t), uid)

    n = await _stored(store)
    delivered = await bus.publish(n)

    assert delivered == 2
    assert len(tab.notifications) == 1
    assert len(phone.notifications) == 1
    assert stranger.sent == []


@pytest.mark.asyncio
async def test_push_envelope_carries_full_record(store, registry, bus, fake_transport):
    t = fake_transport()
    registry.join(registry.on_connect(t), "1")

    n = await _stored(store, message="A liked your post")
    await bus.publish(n)

    assert t.sent[0]["event"] == "notification"
    data = dict(t.sent[0]["data"])
    created_at = datetime.fromisoformat(data.pop("createdAt").replace("Z", "+00:00"))
    assert created_at == n.created_at
    assert data == {
        "id": n.id,
        "userId": "1",
        "type": "like",
        "message": "A liked your post",
        "isRead": False,
    }


@pytest.mark.asyncio
async def test_unjoined_sessions_receive_nothing(store, registry, bus, fake_transport):
    t = fake_transport()
    registry.on_connect(t)
    assert await bus.publish(await _stored(store)) == 0
    assert t.sent == []


@pytest.mark.asyncio
async def test_failed_delivery_does_not_affect_others(store, registry, bus, fake_transport):
    broken, healthy = fake_transport(fail=True), fake_transport()
    registry.join(registry.on_connect(broken), "1")
    registry.join(registry.on_connect(healthy), "1")

    delivered = await bus.publish(await _stored(store))

    assert delivered == 1
    assert len(healthy.notifications) == 1


@pytest.mark.asyncio
async def test_slow_session_times_out_without_blocking(store, registry, bus, fake_transport):
    bus.push_timeout = 0.05
    slow, fast = fake_transport(delay=5), fake_transport()
    registry.join(registry.on_connect(slow), "1")
    registry.join(registry.on_connect(fast), "1")

    delivered = await bus.publish(await _stored(store))

    assert delivered == 1
    assert slow.sent == []
    assert len(fast.notifications) == 1


@pytest.mark.asyncio
async def test_disconnected_session_is_not_delivered(store, registry, bus, fake_transport):
    t = fake_transport()
    cid = registry.on_connect(t)
    registry.join(cid, "1")
    registry.on_disconnect(cid)

    assert await bus.publish(await _stored(store)) == 0
    assert t.sent == []


@pytest.mark.asyncio
async def test_no_replay_for_late_joiners(store, registry, bus, fake_transport):
    n = await _stored(store)
    await bus.publish(n)

    late = fake_transport()
    registry.join(registry.on_connect(late), "1")
    assert late.sent == []


@pytest.mark.asyncio
async def test_sequential_publishes_keep_order(store, registry, bus, fake_transport):
    t = fake_transport()
    registry.join(registry.on_connect(t), "2")

    x = await _stored(store, "2", "X")
    await bus.publish(x)
    y = await _stored(store, "2", "Y")
    await bus.publish(y)

    assert [d["message"] for d in t.notifications] == ["X", "Y"]
    assert [d["id"] for d in t.notifications] == [x.id, x.id + 1]
