"""Unit tests for the StateBroadcaster and OrphanLedger."""

import asyncio

import pytest

from fieldtrack.application.services import OrphanLedger, StateBroadcaster
from fieldtrack.domain.entities import OwnerKind


@pytest.mark.asyncio
async def test_subscribers_receive_snapshots_until_shutdown():
    broadcaster: StateBroadcaster[int] = StateBroadcaster()
    received: list[int] = []

    async def consume():
        async for snapshot in broadcaster.subscribe():
            received.append(snapshot)

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    broadcaster.publish(1)
    broadcaster.publish(2)
    while len(received) < 2:
        await asyncio.sleep(0)
    broadcaster.shutdown()
    await consumer

    assert received == [1, 2]
    assert broadcaster.subscriber_count == 0


def test_listeners_can_be_removed_and_shutdown_silences_publish():
    broadcaster: StateBroadcaster[str] = StateBroadcaster()
    seen: list[str] = []
    remove = broadcaster.add_listener(seen.append)

    broadcaster.publish("a")
    remove()
    broadcaster.publish("b")
    broadcaster.add_listener(seen.append)
    broadcaster.shutdown()
    broadcaster.publish("c")

    assert seen == ["a"]
    assert broadcaster.closed


def test_orphan_ledger_tracks_ids_per_owner_kind():
    ledger = OrphanLedger()
    ledger.add(OwnerKind.TASK, 3)
    ledger.add(OwnerKind.TASK, 1)
    ledger.add(OwnerKind.EXPENSE, 3)

    assert ledger.pending(OwnerKind.TASK) == [1, 3]
    assert ledger.contains(OwnerKind.EXPENSE, 3)
    ledger.discard(OwnerKind.TASK, 3)
    assert not ledger.contains(OwnerKind.TASK, 3)
    assert len(ledger) == 2
