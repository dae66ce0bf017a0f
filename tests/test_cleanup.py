import asyncio

import pytest

from cleanup import CleanupWorker


@pytest.mark.asyncio
async def test_worker_sweeps_rooms_nobody_reads(relay, clock):
    relay.create_room("IDLE", "u1")
    relay.send_broadcast("IDLE", "u1", "x")
    relay.send_directed("IDLE", "u1", {"u2": "y"})
    clock.advance(days=2)

    worker = CleanupWorker(relay, interval=0.01)
    worker.start()
    await asyncio.sleep(0.05)
    await worker.stop()

    # inspected directly: a read would sweep on its own
    streams = relay.messages.streams["IDLE"]
    assert streams.broadcast == []
    assert streams.directed == []


@pytest.mark.asyncio
async def test_worker_prunes_old_receipts(relay, clock):
    relay.create_room("R1", "u1")
    relay.append_receipt("R1", "m1", "u2", "read")
    clock.advance(days=8)

    worker = CleanupWorker(relay, interval=0.01)
    worker.start()
    await asyncio.sleep(0.05)
    await worker.stop()

    assert relay.receipts.count() == 0


@pytest.mark.asyncio
async def test_stop_is_prompt_and_idempotent(relay):
    worker = CleanupWorker(relay, interval=3600)
    worker.start()
    assert worker.running

    await asyncio.wait_for(worker.stop(), timeout=1)
    await worker.stop()

    assert not worker.running


@pytest.mark.asyncio
async def test_errors_do_not_kill_the_loop(relay, monkeypatch):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return {"cleanedReceipts": 0, "expiredMessages": 0}

    monkeypatch.setattr(relay, "run_maintenance", flaky)
    worker = CleanupWorker(relay, interval=0.01)
    worker.start()
    await asyncio.sleep(0.05)
    await worker.stop()

    assert len(calls) >= 2
