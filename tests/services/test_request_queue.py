import asyncio

import pytest

from chainxchange.core.exceptions import QueueClosedError
from chainxchange.services.request_queue import SerializedRequestQueue


class RecordingHandler:
    def __init__(self, delay=0.01):
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.urls = []

    async def __call__(self, url, params):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.urls.append(url)
        try:
            await asyncio.sleep(self.delay)
            if url.startswith("bad"):
                raise RuntimeError(f"failed {url}")
            return {"url": url, "params": params}
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
async def test_requests_run_one_at_a_time_in_fifo_order():
    handler = RecordingHandler()
    queue = SerializedRequestQueue(handler)
    urls = [f"url-{i}" for i in range(5)]

    results = await asyncio.gather(*(queue.submit(url) for url in urls))

    assert [r["url"] for r in results] == urls
    assert handler.urls == urls
    assert handler.max_in_flight == 1
    assert queue.stats()["processed"] == 5
    await queue.close()


@pytest.mark.asyncio
async def test_failure_is_delivered_only_to_its_own_caller():
    handler = RecordingHandler()
    queue = SerializedRequestQueue(handler)

    results = await asyncio.gather(
        queue.submit("good-1"),
        queue.submit("bad-1"),
        queue.submit("good-2", {"ids": "bitcoin"}),
        return_exceptions=True,
    )

    assert results[0] == {"url": "good-1", "params": None}
    assert isinstance(results[1], RuntimeError)
    assert results[2] == {"url": "good-2", "params": {"ids": "bitcoin"}}
    assert queue.stats()["failed"] == 1
    await queue.close()


@pytest.mark.asyncio
async def test_abandoned_request_is_skipped():
    release = asyncio.Event()
    calls = []

    async def handler(url, params):
        calls.append(url)
        if url == "first":
            await release.wait()
        return url

    queue = SerializedRequestQueue(handler)
    first = asyncio.create_task(queue.submit("first"))
    abandoned = asyncio.create_task(queue.submit("abandoned"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    abandoned.cancel()
    release.set()

    assert await first == "first"
    assert await queue.submit("third") == "third"
    assert calls == ["first", "third"]
    assert queue.skipped == 1
    await queue.close()


@pytest.mark.asyncio
async def test_close_fails_running_and_pending_requests():
    async def handler(url, params):
        await asyncio.Event().wait()

    queue = SerializedRequestQueue(handler)
    running = asyncio.create_task(queue.submit("running"))
    pending = asyncio.create_task(queue.submit("pending"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    await queue.close()

    with pytest.raises(QueueClosedError):
        await running
    with pytest.raises(QueueClosedError):
        await pending
    assert queue.pending == 0


@pytest.mark.asyncio
async def test_submit_after_close_is_rejected():
    queue = SerializedRequestQueue(RecordingHandler())
    await queue.close()

    with pytest.raises(QueueClosedError):
        await queue.submit("late")
