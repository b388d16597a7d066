import pytest

from conftest import TEST_TOKEN, ScriptedTransport, message_update, ok

from botapi.core.client import Client, ClientConfig
from botapi.domain.events.api_events import CursorAdvanced, UpdateDecodeFailed
from botapi.domain.models.outcome import OtherFailure, ThrottleFailure
from botapi.domain.models.updates import DEFAULT_UPDATE_KINDS, InvalidUpdate, MessageUpdate
from botapi.infrastructure.ingestion.long_poller import LongPoller


def offsets(transport: ScriptedTransport):
    return [params["offset"] for method, params, _ in transport.sent if method == "getUpdates"]


@pytest.mark.asyncio
async def test_cursor_advances_only_after_whole_batch_was_handed_out(client, transport, events, sleep):
    transport.push(ok([message_update(5), message_update(6), message_update(7)]), ok([message_update(8)]))
    source = LongPoller(client, sleep=sleep).get_updates()

    received = [await source.next_update() for _ in range(3)]
    assert [u.update_id for u in received] == [5, 6, 7]
    assert source.offset == 0
    assert offsets(transport) == [0]

    fourth = await source.next_update()
    assert fourth.update_id == 8
    assert source.offset == 8
    assert offsets(transport) == [0, 8]
    advanced = [e for e in events if isinstance(e, CursorAdvanced)]
    assert (advanced[0].previous_offset, advanced[0].new_offset, advanced[0].batch_size) == (0, 8, 3)
    await source.aclose()


@pytest.mark.asyncio
async def test_requests_carry_subscription_and_wait(client, transport, sleep):
    transport.push(ok([message_update(1)]))
    poller = LongPoller(client, timeout=25, limit=50, sleep=sleep)
    source = poller.get_updates()
    await source.next_update()

    params = transport.sent[0][1]
    assert params["timeout"] == 25
    assert params["limit"] == 50
    assert params["allowed_updates"] == list(DEFAULT_UPDATE_KINDS)
    await source.aclose()


@pytest.mark.asyncio
async def test_empty_batches_keep_polling_at_same_offset(client, transport, sleep):
    transport.push(ok([]), ok([]), ok([message_update(3)]))
    source = LongPoller(client, initial_offset=3, sleep=sleep).get_updates()

    update = await source.next_update()

    assert update.update_id == 3
    assert offsets(transport) == [3, 3, 3]
    assert sleep.delays == []
    await source.aclose()


@pytest.mark.asyncio
async def test_failed_round_waits_retry_delay_and_yields_nothing(client, transport, sleep):
    transport.push(
        OtherFailure(error_code=502, description="Bad Gateway"),
        OtherFailure(error_code=None, description="Connection reset", transport_error=True),
        ok([message_update(1)]),
    )
    source = LongPoller(client, retry_delay=0.5, sleep=sleep).get_updates()

    update = await source.next_update()

    assert update.update_id == 1
    assert sleep.delays == [0.5, 0.5]
    assert offsets(transport) == [0, 0, 0]
    await source.aclose()


@pytest.mark.asyncio
async def test_throttle_without_auto_wait_sleeps_advertised_delay(sleep):
    transport = ScriptedTransport([ThrottleFailure(4), ok([message_update(2)])])
    client = Client(config=ClientConfig(token=TEST_TOKEN, auto_wait=False), transport=transport)
    source = LongPoller(client, sleep=sleep).get_updates()

    update = await source.next_update()

    assert update.update_id == 2
    assert sleep.delays == [4]
    await source.aclose()


@pytest.mark.asyncio
async def test_undecodable_updates_are_skipped_but_advance_cursor(client, transport, events, sleep):
    transport.push(
        ok([
            message_update(3),
            {"no_id": True},
            {"update_id": 9, "message": {"message_id": "bad"}},
        ]),
        ok([message_update(10)]),
    )
    source = LongPoller(client, sleep=sleep).get_updates()

    first = await source.next_update()
    second = await source.next_update()
    third = await source.next_update()

    assert isinstance(first, MessageUpdate)
    assert isinstance(second, InvalidUpdate)
    assert second.update_id == 9
    assert third.update_id == 10
    assert offsets(transport) == [0, 10]
    failures = [e for e in events if isinstance(e, UpdateDecodeFailed)]
    assert len(failures) == 1
    assert failures[0].source == "long_poll"
    await source.aclose()


@pytest.mark.asyncio
async def test_batch_without_readable_ids_waits_before_refetching(client, transport, events, sleep):
    transport.push(ok([{"no_id": True}]), ok([{"update_id": "x"}]), ok([message_update(4)]))
    source = LongPoller(client, retry_delay=0.5, sleep=sleep).get_updates()

    update = await source.next_update()

    assert update.update_id == 4
    assert sleep.delays == [0.5, 0.5]
    assert offsets(transport) == [0, 0, 0]
    assert len([e for e in events if isinstance(e, UpdateDecodeFailed)]) == 2
    await source.aclose()


@pytest.mark.asyncio
async def test_non_array_result_is_retried_after_delay(client, transport, sleep):
    transport.push(ok(True), ok([message_update(1)]))
    source = LongPoller(client, retry_delay=0.5, sleep=sleep).get_updates()

    update = await source.next_update()

    assert update.update_id == 1
    assert sleep.delays == [0.5]
    assert offsets(transport) == [0, 0]
    await source.aclose()


@pytest.mark.asyncio
async def test_cursor_never_moves_backwards(client, transport, sleep):
    transport.push(ok([message_update(2)]), ok([message_update(50)]))
    source = LongPoller(client, initial_offset=40, sleep=sleep).get_updates()

    await source.next_update()
    await source.next_update()

    assert offsets(transport) == [40, 40]
    assert source.offset == 40
    await source.aclose()


@pytest.mark.asyncio
async def test_closed_source_stops_iteration(client, transport, sleep):
    transport.push(ok([message_update(1), message_update(2)]))
    received = []
    async with LongPoller(client, sleep=sleep).get_updates() as source:
        async for update in source:
            received.append(update.update_id)
            await source.aclose()

    assert received == [1]
    assert source.closed
    with pytest.raises(StopAsyncIteration):
        await source.next_update()


@pytest.mark.parametrize("kwargs", [{"limit": 0}, {"limit": 101}, {"timeout": -1}])
def test_invalid_poller_options(client, kwargs):
    with pytest.raises(ValueError):
        LongPoller(client, **kwargs)
