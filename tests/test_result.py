import asyncio
import gc

import httpx
import pytest
from helpers import json_response, query_body, row_type

from snowlite import (
    Cell,
    CellKind,
    DecodeError,
    PartitionCountError,
    PartitionFetchError,
)

COLUMNS = row_type(("ID", "fixed"), ("NAME", "text"))

PARTITIONS = {
    0: [["1", "a"], ["2", "b"]],
    1: [["3", "c"], ["4", "d"]],
    2: [["5", "e"]],
}


def partitioned_handler(partitions=PARTITIONS, delays=None, failing=(), seen=None):
    """Serve ``partitions``; partition 0 is the statement response itself."""

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            total = sum(len(rows) for rows in partitions.values())
            return json_response(
                query_body(COLUMNS, partitions[0], partitions=len(partitions), num_rows=total)
            )
        index = int(request.url.params["partition"])
        if seen is not None:
            seen.append(index)
        if delays:
            await asyncio.sleep(delays.get(index, 0))
        if index in failing:
            return json_response({"code": "000605", "message": "partition gone"}, 500)
        return json_response({"data": partitions[index]})

    return handler


@pytest.mark.asyncio
async def test_single_partition_result(make_client):
    handler = lambda request: json_response(query_body(COLUMNS, [["1", "a"], ["2", None]]))  # noqa: E731
    result = await make_client(handler).prepare("SELECT 1").query()

    partition = result.only_partition()
    assert partition.num_rows == 2
    assert partition.json_table() == [[1, "a"], [2, None]]
    assert partition.json_objects() == [{"ID": 1, "NAME": "a"}, {"ID": 2, "NAME": None}]
    assert partition.raw_cells() == [["1", "a"], ["2", None]]


@pytest.mark.asyncio
async def test_empty_result_still_has_one_partition(make_client):
    body = query_body(COLUMNS, [], partitions=0)
    result = await make_client(lambda request: json_response(body)).prepare("SELECT 1").query()

    assert result.num_partitions == 1
    assert result.only_partition().json_table() == []
    assert await result.json_objects() == []


@pytest.mark.asyncio
async def test_only_partition_rejects_multiple_partitions(make_client):
    seen: list[int] = []
    result = await make_client(partitioned_handler(seen=seen)).prepare("SELECT 1").query()

    with pytest.raises(PartitionCountError) as excinfo:
        result.only_partition()
    assert excinfo.value.count == 3
    assert seen == []


@pytest.mark.asyncio
async def test_views_follow_partition_order_not_completion_order(make_client):
    seen: list[int] = []
    handler = partitioned_handler(delays={1: 0.05, 2: 0.0}, seen=seen)
    result = await make_client(handler).prepare("SELECT 1").query()

    assert result.num_rows == 5
    assert await result.json_table() == [[1, "a"], [2, "b"], [3, "c"], [4, "d"], [5, "e"]]
    assert sorted(seen) == [1, 2]

    # Cached: a second view does not refetch
    await result.json_objects()
    assert sorted(seen) == [1, 2]


@pytest.mark.asyncio
async def test_json_objects_keys_follow_schema(make_client):
    result = await make_client(partitioned_handler()).prepare("SELECT 1").query()
    objects = await result.json_objects()

    assert len(objects) == 5
    assert all(list(obj) == ["ID", "NAME"] for obj in objects)
    assert objects[4] == {"ID": 5, "NAME": "e"}


@pytest.mark.asyncio
async def test_partition_fetch_failure_names_index_and_keeps_cache(make_client):
    result = await make_client(partitioned_handler(failing={2})).prepare("SELECT 1").query()

    with pytest.raises(PartitionFetchError) as excinfo:
        await result.json_table()

    assert excinfo.value.index == 2
    assert excinfo.value.status_code == 500
    assert 0 in result.fetched_partitions
    assert 2 not in result.fetched_partitions
    assert (await result.partition(0)).json_table() == [[1, "a"], [2, "b"]]


@pytest.mark.asyncio
async def test_fetch_failure_keeps_partitions_that_already_arrived(make_client):
    handler = partitioned_handler(failing={2}, delays={2: 0.05})
    result = await make_client(handler).prepare("SELECT 1").query()

    with pytest.raises(PartitionFetchError):
        await result.fetch_all()

    assert result.fetched_partitions == [0, 1]


@pytest.mark.asyncio
async def test_partition_by_index(make_client):
    seen: list[int] = []
    result = await make_client(partitioned_handler(seen=seen)).prepare("SELECT 1").query()

    assert (await result.partition(2)).json_table() == [[5, "e"]]
    assert await result.partition(3) is None
    assert await result.partition(-1) is None
    assert seen == [2]


@pytest.mark.asyncio
async def test_partitions_iterates_in_order(make_client):
    handler = partitioned_handler(delays={1: 0.05})
    result = await make_client(handler).prepare("SELECT 1").query()

    indexes = [partition.index async for partition in result.partitions()]
    rows = [[cell.value for cell in row] async for row in result.rows()]

    assert indexes == [0, 1, 2]
    assert rows[0] == [1, "a"]
    assert rows[-1] == [5, "e"]


@pytest.mark.asyncio
async def test_concat_partitions(make_client):
    result = await make_client(partitioned_handler()).prepare("SELECT 1").query()
    merged = await result.concat_partitions()

    assert merged.index == 0
    assert merged.num_rows == 5
    assert merged.data[2] == ["3", "c"]


@pytest.mark.asyncio
async def test_concurrency_is_bounded(make_client):
    partitions = {i: [[str(i), "x"]] for i in range(8)}
    in_flight = 0
    peak = 0
    inner = partitioned_handler(partitions=partitions)

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        if request.method == "POST":
            return await inner(request)
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return await inner(request)

    result = await make_client(handler, partition_concurrency=2).prepare("SELECT 1").query()
    assert len(await result.json_table()) == 8
    assert peak == 2


@pytest.mark.asyncio
async def test_slow_partition_times_out(make_client):
    handler = partitioned_handler(delays={1: 1.0})
    result = await make_client(handler, partition_timeout=0.01).prepare("SELECT 1").query()

    with pytest.raises(PartitionFetchError, match="timed out") as excinfo:
        await result.partition(1)
    assert excinfo.value.index == 1


@pytest.mark.asyncio
async def test_malformed_partition_body(make_client):
    partitions = {0: [["1", "a"]], 1: [["2"]]}
    result = await make_client(partitioned_handler(partitions=partitions)).prepare("SELECT 1").query()

    with pytest.raises(PartitionFetchError) as excinfo:
        await result.partition(1)
    assert excinfo.value.index == 1
    assert "1 cells" in str(excinfo.value)


@pytest.mark.asyncio
async def test_decode_failure_fails_whole_view(make_client):
    body = query_body(COLUMNS, [["1", "a"], ["oops", "b"]])
    result = await make_client(lambda request: json_response(body)).prepare("SELECT 1").query()
    partition = result.only_partition()

    with pytest.raises(DecodeError):
        partition.cells()
    with pytest.raises(DecodeError):
        await result.json_objects()

    grid = partition.try_cells()
    assert grid[0][0] == Cell(CellKind.INT, 1)
    assert isinstance(grid[1][0], DecodeError)
    assert grid[1][1] == Cell(CellKind.VARCHAR, "b")


@pytest.mark.asyncio
async def test_non_string_cell_in_partition_is_fetch_error(make_client):
    partitions = {0: [["1", "a"]], 1: [[2, "b"]]}
    result = await make_client(partitioned_handler(partitions=partitions)).prepare("SELECT 1").query()

    with pytest.raises(PartitionFetchError) as excinfo:
        await result.partition(1)
    assert excinfo.value.index == 1


@pytest.mark.asyncio
async def test_rejected_token_on_fetch_is_refreshed_once(make_client):
    inner = partitioned_handler()
    fetch_tokens: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            fetch_tokens.append(request.headers["Authorization"])
            if len(fetch_tokens) == 1:
                return json_response({"code": "390144", "message": "JWT token is invalid."}, 401)
        return await inner(request)

    client = make_client(handler)
    result = await client.prepare("SELECT 1").query()
    signed_before = client.session.authenticator.current()

    assert (await result.partition(1)).json_table() == [[3, "c"], [4, "d"]]
    assert len(fetch_tokens) == 2
    assert client.session.authenticator.current() is not signed_before


@pytest.mark.asyncio
async def test_second_rejection_on_fetch_is_fetch_error(make_client):
    inner = partitioned_handler()
    fetches = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal fetches
        if request.method == "GET":
            fetches += 1
            return json_response({"code": "390144", "message": "JWT token is invalid."}, 401)
        return await inner(request)

    result = await make_client(handler).prepare("SELECT 1").query()

    with pytest.raises(PartitionFetchError) as excinfo:
        await result.partition(2)
    assert excinfo.value.index == 2
    assert fetches == 2
    assert result.fetched_partitions == [0]


@pytest.mark.asyncio
async def test_failed_prefetch_is_not_reported_as_unhandled(make_client):
    reported: list[dict] = []
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(lambda loop, context: reported.append(context))
    # Partition 1 fails late; the prefetch of partition 2 has already failed by then
    handler = partitioned_handler(failing={1, 2}, delays={1: 0.05})
    result = await make_client(handler).prepare("SELECT 1").query()

    try:
        with pytest.raises(PartitionFetchError) as excinfo:
            async for _ in result.partitions():
                pass
        assert excinfo.value.index == 1

        del excinfo
        gc.collect()
        await asyncio.sleep(0)
        assert not [c for c in reported if "never retrieved" in c.get("message", "")]
    finally:
        loop.set_exception_handler(None)
