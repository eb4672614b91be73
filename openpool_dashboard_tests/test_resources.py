import asyncio

import httpx
import pytest

from openpool_dashboard.configs import DashboardConfig
from openpool_dashboard.models import FetchTarget
from openpool_dashboard.resources import PoolMetricsClient, PoolMetricsResource
from openpool_dashboard.targets import build_fetch_targets
from openpool_dashboard_tests.payloads import (
    BASE_URL,
    WORKER_A,
    MetricsServer,
    make_config,
    worker,
    worker_summary,
)

REGION_NODE_MAP = {"us-central": ["transcode"], "eu-central": ["transcode"], "oceania": ["transcode"]}


def test_url_for_target():
    config = DashboardConfig(base_url=BASE_URL + "/", endpoints=["worker_summary"], region_node_map=REGION_NODE_MAP)
    client = PoolMetricsClient(config)
    target = FetchTarget(region="us-central", node_type="ai", endpoint="worker_summary")
    assert client.url_for(target) == f"{BASE_URL}/us-central/ai/worker_summary.json"


@pytest.mark.asyncio
async def test_fetch_all_settles_every_target():
    summary = worker_summary([worker(WORKER_A, "us-central", "transcode")])
    server = MetricsServer({
        "us-central/transcode/worker_summary": summary,
        "eu-central/transcode/worker_summary": 500,
        "oceania/transcode/worker_summary": httpx.ConnectError("connection refused"),
    })
    config = make_config(REGION_NODE_MAP, endpoints=("worker_summary",))
    targets = build_fetch_targets(config.region_node_map, config.endpoints)

    results = await PoolMetricsResource(config=config).fetch_all(targets, transport=server.transport)

    assert [result.target for result in results] == targets
    ok, server_error, connect_error = results
    assert ok.ok and ok.payload == summary
    assert not server_error.ok
    assert server_error.error.status_code == 500
    assert server_error.error.url == f"{BASE_URL}/eu-central/transcode/worker_summary.json"
    assert not connect_error.ok
    assert connect_error.error.status_code is None
    assert "ConnectError" in connect_error.error.reason
    assert len(server.requests) == 3


@pytest.mark.asyncio
async def test_invalid_json_is_a_soft_failure():
    server = MetricsServer({"us-central/transcode/worker_summary": "<html>not json</html>"})
    config = make_config({"us-central": ["transcode"]}, endpoints=("worker_summary",))

    results = await PoolMetricsClient(config, transport=server.transport).fetch_all(
        build_fetch_targets(config.region_node_map, config.endpoints)
    )

    assert len(results) == 1
    assert not results[0].ok
    assert results[0].error.reason.startswith("Invalid JSON")


@pytest.mark.asyncio
async def test_bounded_concurrency_still_fetches_every_target_once():
    in_flight = 0
    peak = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200, json={}, request=request)

    region_node_map = {f"region-{i}": ["transcode", "ai"] for i in range(5)}
    config = make_config(region_node_map, max_concurrent_requests=2)
    targets = build_fetch_targets(config.region_node_map, config.endpoints)

    results = await PoolMetricsClient(config, transport=httpx.MockTransport(handler)).fetch_all(targets)

    assert len(results) == len(targets) == 20
    assert all(result.ok for result in results)
    assert peak <= 2


@pytest.mark.asyncio
async def test_no_targets_makes_no_requests():
    server = MetricsServer({})
    results = await PoolMetricsClient(make_config({}), transport=server.transport).fetch_all([])
    assert results == []
    assert server.requests == []


@pytest.mark.asyncio
async def test_invalid_url_is_a_soft_failure():
    server = MetricsServer({"eu-central/transcode/worker_summary": worker_summary([])})
    config = make_config({"us\x00central": ["transcode"], "eu-central": ["transcode"]}, endpoints=("worker_summary",))

    results = await PoolMetricsClient(config, transport=server.transport).fetch_all(
        build_fetch_targets(config.region_node_map, config.endpoints)
    )

    invalid, ok = results
    assert not invalid.ok
    assert "InvalidURL" in invalid.error.reason
    assert invalid.error.status_code is None
    assert ok.ok
    assert len(server.requests) == 1
