"""Sample metrics payloads and an in-memory metrics server for tests."""
from typing import Dict, List, Optional, Tuple

import httpx

from openpool_dashboard.configs import DashboardConfig

BASE_URL = "https://metrics.example.test/pool-metrics"

WORKER_A = "0x1111111111111111111111111111111111111111"
WORKER_B = "0x2222222222222222222222222222222222222222"
WORKER_C = "0x3333333333333333333333333333333333333333"

ETH = 10 ** 18


def worker(eth_address: str, region: str, node_type: str, pending_fees: int = 0, paid_fees: int = 0,
           total_fees: int = 0, connection_count: int = 0) -> dict:
    return {
        "eth_address": eth_address,
        "region": region,
        "node_type": node_type,
        "pending_fees": pending_fees,
        "total_fees_paid": paid_fees,
        "total_fees": total_fees,
        "connection_count": connection_count,
    }


def worker_summary(workers: List[dict], total_workers: Optional[int] = None, total_connections: int = 0,
                   total_pending_fees: int = 0, total_fees_paid: int = 0) -> dict:
    return {
        "export_timestamp": "20250101_000000",
        "data": {
            "workers": {w["eth_address"]: w for w in workers},
            "aggregates": {
                "total_workers": len(workers) if total_workers is None else total_workers,
                "total_connections": total_connections,
                "total_pending_fees": total_pending_fees,
                "total_fees_paid": total_fees_paid,
            },
        },
    }


def transcode_row(eth_address: str, real_time_ratio: float, job_count: int, response_time: float = 1000.0,
                  mean_cups: Optional[float] = None, median_cups: Optional[float] = None,
                  min_cups: Optional[float] = None, max_cups: Optional[float] = None) -> dict:
    row = {
        "worker_address": eth_address,
        "mean_real_time_ratio": real_time_ratio,
        "mean_response_time": response_time,
        "job_count": job_count,
        "total_compute_units": 1000,
        "total_fees": 5000,
    }
    for key, value in (("mean_compute_units_per_second", mean_cups),
                       ("median_compute_units_per_second", median_cups),
                       ("min_compute_units_per_second", min_cups),
                       ("max_compute_units_per_second", max_cups)):
        if value is not None:
            row[key] = value
    return row


def ai_row(eth_address: str, model_id: str, response_time: float, job_count: int,
           pipeline: str = "text-to-image") -> dict:
    return {
        "worker_address": eth_address,
        "model_id": model_id,
        "pipeline": pipeline,
        "mean_response_time": response_time,
        "job_count": job_count,
    }


def make_config(region_node_map: Dict[str, List[str]],
                endpoints: Tuple[str, ...] = ("worker_summary", "worker_performance"),
                **kwargs) -> DashboardConfig:
    return DashboardConfig(
        base_url=BASE_URL,
        endpoints=list(endpoints),
        region_node_map=region_node_map,
        request_timeout_seconds=kwargs.pop("request_timeout_seconds", 5.0),
        max_concurrent_requests=kwargs.pop("max_concurrent_requests", None),
        **kwargs,
    )


class MetricsServer:
    """
    Serves metrics files keyed by "region/node_type/endpoint".
    A route can be a payload (200), an int status code, or an exception to raise.
    """

    def __init__(self, routes: Dict[str, object]):
        self.routes = routes
        self.requests: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        prefix = httpx.URL(BASE_URL).path.rstrip("/") + "/"
        path = request.url.path
        key = path[len(prefix):] if path.startswith(prefix) else path
        key = key[:-len(".json")] if key.endswith(".json") else key

        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, request=request)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route, request=request)
        if isinstance(route, str):
            return httpx.Response(200, text=route, request=request)
        return httpx.Response(200, json=route, request=request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)
