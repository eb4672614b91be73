import asyncio
from typing import List, Optional, Sequence

import httpx
from dagster import ConfigurableResource, get_dagster_logger

from openpool_dashboard.configs import DashboardConfig
from openpool_dashboard.models import FetchResult, FetchTarget, PoolDetails


class PoolMetricsClient:
    """
    Async client for the per-region metrics files published by the pool.

    Every target is fetched exactly once per call to fetch_all. Failures are
    returned as FetchResult errors rather than raised, so one broken region
    never hides the others.
    """

    def __init__(self, config: DashboardConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport
        self.log = get_dagster_logger()

    def url_for(self, target: FetchTarget) -> str:
        """Construct the URL of the metrics file for a target"""
        base_url = (self.config.base_url or "").rstrip("/")
        return f"{base_url}/{target.region}/{target.node_type}/{target.endpoint}.json"

    def client(self) -> httpx.AsyncClient:
        """Returns a configured httpx client"""
        return httpx.AsyncClient(
            timeout=self.config.request_timeout_seconds,
            transport=self.transport,
            follow_redirects=True,
        )

    async def fetch_target(self, client: httpx.AsyncClient, target: FetchTarget) -> FetchResult:
        """Fetch and decode a single metrics file"""
        url = self.url_for(target)
        try:
            response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.log.warning(f"Error fetching {url}: {type(e).__name__}: {str(e)}")
            return FetchResult.failure(target, url, f"{type(e).__name__}: {str(e)}")

        if not response.is_success:
            self.log.warning(f"Failed to fetch data from {url}: {response.status_code} {response.reason_phrase}")
            return FetchResult.failure(
                target, url, f"HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            self.log.warning(f"Invalid JSON from {url}: {str(e)}")
            return FetchResult.failure(target, url, f"Invalid JSON: {str(e)}", status_code=response.status_code)

        return FetchResult.success(target, url, payload)

    async def fetch_all(self, targets: Sequence[FetchTarget]) -> List[FetchResult]:
        """
        Fetch all targets concurrently and wait for every one to settle.
        Results are returned in target order.
        """
        if not targets:
            return []

        limit = self.config.max_concurrent_requests
        semaphore = asyncio.Semaphore(limit) if limit and limit > 0 else None

        async with self.client() as client:
            async def settle(target: FetchTarget) -> FetchResult:
                if semaphore is None:
                    return await self.fetch_target(client, target)
                async with semaphore:
                    return await self.fetch_target(client, target)

            results = await asyncio.gather(*(settle(target) for target in targets))

        failed = [result for result in results if not result.ok]
        self.log.info(f"Fetched {len(results) - len(failed)}/{len(results)} metrics files")
        return list(results)


class PoolMetricsResource(ConfigurableResource):
    """
    A Dagster resource for reading pool metrics files over HTTP.
    """
    config: DashboardConfig

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def get_client(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> PoolMetricsClient:
        return PoolMetricsClient(self.config, transport=transport)

    async def fetch_all(self, targets: Sequence[FetchTarget],
                        transport: Optional[httpx.AsyncBaseTransport] = None) -> List[FetchResult]:
        return await self.get_client(transport).fetch_all(targets)

    def fetch_pool_details(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> PoolDetails:
        """Run the full fetch-merge-aggregate pipeline against the configured source"""
        from openpool_dashboard.pipeline import fetch_pool_details
        return fetch_pool_details(self.config, transport=transport)
