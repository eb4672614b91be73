"""
Fetch, merge and aggregate pool metrics into the dashboard's PoolDetails.
"""
import asyncio
from datetime import datetime
from typing import List, Optional

import httpx
from dagster import get_dagster_logger

from openpool_dashboard.aggregator import aggregate
from openpool_dashboard.configs import DashboardConfig
from openpool_dashboard.merger import MergedRecords, merge_deltas
from openpool_dashboard.models import AggregatedPool, FetchError, PoolDetails
from openpool_dashboard.normalizer import normalize_results
from openpool_dashboard.projections import build_ui_views
from openpool_dashboard.resources import PoolMetricsClient
from openpool_dashboard.targets import build_fetch_targets, derive_node_types, derive_regions


def configuration_errors(config: DashboardConfig) -> List[str]:
    """Problems with the static configuration that make fetching pointless"""
    errors = []
    if not config.base_url:
        errors.append("Missing base URL configuration")
    if not derive_regions(config.region_node_map):
        errors.append("No regions found in region node map configuration")
    if not derive_node_types(config.region_node_map):
        errors.append("No node types found in region node map configuration")
    if not config.endpoints:
        errors.append("Missing or invalid endpoints configuration")
    return errors


def build_pool_details(pool: AggregatedPool, source_errors: Optional[List[FetchError]] = None) -> PoolDetails:
    """Attach the UI projections to an aggregated pool"""
    return PoolDetails(**dict(pool), ui=build_ui_views(pool), source_errors=source_errors or [])


def empty_pool_details(now: Optional[datetime] = None) -> PoolDetails:
    """A well-formed result with zeroed summaries and empty collections"""
    return build_pool_details(aggregate(MergedRecords(), now=now))


async def collect_pool_details(config: DashboardConfig,
                               transport: Optional[httpx.AsyncBaseTransport] = None,
                               now: Optional[datetime] = None) -> PoolDetails:
    """
    Run one pipeline pass.

    Configuration problems and failed sources never raise: a bad
    configuration gives an empty result, and failed sources are left out.
    """
    log = get_dagster_logger()

    errors = configuration_errors(config)
    if errors:
        for error in errors:
            log.error(error)
        return empty_pool_details(now)

    targets = build_fetch_targets(config.region_node_map, config.endpoints)
    if not targets:
        log.warning("No fetch targets configured, returning empty pool details")
        return empty_pool_details(now)

    log.info(f"Fetching {len(targets)} metrics files from {config.base_url}")
    results = await PoolMetricsClient(config, transport=transport).fetch_all(targets)

    deltas = normalize_results(results)
    merged = merge_deltas(deltas)
    log.info(
        f"Merged {len(merged.worker_fees)} worker fee records and "
        f"{len(merged.worker_connections)} connection records from {len(deltas)} sources"
    )

    source_errors = [result.error for result in results if result.error is not None]
    return build_pool_details(aggregate(merged, now=now), source_errors)


def fetch_pool_details(config: DashboardConfig,
                       transport: Optional[httpx.AsyncBaseTransport] = None,
                       now: Optional[datetime] = None) -> PoolDetails:
    """Synchronous entry point running one pipeline pass in its own event loop"""
    return asyncio.run(collect_pool_details(config, transport=transport, now=now))
