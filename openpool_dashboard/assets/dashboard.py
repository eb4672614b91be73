# openpool_dashboard/assets/dashboard.py
from dagster import asset, AssetExecutionContext, MetadataValue

from openpool_dashboard.models import PoolDetails


@asset(
    key_prefix=["dashboard"],
    group_name="dashboard",
    compute_kind="pandas",
    description="Pool fee, connection and performance details for the dashboard",
    required_resource_keys={"pool_metrics"}
)
def pool_details(context: AssetExecutionContext) -> PoolDetails:
    """
    Fetch every region/node type metrics file, merge the workers and derive
    the summaries, rankings and tab views shown on the dashboard.
    Sources that fail are left out of the result rather than failing the run.
    """
    pool_metrics = context.resources.pool_metrics
    context.log.info(f"Refreshing pool details from {pool_metrics.base_url or '<unset>'}")

    details = pool_metrics.fetch_pool_details()

    summary = details.summary
    for error in details.source_errors:
        context.log.warning(f"Source excluded: {error.url} ({error.reason})")

    context.log.info(
        f"Pool details: {summary.total_workers} workers, {summary.total_active_connections} connections, "
        f"{summary.total_pending_fees / 1e18:.6f} ETH pending, {summary.total_paid_fees / 1e18:.6f} ETH paid"
    )

    context.add_output_metadata({
        "total_workers": MetadataValue.int(summary.total_workers),
        "total_active_connections": MetadataValue.int(summary.total_active_connections),
        "total_pending_eth": MetadataValue.float(summary.total_pending_fees / 1e18),
        "total_paid_eth": MetadataValue.float(summary.total_paid_fees / 1e18),
        "worker_fee_records": MetadataValue.int(len(details.worker_fees)),
        "transcode_performance_rows": MetadataValue.int(len(details.transcode_performance)),
        "ai_performance_rows": MetadataValue.int(len(details.ai_performance)),
        "failed_sources": MetadataValue.int(len(details.source_errors)),
        "regions": MetadataValue.json(sorted(details.region_summaries)),
        "last_updated": MetadataValue.text(details.last_updated),
    })

    return details
