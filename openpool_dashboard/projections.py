# openpool_dashboard/projections.py
"""
Display-ready views of the aggregated pool, one per dashboard tab.

Every function here is a pure projection: it reads the aggregated pool and
builds new dictionaries, so views can be rebuilt or cached freely.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from openpool_dashboard.formatting import (
    format_bucket,
    format_count,
    format_eth,
    format_fixed,
    format_time,
    shorten_address,
    short_model_name,
    wei_to_eth,
)
from openpool_dashboard.models import (
    UNKNOWN,
    AggregatedPool,
    AIPerformanceRecord,
    DistributionBucket,
    TranscodePerformanceRecord,
    UIViews,
)

MISSING = "-"
UNKNOWN_MODEL = "Unknown Model"


def group_by_property(records: Sequence, prop: str) -> List[Dict[str, Any]]:
    """Group records by a field into chart-ready {name, count, items} entries"""
    grouped: Dict[str, List[dict]] = {}
    for record in records:
        grouped.setdefault(getattr(record, prop), []).append(record.model_dump())
    return [{"name": name, "count": len(items), "items": items} for name, items in grouped.items()]


def distribution_chart(buckets: Sequence[DistributionBucket], scale: float = 1) -> List[Dict[str, Any]]:
    return [{"name": format_bucket(bucket.bucket_start, scale), "count": bucket.count} for bucket in buckets]


# -------------------- Overview --------------------
def build_overview(pool: AggregatedPool) -> Dict[str, Any]:
    region_fees: Dict[str, Dict[str, Any]] = {}
    for worker in pool.worker_fees:
        fees = region_fees.setdefault(worker.region, {"name": worker.region, "pending": 0, "paid": 0, "total": 0})
        fees["pending"] += worker.pending_fees
        fees["paid"] += worker.paid_fees
        fees["total"] += worker.total_fees

    region_fees_chart_data = [
        {
            "name": fees["name"],
            "pending": round(wei_to_eth(fees["pending"]), 4),
            "paid": round(wei_to_eth(fees["paid"]), 4),
            "total": round(wei_to_eth(fees["total"]), 4),
        }
        for fees in region_fees.values()
    ]

    summary = pool.summary
    return {
        "region_data": group_by_property(pool.worker_connections, "region"),
        "node_type_data": group_by_property(pool.worker_connections, "node_type"),
        "region_fees_chart_data": region_fees_chart_data,
        "summary": {
            "total_workers": summary.total_workers,
            "total_active_connections": summary.total_active_connections,
            "total_pending_fees_formatted": format_eth(summary.total_pending_fees),
            "total_paid_fees_formatted": format_eth(summary.total_paid_fees),
            "average_pending_per_worker_formatted": format_eth(summary.average_pending_per_worker),
            "average_paid_per_worker_formatted": format_eth(summary.average_paid_per_worker),
        },
        "top_workers_by_fees": [
            {
                "eth_address": worker.eth_address,
                "total_fees": worker.total_fees,
                "formatted_total_fees": format_eth(worker.total_fees),
                "shortened_address": shorten_address(worker.eth_address),
            }
            for worker in pool.worker_rankings.by_fees
        ],
    }


# -------------------- Transcode --------------------
def _find_transcode(pool: AggregatedPool, eth_address: str) -> Optional[TranscodePerformanceRecord]:
    return next((p for p in pool.transcode_performance if p.eth_address == eth_address), None)


def group_transcode_by_region(rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per region job-weighted real-time ratio and response time"""
    regions: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        region = regions.setdefault(row["name"], {
            "name": row["name"],
            "job_count": 0,
            "weighted_ratio": 0.0,
            "weighted_response_time": 0.0,
            "workers": [],
        })
        region["job_count"] += row["job_count"]
        region["weighted_ratio"] += row["real_time_ratio"] * row["job_count"]
        region["weighted_response_time"] += row["response_time"] * row["job_count"]
        region["workers"].append({
            "address": row["address"],
            "job_count": row["job_count"],
            "real_time_ratio": row["real_time_ratio"],
            "response_time": row["response_time"],
        })

    grouped = []
    for region in regions.values():
        jobs = max(region["job_count"], 1)
        grouped.append({
            "name": region["name"],
            "real_time_ratio": round(region["weighted_ratio"] / jobs, 2),
            "response_time": round(region["weighted_response_time"] / jobs, 2),
            "job_count": region["job_count"],
            "workers": region["workers"],
        })
    return grouped


def top_transcode_performers(pool: AggregatedPool) -> List[Dict[str, Any]]:
    """Best ranking entry per address, highest real-time ratio first"""
    best: Dict[str, Tuple[float, Dict[str, Any]]] = {}
    for worker in pool.worker_rankings.by_transcode_performance:
        ratio = worker.avg_real_time_ratio or 0
        if worker.eth_address in best and ratio <= best[worker.eth_address][0]:
            continue
        perf = _find_transcode(pool, worker.eth_address)
        best[worker.eth_address] = (ratio, {
            "eth_address": worker.eth_address,
            "region": perf.region if perf else MISSING,
            "job_count": perf.job_count if perf else 0,
        })

    ranked = sorted(best.values(), key=lambda item: item[0], reverse=True)
    return [
        {
            "rank": index + 1,
            "region": worker["region"],
            "address": shorten_address(worker["eth_address"]),
            "speed": format_fixed(ratio),
            "job_count": format_count(worker["job_count"]),
        }
        for index, (ratio, worker) in enumerate(ranked)
    ]


def build_transcode(pool: AggregatedPool) -> Dict[str, Any]:
    rows = [
        {
            "name": item.region,
            "real_time_ratio": round(item.avg_real_time_ratio or 0, 2),
            "response_time": round(item.avg_response_time or 0, 2),
            "job_count": item.job_count,
            "address": shorten_address(item.eth_address),
        }
        for item in pool.transcode_performance
    ]

    stats = pool.statistics
    return {
        "grouped_by_region": group_transcode_by_region(rows),
        "metrics": {
            "total_workers": stats.transcode_worker_count,
            "total_regions": stats.transcode_region_count,
            "total_jobs": stats.transcode_job_count,
            "avg_real_time_ratio": format_fixed(stats.avg_real_time_ratio),
            "median_real_time_ratio": format_fixed(stats.median_real_time_ratio),
            "min_real_time_ratio": format_fixed(stats.min_real_time_ratio),
            "max_real_time_ratio": format_fixed(stats.max_real_time_ratio),
            "real_time_ratio_distribution": distribution_chart(stats.real_time_ratio_distribution),
            "avg_compute_units_per_second": stats.avg_compute_units_per_second,
            "median_compute_units_per_second": stats.median_compute_units_per_second,
            "min_compute_units_per_second": stats.min_compute_units_per_second,
            "max_compute_units_per_second": stats.max_compute_units_per_second,
            # Compute unit buckets are labelled in millions
            "compute_units_distribution": distribution_chart(stats.compute_units_distribution, 1_000_000),
        },
        "top_performers": top_transcode_performers(pool),
    }


# -------------------- AI --------------------
def _find_ai(pool: AggregatedPool, eth_address: str, model_id: str) -> Optional[AIPerformanceRecord]:
    return next(
        (p for p in pool.ai_performance if p.eth_address == eth_address and p.model_id == model_id),
        None
    )


def build_ai(pool: AggregatedPool) -> Dict[str, Any]:
    ai_performance_data = [
        {
            "name": short_model_name(item.model_id if item.model_id != UNKNOWN else None, UNKNOWN_MODEL),
            # nanoseconds to seconds
            "response_time": round((item.avg_response_time or 0) / 1e9, 2),
            "job_count": item.job_count,
            "address": shorten_address(item.eth_address),
            "region": item.region,
            "pipeline": item.pipeline,
        }
        for item in pool.ai_performance
    ]

    rankings = []
    for index, worker in enumerate(pool.worker_rankings.by_ai_response_time):
        perf = _find_ai(pool, worker.eth_address, worker.model_id)
        rankings.append({
            "rank": index + 1,
            "model_name": short_model_name(worker.model_id if worker.model_id != UNKNOWN else None, MISSING),
            "pipeline": perf.pipeline if perf else MISSING,
            "region": perf.region if perf else MISSING,
            "address": shorten_address(worker.eth_address),
            "response_time": format_time(worker.avg_response_time or 0),
            "job_count": format_count(perf.job_count if perf else 0),
        })

    stats = pool.statistics
    return {
        "ai_performance_data": ai_performance_data,
        "metrics": {
            "total_ai_workers": stats.ai_worker_count,
            "total_models": stats.ai_model_count,
            "total_jobs": stats.ai_job_count,
            "avg_response_time": format_time(stats.avg_ai_response_time),
        },
        "rankings": rankings,
    }


# -------------------- Workers --------------------
def _worker_row(eth_address: str, node_type: str, region: str, pending_fees: int, paid_fees: int,
                total_fees: int, connection_count: int) -> Dict[str, Any]:
    return {
        "eth_address": eth_address,
        "node_type": node_type,
        "region": region,
        "pending_fees": pending_fees,
        "paid_fees": paid_fees,
        "total_fees": total_fees,
        "connection_count": connection_count,
        "pending_fees_formatted": format_eth(pending_fees),
        "paid_fees_formatted": format_eth(paid_fees),
        "total_fees_formatted": format_eth(total_fees),
        "shortened_address": shorten_address(eth_address),
    }


def build_workers(pool: AggregatedPool) -> Dict[str, Any]:
    """Fee and connection records joined on (eth_address, region, node_type)"""
    workers: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
    for worker in pool.worker_fees:
        workers[worker.identity] = _worker_row(
            worker.eth_address, worker.node_type, worker.region,
            worker.pending_fees, worker.paid_fees, worker.total_fees, 0
        )

    for worker in pool.worker_connections:
        if worker.identity in workers:
            workers[worker.identity]["connection_count"] = worker.connection_count
        else:
            workers[worker.identity] = _worker_row(
                worker.eth_address, worker.node_type, worker.region, 0, 0, 0, worker.connection_count
            )

    all_workers = list(workers.values())
    return {
        "workers_by_fees": sorted(all_workers, key=lambda w: w["total_fees"], reverse=True),
        "workers_by_connections": sorted(all_workers, key=lambda w: w["connection_count"], reverse=True),
    }


def build_ui_views(pool: AggregatedPool) -> UIViews:
    """Project the aggregated pool into the four dashboard views"""
    return UIViews(
        overview=build_overview(pool),
        transcode=build_transcode(pool),
        ai=build_ai(pool),
        workers=build_workers(pool),
    )
