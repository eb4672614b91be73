# openpool_dashboard/aggregator.py
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pandas as pd
from dagster import get_dagster_logger

from openpool_dashboard.merger import MergedRecords
from openpool_dashboard.models import (
    AggregatedPool,
    AggregateSummary,
    AIPerformanceRecord,
    AIResponseRanking,
    DistributionBucket,
    FeeRanking,
    PerformanceStatistics,
    TranscodePerformanceRecord,
    TranscodeRanking,
    WorkerFeeRecord,
    WorkerRankings,
)

RANKING_SIZE = 10
COMPUTE_UNITS_STEP = 50_000_000
REAL_TIME_RATIO_STEP = 5

TRANSCODE_COLUMNS = list(TranscodePerformanceRecord.model_fields)
AI_COLUMNS = list(AIPerformanceRecord.model_fields)


# -------------------- Frames --------------------
def performance_frame(records: Sequence, columns: List[str]) -> pd.DataFrame:
    """Build a DataFrame of performance records, keeping columns when empty"""
    return pd.DataFrame([record.model_dump() for record in records], columns=columns)


def metric_values(frame: pd.DataFrame, column: str) -> pd.Series:
    """Values of a metric for the records that actually have it"""
    if frame.empty:
        return pd.Series(dtype="float64")
    return pd.to_numeric(frame[column], errors="coerce").dropna().astype("float64")


# -------------------- Statistics --------------------
def weighted_average(frame: pd.DataFrame, column: str) -> float:
    """
    Job-count weighted mean of a metric. Missing metrics count as zero and
    the job total is clamped to 1, so the result is never NaN.
    """
    if frame.empty:
        return 0.0
    values = pd.to_numeric(frame[column], errors="coerce").fillna(0)
    job_counts = pd.to_numeric(frame["job_count"], errors="coerce").fillna(0)
    return float((values * job_counts).sum() / max(job_counts.sum(), 1))


def median(values: pd.Series) -> float:
    return float(values.median()) if not values.empty else 0.0


def minimum(values: pd.Series) -> float:
    return float(values.min()) if not values.empty else 0.0


def maximum(values: pd.Series) -> float:
    return float(values.max()) if not values.empty else 0.0


def distribution(values: pd.Series, step: float) -> List[DistributionBucket]:
    """Histogram with fixed-width buckets starting at floor(value / step) * step"""
    if values.empty:
        return []
    buckets = (values // step) * step
    counts = buckets.value_counts().sort_index()
    return [
        DistributionBucket(bucket_start=float(bucket_start), count=int(count))
        for bucket_start, count in counts.items()
    ]


def performance_statistics(transcode_performance: Sequence[TranscodePerformanceRecord],
                           ai_performance: Sequence[AIPerformanceRecord]) -> PerformanceStatistics:
    """Compute pool-wide transcode and AI performance statistics"""
    transcode = performance_frame(transcode_performance, TRANSCODE_COLUMNS)
    ai = performance_frame(ai_performance, AI_COLUMNS)

    real_time_ratios = metric_values(transcode, "avg_real_time_ratio")
    mean_compute_units = metric_values(transcode, "mean_compute_units_per_second")

    # Weighted compute unit average only covers workers reporting compute units
    with_compute_units = transcode[transcode["mean_compute_units_per_second"].notna()] \
        if not transcode.empty else transcode

    return PerformanceStatistics(
        transcode_worker_count=len(transcode),
        transcode_region_count=int(transcode["region"].nunique()) if not transcode.empty else 0,
        transcode_job_count=int(transcode["job_count"].sum()) if not transcode.empty else 0,
        avg_real_time_ratio=weighted_average(transcode, "avg_real_time_ratio"),
        median_real_time_ratio=median(real_time_ratios),
        min_real_time_ratio=minimum(real_time_ratios),
        max_real_time_ratio=maximum(real_time_ratios),
        real_time_ratio_distribution=distribution(real_time_ratios, REAL_TIME_RATIO_STEP),
        avg_compute_units_per_second=weighted_average(with_compute_units, "mean_compute_units_per_second"),
        median_compute_units_per_second=median(metric_values(transcode, "median_compute_units_per_second")),
        min_compute_units_per_second=minimum(metric_values(transcode, "min_compute_units_per_second")),
        max_compute_units_per_second=maximum(metric_values(transcode, "max_compute_units_per_second")),
        compute_units_distribution=distribution(mean_compute_units, COMPUTE_UNITS_STEP),
        ai_worker_count=len(ai),
        ai_model_count=int(ai["model_id"].nunique()) if not ai.empty else 0,
        ai_job_count=int(ai["job_count"].sum()) if not ai.empty else 0,
        avg_ai_response_time=weighted_average(ai, "avg_response_time"),
    )


# -------------------- Rankings --------------------
def rank_by_fees(worker_fees: Sequence[WorkerFeeRecord]) -> List[FeeRanking]:
    """Sum total fees per address across regions and node types, highest first"""
    totals: Dict[str, int] = {}
    for record in worker_fees:
        totals[record.eth_address] = totals.get(record.eth_address, 0) + record.total_fees

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [FeeRanking(eth_address=address, total_fees=total) for address, total in ranked[:RANKING_SIZE]]


def rank_by_transcode_performance(
        transcode_performance: Sequence[TranscodePerformanceRecord]) -> List[TranscodeRanking]:
    """
    Highest real-time ratio first. Records without a ratio go last.
    """
    ranked = sorted(
        transcode_performance,
        key=lambda record: (record.avg_real_time_ratio is not None, record.avg_real_time_ratio or 0),
        reverse=True,
    )
    return [
        TranscodeRanking(eth_address=record.eth_address, avg_real_time_ratio=record.avg_real_time_ratio)
        for record in ranked[:RANKING_SIZE]
    ]


def rank_by_ai_response_time(ai_performance: Sequence[AIPerformanceRecord]) -> List[AIResponseRanking]:
    """Fastest response first. Records without a response time go last."""
    ranked = sorted(
        ai_performance,
        key=lambda record: (record.avg_response_time is None, record.avg_response_time or 0),
    )
    return [
        AIResponseRanking(
            eth_address=record.eth_address,
            model_id=record.model_id,
            avg_response_time=record.avg_response_time,
        )
        for record in ranked[:RANKING_SIZE]
    ]


# -------------------- Aggregation --------------------
def aggregate(merged: MergedRecords, now: Optional[datetime] = None) -> AggregatedPool:
    """
    Derive summaries, rankings and statistics from the merged records.
    """
    log = get_dagster_logger()

    summary = AggregateSummary.from_totals(merged.totals)
    region_summaries = {
        region: AggregateSummary.from_totals(totals)
        for region, totals in merged.region_totals.items()
    }

    rankings = WorkerRankings(
        by_fees=rank_by_fees(merged.worker_fees),
        by_transcode_performance=rank_by_transcode_performance(merged.transcode_performance),
        by_ai_response_time=rank_by_ai_response_time(merged.ai_performance),
    )
    statistics = performance_statistics(merged.transcode_performance, merged.ai_performance)

    log.info(
        f"Aggregated {summary.total_workers} workers across {len(region_summaries)} regions: "
        f"{summary.total_pending_fees / 1e18:.6f} ETH pending, {summary.total_paid_fees / 1e18:.6f} ETH paid"
    )
    log.info(
        f"Performance: {statistics.transcode_worker_count} transcode rows, "
        f"{statistics.ai_worker_count} AI rows across {statistics.ai_model_count} models"
    )

    return AggregatedPool(
        summary=summary,
        region_summaries=region_summaries,
        worker_fees=merged.worker_fees,
        worker_connections=merged.worker_connections,
        worker_rankings=rankings,
        transcode_performance=merged.transcode_performance,
        ai_performance=merged.ai_performance,
        statistics=statistics,
        last_updated=(now or datetime.now(timezone.utc)).isoformat(),
    )
