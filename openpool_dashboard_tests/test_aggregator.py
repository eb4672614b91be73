import math
from datetime import datetime, timezone

from openpool_dashboard.aggregator import (
    aggregate,
    performance_statistics,
    rank_by_ai_response_time,
    rank_by_fees,
    rank_by_transcode_performance,
)
from openpool_dashboard.merger import MergedRecords
from openpool_dashboard.models import (
    AIPerformanceRecord,
    DistributionBucket,
    SummaryTotals,
    TranscodePerformanceRecord,
    WorkerFeeRecord,
)
from openpool_dashboard_tests.payloads import ETH, WORKER_A, WORKER_B, WORKER_C


def transcode(address, ratio, jobs, region="us-central", **kwargs):
    return TranscodePerformanceRecord(
        eth_address=address, region=region, job_count=jobs, avg_real_time_ratio=ratio, **kwargs
    )


def test_summary_averages():
    merged = MergedRecords(totals=SummaryTotals(
        total_workers=4, total_active_connections=6, total_pending_fees=2 * ETH, total_paid_fees=8 * ETH
    ))

    summary = aggregate(merged).summary

    assert summary.total_workers == 4
    assert summary.average_pending_per_worker == ETH / 2
    assert summary.average_paid_per_worker == 2 * ETH


def test_summary_averages_are_zero_without_workers():
    merged = MergedRecords(
        totals=SummaryTotals(total_pending_fees=ETH, total_paid_fees=ETH),
        region_totals={"us-central": SummaryTotals(total_pending_fees=ETH)},
    )

    pool = aggregate(merged)

    assert pool.summary.average_pending_per_worker == 0
    assert pool.summary.average_paid_per_worker == 0
    assert pool.region_summaries["us-central"].average_pending_per_worker == 0


def test_fee_ranking_sums_across_identities():
    records = [
        WorkerFeeRecord(eth_address=WORKER_A, region="us-central", node_type="transcode", total_fees=ETH),
        WorkerFeeRecord(eth_address=WORKER_B, region="us-central", node_type="transcode", total_fees=3 * ETH),
        WorkerFeeRecord(eth_address=WORKER_A, region="eu-central", node_type="transcode", total_fees=4 * ETH),
    ]

    ranking = rank_by_fees(records)

    assert [(r.eth_address, r.total_fees) for r in ranking] == [(WORKER_A, 5 * ETH), (WORKER_B, 3 * ETH)]


def test_rankings_keep_top_ten():
    records = [
        WorkerFeeRecord(eth_address=f"0x{i:040x}", region="us-central", node_type="transcode", total_fees=i)
        for i in range(15)
    ]

    ranking = rank_by_fees(records)

    assert len(ranking) == 10
    assert [r.total_fees for r in ranking] == list(range(14, 4, -1))


def test_transcode_ranking_highest_ratio_first():
    records = [transcode(f"0x{i:040x}", float(i % 7), 1) for i in range(12)]
    records.append(transcode(WORKER_A, None, 5))

    ranking = rank_by_transcode_performance(records)

    ratios = [r.avg_real_time_ratio for r in ranking]
    assert len(ranking) == 10
    assert ratios == sorted(ratios, reverse=True)
    assert ratios[0] == 6.0


def test_transcode_ranking_puts_missing_ratio_last():
    ranking = rank_by_transcode_performance([transcode(WORKER_A, None, 1), transcode(WORKER_B, 0.5, 1)])
    assert [r.eth_address for r in ranking] == [WORKER_B, WORKER_A]


def test_ai_ranking_fastest_first():
    records = [
        AIPerformanceRecord(eth_address=WORKER_A, region="us-central", model_id="m/a", avg_response_time=3e9),
        AIPerformanceRecord(eth_address=WORKER_B, region="us-central", model_id="m/b", avg_response_time=1e9),
        AIPerformanceRecord(eth_address=WORKER_C, region="us-central", model_id="m/c", avg_response_time=None),
    ]

    ranking = rank_by_ai_response_time(records)

    assert [(r.eth_address, r.model_id) for r in ranking] == [(WORKER_B, "m/b"), (WORKER_A, "m/a"), (WORKER_C, "m/c")]


def test_weighted_averages():
    stats = performance_statistics(
        [
            transcode(WORKER_A, 10.0, 3, mean_compute_units_per_second=100.0),
            transcode(WORKER_B, 2.0, 1, region="eu-central"),
        ],
        [
            AIPerformanceRecord(eth_address=WORKER_A, region="us-central", model_id="m/a",
                                avg_response_time=100.0, job_count=1),
            AIPerformanceRecord(eth_address=WORKER_B, region="us-central", model_id="m/a",
                                avg_response_time=400.0, job_count=3),
        ],
    )

    assert stats.avg_real_time_ratio == 8.0
    # only the worker reporting compute units is weighted
    assert stats.avg_compute_units_per_second == 100.0
    assert stats.avg_ai_response_time == 325.0
    assert stats.transcode_worker_count == 2
    assert stats.transcode_region_count == 2
    assert stats.transcode_job_count == 4
    assert stats.ai_worker_count == 2
    assert stats.ai_model_count == 1
    assert stats.ai_job_count == 4


def test_weighted_average_with_zero_jobs_is_zero():
    stats = performance_statistics(
        [transcode(WORKER_A, 10.0, 0), transcode(WORKER_B, 4.0, 0)],
        [AIPerformanceRecord(eth_address=WORKER_A, region="us-central", avg_response_time=5.0, job_count=0)],
    )

    assert stats.avg_real_time_ratio == 0
    assert stats.avg_ai_response_time == 0
    assert not math.isnan(stats.avg_real_time_ratio)


def test_median_min_max_use_records_with_the_metric():
    stats = performance_statistics(
        [
            transcode(WORKER_A, 1.0, 1, median_compute_units_per_second=10.0, min_compute_units_per_second=2.0),
            transcode(WORKER_B, 4.0, 1, median_compute_units_per_second=30.0, max_compute_units_per_second=90.0),
            transcode(WORKER_C, None, 1),
            transcode(WORKER_C, 9.0, 1),
            transcode(WORKER_C, 6.0, 1),
        ],
        [],
    )

    assert stats.median_real_time_ratio == 5.0
    assert stats.min_real_time_ratio == 1.0
    assert stats.max_real_time_ratio == 9.0
    assert stats.median_compute_units_per_second == 20.0
    assert stats.min_compute_units_per_second == 2.0
    assert stats.max_compute_units_per_second == 90.0


def test_distributions():
    records = [
        transcode(WORKER_A, 0.5, 1, mean_compute_units_per_second=10_000_000),
        transcode(WORKER_B, 4.99, 1, mean_compute_units_per_second=49_999_999),
        transcode(WORKER_C, 12.0, 1, mean_compute_units_per_second=175_000_000),
        transcode(WORKER_C, 5.0, 1),
        transcode(WORKER_C, None, 1),
    ]

    stats = performance_statistics(records, [])

    assert stats.real_time_ratio_distribution == [
        DistributionBucket(bucket_start=0, count=2),
        DistributionBucket(bucket_start=5, count=1),
        DistributionBucket(bucket_start=10, count=1),
    ]
    assert stats.compute_units_distribution == [
        DistributionBucket(bucket_start=0, count=2),
        DistributionBucket(bucket_start=150_000_000, count=1),
    ]
    assert sum(b.count for b in stats.real_time_ratio_distribution) == 4
    assert sum(b.count for b in stats.compute_units_distribution) == 3


def test_empty_statistics():
    stats = performance_statistics([], [])

    assert stats.avg_real_time_ratio == 0
    assert stats.median_compute_units_per_second == 0
    assert stats.real_time_ratio_distribution == []
    assert stats.compute_units_distribution == []
    assert stats.ai_model_count == 0


def test_aggregate_timestamps_completion():
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert aggregate(MergedRecords(), now=now).last_updated == "2025-03-01T12:00:00+00:00"


def test_ai_ranking_keeps_top_ten():
    records = [
        AIPerformanceRecord(eth_address=f"0x{i:040x}", region="us-central", model_id="m/a",
                            avg_response_time=float(15 - i), job_count=1)
        for i in range(15)
    ]

    ranking = rank_by_ai_response_time(records)

    assert len(ranking) == 10
    assert [r.avg_response_time for r in ranking] == [float(t) for t in range(1, 11)]
