"""
Turn raw metrics payloads into typed worker and performance records.
"""
import math
from typing import Any, Callable, Dict, List, Optional

from dagster import get_dagster_logger

from openpool_dashboard.models import (
    AI_NODE_TYPE,
    TRANSCODE_NODE_TYPE,
    UNKNOWN,
    AIPerformanceRecord,
    EndpointKind,
    FetchResult,
    FetchTarget,
    Number,
    RecordDelta,
    SummaryTotals,
    TranscodePerformanceRecord,
    WorkerConnectionRecord,
    WorkerFeeRecord,
)


def as_metric(value: Any) -> Optional[Number]:
    """Pass finite numbers through unchanged, anything else becomes None"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def as_int(value: Any) -> int:
    """Coerce a count or wei amount, defaulting to 0"""
    metric = as_metric(value)
    return int(metric) if metric is not None else 0


def as_str(value: Any, default: str = UNKNOWN) -> str:
    if isinstance(value, str) and value:
        return value
    return default


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _rows(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


def parse_worker_summary(target: FetchTarget, payload: Any) -> RecordDelta:
    """Worker fee and connection state plus the partition aggregates"""
    data = _mapping(_mapping(payload).get("data"))
    workers = data.get("workers")
    if not isinstance(workers, dict):
        get_dagster_logger().warning(f"[{target.region}/{target.node_type}] No workers in worker summary")
        return RecordDelta(target=target)

    worker_fees = []
    worker_connections = []
    for worker in workers.values():
        if not isinstance(worker, dict):
            continue

        eth_address = as_str(worker.get("eth_address"))
        region = as_str(worker.get("region"), target.region)
        node_type = as_str(worker.get("node_type"), target.node_type)

        worker_fees.append(WorkerFeeRecord(
            eth_address=eth_address,
            node_type=node_type,
            region=region,
            pending_fees=as_int(worker.get("pending_fees")),
            paid_fees=as_int(worker.get("total_fees_paid")),
            total_fees=as_int(worker.get("total_fees")),
        ))
        worker_connections.append(WorkerConnectionRecord(
            eth_address=eth_address,
            node_type=node_type,
            region=region,
            connection_count=max(as_int(worker.get("connection_count")), 0),
        ))

    aggregates = _mapping(data.get("aggregates"))
    totals = SummaryTotals(
        total_workers=as_int(aggregates.get("total_workers")),
        total_active_connections=as_int(aggregates.get("total_connections")),
        total_pending_fees=as_int(aggregates.get("total_pending_fees")),
        total_paid_fees=as_int(aggregates.get("total_fees_paid")),
    )

    return RecordDelta(
        target=target,
        worker_fees=worker_fees,
        worker_connections=worker_connections,
        totals=totals,
    )


def parse_worker_performance(target: FetchTarget, payload: Any) -> RecordDelta:
    """Transcode or AI performance rows, depending on the target's node type"""
    payload = _mapping(payload)

    if target.node_type == TRANSCODE_NODE_TYPE:
        transcode_performance = [
            TranscodePerformanceRecord(
                eth_address=as_str(row.get("worker_address")),
                region=target.region,
                node_type=target.node_type,
                job_count=as_int(row.get("job_count")),
                avg_real_time_ratio=as_metric(row.get("mean_real_time_ratio")),
                avg_response_time=as_metric(row.get("mean_response_time")),
                median_compute_units_per_second=as_metric(row.get("median_compute_units_per_second")),
                mean_compute_units_per_second=as_metric(row.get("mean_compute_units_per_second")),
                min_compute_units_per_second=as_metric(row.get("min_compute_units_per_second")),
                max_compute_units_per_second=as_metric(row.get("max_compute_units_per_second")),
                total_compute_units=as_metric(row.get("total_compute_units")),
                total_fees=as_metric(row.get("total_fees")),
            )
            for row in _rows(payload.get("transcode_performance"))
        ]
        return RecordDelta(target=target, transcode_performance=transcode_performance)

    if target.node_type == AI_NODE_TYPE:
        ai_performance = [
            AIPerformanceRecord(
                eth_address=as_str(row.get("worker_address")),
                region=target.region,
                node_type=target.node_type,
                model_id=as_str(row.get("model_id")),
                pipeline=as_str(row.get("pipeline")),
                avg_response_time=as_metric(row.get("mean_response_time")),
                job_count=as_int(row.get("job_count")),
            )
            for row in _rows(payload.get("ai_performance"))
        ]
        return RecordDelta(target=target, ai_performance=ai_performance)

    get_dagster_logger().warning(
        f"[{target.region}/{target.node_type}] Unknown node type for worker performance, skipping"
    )
    return RecordDelta(target=target)


_PARSERS: Dict[EndpointKind, Callable[[FetchTarget, Any], RecordDelta]] = {
    EndpointKind.WORKER_SUMMARY: parse_worker_summary,
    EndpointKind.WORKER_PERFORMANCE: parse_worker_performance,
}


def normalize(target: FetchTarget, payload: Any) -> RecordDelta:
    """Parse a payload with the parser for the target's endpoint kind"""
    parser = _PARSERS.get(target.kind)
    if parser is None:
        get_dagster_logger().debug(f"Ignoring unknown endpoint {target.endpoint}")
        return RecordDelta(target=target)
    return parser(target, payload)


def normalize_result(result: FetchResult) -> Optional[RecordDelta]:
    """Normalize a successful fetch result, None for failed ones"""
    if not result.ok:
        return None
    return normalize(result.target, result.payload)


def normalize_results(results: List[FetchResult]) -> List[RecordDelta]:
    deltas = []
    for result in results:
        delta = normalize_result(result)
        if delta is not None:
            deltas.append(delta)
    return deltas
