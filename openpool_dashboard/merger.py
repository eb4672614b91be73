"""
Fold per-source record deltas into one pool model.
"""
from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict

from openpool_dashboard.models import (
    AIPerformanceRecord,
    RecordDelta,
    SummaryTotals,
    TranscodePerformanceRecord,
    WorkerConnectionRecord,
    WorkerFeeRecord,
)

Identity = Tuple[str, str, str]


class MergedRecords(BaseModel):
    """Deduplicated worker records and summed totals from all sources"""
    model_config = ConfigDict(frozen=True)

    worker_fees: List[WorkerFeeRecord] = []
    worker_connections: List[WorkerConnectionRecord] = []
    transcode_performance: List[TranscodePerformanceRecord] = []
    ai_performance: List[AIPerformanceRecord] = []
    totals: SummaryTotals = SummaryTotals()
    region_totals: Dict[str, SummaryTotals] = {}


def merge_deltas(deltas: Iterable[RecordDelta]) -> MergedRecords:
    """
    Combine deltas in order. Fee and connection records are unique per
    (eth_address, region, node_type): the first record seen for an identity
    is kept and later ones are discarded. Performance rows are all kept.
    """
    worker_fees: Dict[Identity, WorkerFeeRecord] = {}
    worker_connections: Dict[Identity, WorkerConnectionRecord] = {}
    transcode_performance: List[TranscodePerformanceRecord] = []
    ai_performance: List[AIPerformanceRecord] = []
    totals = SummaryTotals()
    region_totals: Dict[str, SummaryTotals] = {}

    for delta in deltas:
        for record in delta.worker_fees:
            worker_fees.setdefault(record.identity, record)
        for record in delta.worker_connections:
            worker_connections.setdefault(record.identity, record)

        transcode_performance.extend(delta.transcode_performance)
        ai_performance.extend(delta.ai_performance)

        totals = totals + delta.totals
        region = delta.target.region
        region_totals[region] = region_totals.get(region, SummaryTotals()) + delta.totals

    return MergedRecords(
        worker_fees=list(worker_fees.values()),
        worker_connections=list(worker_connections.values()),
        transcode_performance=transcode_performance,
        ai_performance=ai_performance,
        totals=totals,
        region_totals=region_totals,
    )
