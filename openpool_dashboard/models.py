from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# -------------------- Constants --------------------
TRANSCODE_NODE_TYPE = "transcode"
AI_NODE_TYPE = "ai"

# Sentinel for string fields missing from a payload
UNKNOWN = "unknown"

Number = Union[int, float]


class EndpointKind(str, Enum):
    """Kind of metrics file published per region/node type"""
    WORKER_SUMMARY = "worker_summary"
    WORKER_PERFORMANCE = "worker_performance"
    UNKNOWN = "unknown"

    @classmethod
    def from_endpoint(cls, endpoint: str) -> "EndpointKind":
        """Decode an endpoint name, falling back to UNKNOWN"""
        try:
            return cls(endpoint)
        except ValueError:
            return cls.UNKNOWN


# -------------------- Fetching --------------------
class FetchTarget(BaseModel):
    """One metrics file to fetch: a region, a node type and an endpoint"""
    model_config = ConfigDict(frozen=True)

    region: str
    node_type: str
    endpoint: str

    @property
    def kind(self) -> EndpointKind:
        return EndpointKind.from_endpoint(self.endpoint)

    @property
    def label(self) -> str:
        return f"{self.region}/{self.node_type}/{self.endpoint}"


class FetchError(BaseModel):
    """Why a single target could not be fetched"""
    model_config = ConfigDict(frozen=True)

    url: str
    reason: str
    status_code: Optional[int] = None


class FetchResult(BaseModel):
    """
    Outcome of fetching one target. Either payload or error is set.
    """
    model_config = ConfigDict(frozen=True)

    target: FetchTarget
    url: str
    payload: Any = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, target: FetchTarget, url: str, payload: Any) -> "FetchResult":
        return cls(target=target, url=url, payload=payload)

    @classmethod
    def failure(cls, target: FetchTarget, url: str, reason: str,
                status_code: Optional[int] = None) -> "FetchResult":
        return cls(
            target=target,
            url=url,
            error=FetchError(url=url, reason=reason, status_code=status_code)
        )


# -------------------- Worker Records --------------------
class WorkerFeeRecord(BaseModel):
    """Fee state of a worker in one region and node type (values in wei)"""
    model_config = ConfigDict(frozen=True)

    eth_address: str
    node_type: str
    region: str
    pending_fees: int = 0
    paid_fees: int = 0
    total_fees: int = 0

    @property
    def identity(self) -> Tuple[str, str, str]:
        return self.eth_address, self.region, self.node_type


class WorkerConnectionRecord(BaseModel):
    """Connection count of a worker in one region and node type"""
    model_config = ConfigDict(frozen=True)

    eth_address: str
    node_type: str
    region: str
    connection_count: int = Field(default=0, ge=0)

    @property
    def identity(self) -> Tuple[str, str, str]:
        return self.eth_address, self.region, self.node_type


class TranscodePerformanceRecord(BaseModel):
    """
    Transcode performance of a worker as published by the pool.
    Metrics missing from the source are None.
    They are serialized as null, the key is always present.
    """
    model_config = ConfigDict(frozen=True)

    eth_address: str
    region: str
    node_type: str = TRANSCODE_NODE_TYPE
    job_count: int = 0
    avg_real_time_ratio: Optional[Number] = None
    avg_response_time: Optional[Number] = None
    median_compute_units_per_second: Optional[Number] = None
    mean_compute_units_per_second: Optional[Number] = None
    min_compute_units_per_second: Optional[Number] = None
    max_compute_units_per_second: Optional[Number] = None
    total_compute_units: Optional[Number] = None
    total_fees: Optional[Number] = None


class AIPerformanceRecord(BaseModel):
    """AI inference performance of a worker for one model/pipeline"""
    model_config = ConfigDict(frozen=True)

    eth_address: str
    region: str
    node_type: str = AI_NODE_TYPE
    model_id: str = UNKNOWN
    pipeline: str = UNKNOWN
    avg_response_time: Optional[Number] = None
    job_count: int = 0


# -------------------- Summaries --------------------
class SummaryTotals(BaseModel):
    """Raw (pre-division) pool totals"""
    model_config = ConfigDict(frozen=True)

    total_workers: int = 0
    total_active_connections: int = 0
    total_pending_fees: int = 0
    total_paid_fees: int = 0

    def __add__(self, other: "SummaryTotals") -> "SummaryTotals":
        return SummaryTotals(
            total_workers=self.total_workers + other.total_workers,
            total_active_connections=self.total_active_connections + other.total_active_connections,
            total_pending_fees=self.total_pending_fees + other.total_pending_fees,
            total_paid_fees=self.total_paid_fees + other.total_paid_fees,
        )


class AggregateSummary(SummaryTotals):
    """Pool totals with per-worker averages"""
    average_pending_per_worker: float = 0
    average_paid_per_worker: float = 0

    @classmethod
    def from_totals(cls, totals: SummaryTotals) -> "AggregateSummary":
        """Compute per-worker averages, zero when there are no workers"""
        workers = totals.total_workers
        return cls(
            total_workers=workers,
            total_active_connections=totals.total_active_connections,
            total_pending_fees=totals.total_pending_fees,
            total_paid_fees=totals.total_paid_fees,
            average_pending_per_worker=totals.total_pending_fees / workers if workers > 0 else 0,
            average_paid_per_worker=totals.total_paid_fees / workers if workers > 0 else 0,
        )


class RecordDelta(BaseModel):
    """Everything one fetch result contributes to the pool model"""
    model_config = ConfigDict(frozen=True)

    target: FetchTarget
    worker_fees: List[WorkerFeeRecord] = []
    worker_connections: List[WorkerConnectionRecord] = []
    transcode_performance: List[TranscodePerformanceRecord] = []
    ai_performance: List[AIPerformanceRecord] = []
    totals: SummaryTotals = SummaryTotals()


# -------------------- Rankings & Statistics --------------------
class FeeRanking(BaseModel):
    model_config = ConfigDict(frozen=True)

    eth_address: str
    total_fees: int = 0


class TranscodeRanking(BaseModel):
    model_config = ConfigDict(frozen=True)

    eth_address: str
    avg_real_time_ratio: Optional[Number] = None


class AIResponseRanking(BaseModel):
    model_config = ConfigDict(frozen=True)

    eth_address: str
    model_id: str = UNKNOWN
    avg_response_time: Optional[Number] = None


class WorkerRankings(BaseModel):
    """Top workers by fees, transcode speed and AI response time"""
    model_config = ConfigDict(frozen=True)

    by_fees: List[FeeRanking] = []
    by_transcode_performance: List[TranscodeRanking] = []
    by_ai_response_time: List[AIResponseRanking] = []


class DistributionBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket_start: float
    count: int


class PerformanceStatistics(BaseModel):
    """Pool-wide performance statistics derived from the performance records"""
    model_config = ConfigDict(frozen=True)

    transcode_worker_count: int = 0
    transcode_region_count: int = 0
    transcode_job_count: int = 0
    avg_real_time_ratio: float = 0
    median_real_time_ratio: float = 0
    min_real_time_ratio: float = 0
    max_real_time_ratio: float = 0
    real_time_ratio_distribution: List[DistributionBucket] = []
    avg_compute_units_per_second: float = 0
    median_compute_units_per_second: float = 0
    min_compute_units_per_second: float = 0
    max_compute_units_per_second: float = 0
    compute_units_distribution: List[DistributionBucket] = []
    ai_worker_count: int = 0
    ai_model_count: int = 0
    ai_job_count: int = 0
    avg_ai_response_time: float = 0


# -------------------- Pool Details --------------------
class AggregatedPool(BaseModel):
    """Merged and aggregated pool model, before UI projection"""
    model_config = ConfigDict(frozen=True)

    summary: AggregateSummary = AggregateSummary()
    region_summaries: Dict[str, AggregateSummary] = {}
    worker_fees: List[WorkerFeeRecord] = []
    worker_connections: List[WorkerConnectionRecord] = []
    worker_rankings: WorkerRankings = WorkerRankings()
    transcode_performance: List[TranscodePerformanceRecord] = []
    ai_performance: List[AIPerformanceRecord] = []
    statistics: PerformanceStatistics = PerformanceStatistics()
    last_updated: str


class UIViews(BaseModel):
    """Display-ready projections, one per dashboard tab"""
    model_config = ConfigDict(frozen=True)

    overview: Dict[str, Any]
    transcode: Dict[str, Any]
    ai: Dict[str, Any]
    workers: Dict[str, Any]


class PoolDetails(AggregatedPool):
    """
    The object handed to dashboard consumers.
    """
    ui: UIViews
    source_errors: List[FetchError] = []

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary"""
        return self.model_dump(mode="json")
