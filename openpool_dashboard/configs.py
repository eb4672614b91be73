"""
"""
import json
from typing import Dict, List, Optional

from dagster import Config, EnvVar, get_dagster_logger
from pydantic import Field

DEFAULT_ENDPOINTS = "worker_summary,worker_performance"
DEFAULT_TIMEOUT_SECONDS = 30.0


def parse_endpoints(value: Optional[str]) -> List[str]:
    """Split a comma separated endpoint list, dropping blanks"""
    if not value:
        return []
    return [endpoint.strip() for endpoint in value.split(",") if endpoint.strip()]


def parse_region_node_map(value: Optional[str]) -> Dict[str, List[str]]:
    """
    Parse the JSON mapping of regions to the node types they run,
    e.g. {"us-central": ["ai", "transcode"], "eu-central": ["transcode"]}.
    """
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        get_dagster_logger().error(f"Error parsing region node map: {str(e)}")
        return {}

    if not isinstance(parsed, dict):
        get_dagster_logger().error(f"Region node map must be a JSON object, got {type(parsed).__name__}")
        return {}

    region_node_map = {}
    for region, node_types in parsed.items():
        if isinstance(node_types, str):
            node_types = [node_types]
        if not isinstance(node_types, list):
            get_dagster_logger().warning(f"Ignoring region {region}: node types must be a list")
            continue
        region_node_map[str(region)] = [str(node_type) for node_type in node_types]
    return region_node_map


def parse_timeout(value: Optional[str], default: float = DEFAULT_TIMEOUT_SECONDS) -> float:
    """Request timeout in seconds, falling back to the default when unparseable"""
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        get_dagster_logger().error(f"Invalid request timeout {value!r}, using {default} seconds")
        return default


def parse_max_concurrency(value: Optional[str]) -> Optional[int]:
    """Concurrent request limit, unbounded when unset or unparseable"""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        get_dagster_logger().error(f"Invalid max concurrency {value!r}, requests will not be limited")
        return None

# -------------------- Configuration --------------------

class DashboardConfig(Config):
    """Configuration for the pool metrics source"""
    base_url: str = Field(
        default_factory=lambda: EnvVar("POOL_METRICS_BASE_URL").get_value("")
    )
    endpoints: List[str] = Field(
        default_factory=lambda: parse_endpoints(EnvVar("POOL_METRICS_ENDPOINTS").get_value(DEFAULT_ENDPOINTS))
    )
    region_node_map: Dict[str, List[str]] = Field(
        default_factory=lambda: parse_region_node_map(EnvVar("POOL_REGION_NODE_MAP").get_value("{}"))
    )
    request_timeout_seconds: float = Field(
        default_factory=lambda: parse_timeout(EnvVar("POOL_METRICS_TIMEOUT_SECONDS").get_value(""))
    )
    max_concurrent_requests: Optional[int] = Field(
        default_factory=lambda: parse_max_concurrency(EnvVar("POOL_METRICS_MAX_CONCURRENCY").get_value(""))
    )
