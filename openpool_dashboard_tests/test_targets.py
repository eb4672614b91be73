from openpool_dashboard.models import EndpointKind, FetchTarget
from openpool_dashboard.targets import (
    build_fetch_targets,
    derive_node_types,
    derive_regions,
    node_types_for_region,
)

REGION_NODE_MAP = {
    "us-central": ["ai", "transcode"],
    "eu-central": ["transcode"],
    "oceania": [],
}
ENDPOINTS = ["worker_summary", "worker_performance"]


def test_targets_cross_regions_node_types_and_endpoints():
    targets = build_fetch_targets(REGION_NODE_MAP, ENDPOINTS)

    assert targets == [
        FetchTarget(region="us-central", node_type="ai", endpoint="worker_summary"),
        FetchTarget(region="us-central", node_type="ai", endpoint="worker_performance"),
        FetchTarget(region="us-central", node_type="transcode", endpoint="worker_summary"),
        FetchTarget(region="us-central", node_type="transcode", endpoint="worker_performance"),
        FetchTarget(region="eu-central", node_type="transcode", endpoint="worker_summary"),
        FetchTarget(region="eu-central", node_type="transcode", endpoint="worker_performance"),
    ]


def test_targets_empty_without_configuration():
    assert build_fetch_targets({}, ENDPOINTS) == []
    assert build_fetch_targets(None, ENDPOINTS) == []
    assert build_fetch_targets(REGION_NODE_MAP, []) == []
    assert build_fetch_targets(REGION_NODE_MAP, None) == []


def test_blank_endpoints_are_skipped():
    targets = build_fetch_targets({"us-west": ["transcode"]}, ["worker_summary", " ", ""])
    assert [t.endpoint for t in targets] == ["worker_summary"]


def test_region_and_node_type_derivation():
    assert derive_regions(REGION_NODE_MAP) == ["us-central", "eu-central", "oceania"]
    assert derive_node_types(REGION_NODE_MAP) == ["ai", "transcode"]
    assert node_types_for_region(REGION_NODE_MAP, "eu-central") == ["transcode"]
    assert node_types_for_region(REGION_NODE_MAP, "mars") == []
    assert derive_regions(None) == []
    assert derive_node_types({}) == []


def test_target_endpoint_kind():
    assert FetchTarget(region="r", node_type="ai", endpoint="worker_summary").kind == EndpointKind.WORKER_SUMMARY
    assert FetchTarget(region="r", node_type="ai", endpoint="worker_performance").kind == \
        EndpointKind.WORKER_PERFORMANCE
    assert FetchTarget(region="r", node_type="ai", endpoint="payments").kind == EndpointKind.UNKNOWN
