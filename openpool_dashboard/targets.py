"""
"""
from typing import Dict, List, Optional, Sequence

from openpool_dashboard.models import FetchTarget

# -------------------- Source Grid --------------------
# Each region publishes metrics for the node types it runs, one file per endpoint:
# {base_url}/{region}/{node_type}/{endpoint}.json


def derive_regions(region_node_map: Optional[Dict[str, List[str]]]) -> List[str]:
    """Regions in configuration order"""
    return list(region_node_map or {})


def derive_node_types(region_node_map: Optional[Dict[str, List[str]]]) -> List[str]:
    """Distinct node types across all regions, in first-seen order"""
    node_types = []
    for region_node_types in (region_node_map or {}).values():
        for node_type in region_node_types or []:
            if node_type not in node_types:
                node_types.append(node_type)
    return node_types


def node_types_for_region(region_node_map: Optional[Dict[str, List[str]]], region: str) -> List[str]:
    """Node types valid for a region, empty for unknown regions"""
    return list((region_node_map or {}).get(region) or [])


def build_fetch_targets(region_node_map: Optional[Dict[str, List[str]]],
                        endpoints: Optional[Sequence[str]]) -> List[FetchTarget]:
    """
    Cross every region's node types with the endpoint list.
    Returns no targets when either input is missing or empty.
    """
    if not region_node_map or not endpoints:
        return []

    targets = []
    for region in derive_regions(region_node_map):
        for node_type in node_types_for_region(region_node_map, region):
            for endpoint in endpoints:
                if not endpoint or not endpoint.strip():
                    continue
                targets.append(FetchTarget(region=region, node_type=node_type, endpoint=endpoint.strip()))
    return targets
