"""Region resolution shared by every collector."""
from typing import List, Optional, Sequence

from .config import AWSConfig

DEFAULT_REGION = 'us-east-1'
GLOBAL_REGION = 'global'

SUPPORTED_REGIONS: List[str] = [
    'us-east-1', 'us-east-2', 'us-west-1', 'us-west-2',
    'eu-west-1', 'eu-west-2', 'eu-west-3', 'eu-central-1', 'eu-north-1',
    'ap-south-1', 'ap-southeast-1', 'ap-southeast-2',
    'ap-northeast-1', 'ap-northeast-2',
    'ca-central-1', 'sa-east-1', 'af-south-1', 'me-south-1',
]


def _dedupe(regions: Sequence[str]) -> List[str]:
    seen = set()
    ordered = []
    for region in regions:
        if region and region not in seen:
            seen.add(region)
            ordered.append(region)
    return ordered


def resolve_regions(filter_regions: Optional[Sequence[str]], config: Optional[AWSConfig]) -> List[str]:
    """
    Resolve the regions a collector should query.

    Precedence: filter regions, then configured regions, then the
    configured default region, then DEFAULT_REGION.

    Args:
        filter_regions: Regions requested by the caller's filters
        config: Provider configuration

    Returns:
        Ordered, de-duplicated list of region names (never empty)
    """
    if filter_regions:
        # 'global' selects provider-wide resources, not an API endpoint
        regions = _dedupe([r for r in filter_regions if r != GLOBAL_REGION])
        if regions:
            return regions
    if config is not None:
        if config.regions:
            return _dedupe(config.regions)
        if config.region:
            return [config.region]
    return [DEFAULT_REGION]

