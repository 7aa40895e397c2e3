from .base_collector import BaseCollector
from .ec2_collector import EC2Collector
from .s3_collector import S3Collector
from .rds_collector import RDSCollector
from .iam_collector import IAMCollector
from .vpc_collector import VPCCollector

# Collectors every AWS provider owns, in status lookup order
DEFAULT_COLLECTORS = [
    EC2Collector,
    S3Collector,
    RDSCollector,
    IAMCollector,
    VPCCollector,
]

__all__ = [
    'BaseCollector',
    'EC2Collector',
    'S3Collector',
    'RDSCollector',
    'IAMCollector',
    'VPCCollector',
    'DEFAULT_COLLECTORS'
]
