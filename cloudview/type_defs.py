from typing import Optional, Dict, Any, List, TypedDict, Protocol, runtime_checkable


# TypedDict definitions for Resource.metadata
class EC2InstanceMetadata(TypedDict, total=False):
    """Type definition for EC2 instance metadata."""
    instance_type: str
    platform: str
    architecture: Optional[str]
    vpc_id: Optional[str]
    subnet_id: Optional[str]
    availability_zone: Optional[str]
    public_ip: Optional[str]
    private_ip: Optional[str]
    image_id: Optional[str]
    key_name: Optional[str]
    security_groups: List[str]
    system_status: str
    instance_status: str


class S3BucketMetadata(TypedDict, total=False):
    """Type definition for S3 bucket metadata."""
    bucket_name: str
    location: str
    encryption: Dict[str, Any]
    versioning: Dict[str, Any]
    public_access_block: Dict[str, bool]
    lifecycle_rules: int
    notifications: Dict[str, Any]


class RDSInstanceMetadata(TypedDict, total=False):
    """Type definition for RDS instance metadata."""
    arn: str
    engine: str
    engine_version: str
    instance_class: str
    database_name: Optional[str]
    master_username: str
    allocated_storage: int
    storage_type: str
    storage_encrypted: bool
    multi_az: bool
    publicly_accessible: bool
    backup_retention_period: int
    preferred_backup_window: str
    preferred_maintenance_window: str
    endpoint: str
    port: int
    availability_zone: str
    vpc_id: str
    subnet_group: str
    db_cluster_identifier: str
    security_groups: List[str]


class RDSClusterMetadata(TypedDict, total=False):
    """Type definition for RDS cluster metadata."""
    arn: str
    engine: str
    engine_version: str
    engine_mode: str
    database_name: Optional[str]
    master_username: str
    endpoint: str
    reader_endpoint: str
    port: int
    multi_az: bool
    storage_encrypted: bool
    backup_retention_period: int
    preferred_backup_window: str
    preferred_maintenance_window: str
    subnet_group: str
    members: List[Dict[str, Any]]
    security_groups: List[str]


class IAMUserMetadata(TypedDict, total=False):
    """Type definition for IAM user metadata."""
    arn: str
    user_id: str
    path: str
    password_last_used: Optional[str]
    policies: List[str]
    groups: List[str]
    access_keys: List[Dict[str, Any]]


class VPCMetadata(TypedDict, total=False):
    """Type definition for VPC metadata."""
    cidr_block: str
    dhcp_options_id: str
    instance_tenancy: str
    is_default: bool
    owner_id: str
    ipv6_cidr_blocks: List[str]


class SecurityGroupMetadata(TypedDict, total=False):
    """Type definition for security group metadata."""
    group_name: str
    description: str
    vpc_id: str
    owner_id: str
    ingress_rules: List[Dict[str, Any]]
    egress_rules: List[Dict[str, Any]]


# Protocol definitions for boto3 objects
@runtime_checkable
class BotoClient(Protocol):
    """Protocol for boto3 client objects."""

    def get_paginator(self, operation_name: str) -> Any:
        """Get a paginator for the specified operation."""
        ...


@runtime_checkable
class BotoSession(Protocol):
    """Protocol for boto3 session objects."""

    def client(self, service_name: str, **kwargs: Any) -> Any:
        """Create a service client."""
        ...


@runtime_checkable
class Paginator(Protocol):
    """Protocol for boto3 paginator objects."""

    def paginate(self, **kwargs: Any) -> Any:
        """Paginate through results."""
        ...


class CallerIdentity(TypedDict):
    """Response from STS get_caller_identity."""
    UserId: str
    Account: str
    Arn: str
