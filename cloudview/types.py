"""Canonical resource model, kind normalization and health derivation."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, FrozenSet


# Canonical resource kinds
VIRTUAL_MACHINE = 'virtual_machine'
CONTAINER = 'container'
FUNCTION = 'function'
CLUSTER = 'cluster'
OBJECT_STORAGE = 'object_storage'
BLOCK_STORAGE = 'block_storage'
FILE_STORAGE = 'file_storage'
DATABASE = 'database'
DATABASE_CLUSTER = 'database_cluster'
VPC = 'vpc'
SUBNET = 'subnet'
LOAD_BALANCER = 'load_balancer'
SECURITY_GROUP = 'security_group'
GATEWAY = 'gateway'
IAM_USER = 'iam_user'
IAM_ROLE = 'iam_role'
IAM_POLICY = 'iam_policy'
SECRET = 'secret'
METRIC = 'metric'
ALARM = 'alarm'
DASHBOARD = 'dashboard'
UNKNOWN = 'unknown'

ALL_KINDS: List[str] = [
    VIRTUAL_MACHINE, CONTAINER, FUNCTION, CLUSTER,
    OBJECT_STORAGE, BLOCK_STORAGE, FILE_STORAGE,
    DATABASE, DATABASE_CLUSTER,
    VPC, SUBNET, LOAD_BALANCER, SECURITY_GROUP, GATEWAY,
    IAM_USER, IAM_ROLE, IAM_POLICY,
    SECRET, METRIC, ALARM, DASHBOARD,
    UNKNOWN,
]

# Provider-specific type strings -> canonical kind
KIND_ALIASES: Dict[str, str] = {
    'vm': VIRTUAL_MACHINE,
    'vms': VIRTUAL_MACHINE,
    'ec2': VIRTUAL_MACHINE,
    'instance': VIRTUAL_MACHINE,
    'instances': VIRTUAL_MACHINE,
    'compute_engine': VIRTUAL_MACHINE,
    'virtual_machines': VIRTUAL_MACHINE,
    'containers': CONTAINER,
    'ecs': CONTAINER,
    'gke': CONTAINER,
    'aci': CONTAINER,
    'functions': FUNCTION,
    'lambda': FUNCTION,
    'cloud_functions': FUNCTION,
    'azure_functions': FUNCTION,
    'clusters': CLUSTER,
    'eks': CLUSTER,
    'gke_cluster': CLUSTER,
    'aks': CLUSTER,
    's3': OBJECT_STORAGE,
    'gcs': OBJECT_STORAGE,
    'bucket': OBJECT_STORAGE,
    'buckets': OBJECT_STORAGE,
    'blob_storage': OBJECT_STORAGE,
    'ebs': BLOCK_STORAGE,
    'volume': BLOCK_STORAGE,
    'volumes': BLOCK_STORAGE,
    'persistent_disk': BLOCK_STORAGE,
    'managed_disk': BLOCK_STORAGE,
    'efs': FILE_STORAGE,
    'filestore': FILE_STORAGE,
    'azure_files': FILE_STORAGE,
    'databases': DATABASE,
    'db': DATABASE,
    'rds': DATABASE,
    'db_instance': DATABASE,
    'rds_instance': DATABASE,
    'cloud_sql': DATABASE,
    'cosmos_db': DATABASE,
    'postgres': DATABASE,
    'postgresql': DATABASE,
    'mysql': DATABASE,
    'aurora': DATABASE_CLUSTER,
    'db_cluster': DATABASE_CLUSTER,
    'rds_cluster': DATABASE_CLUSTER,
    'database_clusters': DATABASE_CLUSTER,
    'vpcs': VPC,
    'vnet': VPC,
    'network': VPC,
    'subnets': SUBNET,
    'lb': LOAD_BALANCER,
    'elb': LOAD_BALANCER,
    'alb': LOAD_BALANCER,
    'nlb': LOAD_BALANCER,
    'load_balancers': LOAD_BALANCER,
    'sg': SECURITY_GROUP,
    'firewall': SECURITY_GROUP,
    'nsg': SECURITY_GROUP,
    'security_groups': SECURITY_GROUP,
    'gateways': GATEWAY,
    'nat_gateway': GATEWAY,
    'internet_gateway': GATEWAY,
    'user': IAM_USER,
    'users': IAM_USER,
    'iam_users': IAM_USER,
    'role': IAM_ROLE,
    'roles': IAM_ROLE,
    'iam_roles': IAM_ROLE,
    'policy': IAM_POLICY,
    'policies': IAM_POLICY,
    'iam_policies': IAM_POLICY,
    'secrets': SECRET,
    'metrics': METRIC,
    'alarms': ALARM,
    'alert': ALARM,
    'dashboards': DASHBOARD,
}

# Service-level terms that select a group of kinds when filtering
KIND_GROUPS: Dict[str, FrozenSet[str]] = {
    'compute': frozenset({VIRTUAL_MACHINE}),
    'storage': frozenset({OBJECT_STORAGE}),
    'rds': frozenset({DATABASE, DATABASE_CLUSTER}),
    'database': frozenset({DATABASE, DATABASE_CLUSTER}),
    'iam': frozenset({IAM_USER, IAM_ROLE, IAM_POLICY}),
    'identity': frozenset({IAM_USER, IAM_ROLE, IAM_POLICY}),
    'network': frozenset({VPC, SECURITY_GROUP}),
    'networking': frozenset({VPC, SECURITY_GROUP}),
}

# Health values
HEALTHY = 'healthy'
UNHEALTHY = 'unhealthy'
WARNING = 'warning'
HEALTH_UNKNOWN = 'unknown'

_EC2_HEALTH = {
    'running': HEALTHY,
    'stopped': UNHEALTHY,
    'stopping': UNHEALTHY,
    'terminated': UNHEALTHY,
    'pending': WARNING,
    'shutting-down': WARNING,
}

_RDS_HEALTH = {
    'available': HEALTHY,
    'creating': WARNING,
    'starting': WARNING,
    'rebooting': WARNING,
    'modifying': WARNING,
    'upgrading': WARNING,
    'backing-up': WARNING,
    'configuring-enhanced-monitoring': WARNING,
    'stopped': UNHEALTHY,
    'stopping': UNHEALTHY,
    'failed': UNHEALTHY,
    'storage-full': UNHEALTHY,
    'incompatible-network': UNHEALTHY,
    'incompatible-restore': UNHEALTHY,
    'incompatible-parameters': UNHEALTHY,
    'inaccessible-encryption-credentials': UNHEALTHY,
}

# Per-kind state -> health tables
HEALTH_BY_STATE: Dict[str, Dict[str, str]] = {
    VIRTUAL_MACHINE: _EC2_HEALTH,
    OBJECT_STORAGE: {'available': HEALTHY},
    DATABASE: _RDS_HEALTH,
    DATABASE_CLUSTER: _RDS_HEALTH,
    IAM_USER: {'active': HEALTHY},
    IAM_ROLE: {'active': HEALTHY},
    IAM_POLICY: {'active': HEALTHY},
    VPC: {'available': HEALTHY, 'pending': WARNING},
    SECURITY_GROUP: {'available': HEALTHY},
}


def normalize_kind(value: Optional[str]) -> str:
    """
    Normalize a provider-specific type string to a canonical kind.

    Args:
        value: Kind or alias, any case

    Returns:
        Canonical kind, or 'unknown' when the value is not recognized
    """
    if not value:
        return UNKNOWN
    key = value.strip().lower().replace('-', '_')
    if key in ALL_KINDS:
        return key
    return KIND_ALIASES.get(key, UNKNOWN)


def kinds_for_term(term: str) -> FrozenSet[str]:
    """Return the canonical kinds a filter term selects."""
    key = term.strip().lower().replace('-', '_')
    if key in KIND_GROUPS:
        return KIND_GROUPS[key]
    kind = normalize_kind(key)
    if kind == UNKNOWN and key != UNKNOWN:
        return frozenset()
    return frozenset({kind})


def derive_health(kind: str, state: Optional[str]) -> str:
    """Map a raw state string to a health value using the kind's table."""
    if not state:
        return HEALTH_UNKNOWN
    table = HEALTH_BY_STATE.get(kind, {})
    return table.get(state.lower(), HEALTH_UNKNOWN)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class ResourceStatus:
    """Lifecycle state of a resource and the health derived from it."""
    state: str = UNKNOWN
    health: str = HEALTH_UNKNOWN
    last_checked: datetime = field(default_factory=utcnow)


@dataclass
class ResourceCost:
    daily: float = 0.0
    monthly: float = 0.0
    currency: str = 'USD'


@dataclass
class Resource:
    """Canonical, provider-agnostic inventory record."""
    id: str
    kind: str
    region: str
    name: Optional[str] = None
    provider: str = 'aws'
    status: ResourceStatus = field(default_factory=ResourceStatus)
    tags: Dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    cost: Optional[ResourceCost] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError('Resource id must not be empty')
        self.kind = normalize_kind(self.kind)
        if not self.name:
            self.name = self.id
        if self.tags is None:
            self.tags = {}
        if self.metadata is None:
            self.metadata = {}
        now = utcnow()
        self.created_at = ensure_utc(self.created_at) or now
        self.updated_at = ensure_utc(self.updated_at) or now

    def __setattr__(self, name: str, value: Any) -> None:
        if name == 'id' and 'id' in self.__dict__:
            raise AttributeError('Resource id is immutable')
        super().__setattr__(name, value)

    def update_status(self, state: str, health: Optional[str] = None) -> None:
        """
        Replace the status, deriving health when it is not given.

        last_checked never moves backwards and updated_at advances with it.
        """
        now = utcnow()
        previous = self.status.last_checked
        checked = now if previous is None or now >= previous else previous
        self.status = ResourceStatus(
            state=state,
            health=health or derive_health(self.kind, state),
            last_checked=checked,
        )
        if self.updated_at is None or checked > self.updated_at:
            self.updated_at = checked

    def set_tag(self, key: str, value: str) -> None:
        self.tags[key] = value

    def get_tag(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.tags.get(key, default)

    def set_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready dict."""
        data: Dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'type': self.kind,
            'provider': self.provider,
            'region': self.region,
            'status': {
                'state': self.status.state,
                'health': self.status.health,
                'last_checked': _isoformat(self.status.last_checked),
            },
            'tags': dict(self.tags),
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
            'metadata': _jsonable(self.metadata),
        }
        if self.cost is not None:
            data['cost'] = {
                'daily': self.cost.daily,
                'monthly': self.cost.monthly,
                'currency': self.cost.currency,
            }
        return data


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return value


@dataclass
class CollectionWarning:
    """A swallowed failure reported alongside collected resources."""
    collector: str
    message: str
    region: Optional[str] = None
    category: str = 'error'

    def __str__(self) -> str:
        where = f' in {self.region}' if self.region else ''
        return f'{self.collector}{where}: {self.message}'


@dataclass
class RegionResult:
    """Result of collecting a single region."""
    region: str
    resources: List[Resource] = field(default_factory=list)
    warnings: List[CollectionWarning] = field(default_factory=list)
    duration: float = 0.0


@dataclass
class CollectionResult:
    """Result of one collector across all of its regions."""
    collector: str
    resources: List[Resource] = field(default_factory=list)
    warnings: List[CollectionWarning] = field(default_factory=list)
    duration: float = 0.0


@dataclass
class InventoryResult:
    """Merged output of a provider query."""
    resources: List[Resource] = field(default_factory=list)
    warnings: List[CollectionWarning] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.resources)

    def __iter__(self):
        return iter(self.resources)

    def counts_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for resource in self.resources:
            counts[resource.kind] = counts.get(resource.kind, 0) + 1
        return dict(sorted(counts.items()))
