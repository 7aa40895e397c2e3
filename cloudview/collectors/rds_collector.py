"""RDS DB instance and cluster collector."""
from typing import Any, Dict, Iterator, Optional
import logging

from botocore.exceptions import ClientError

from .base_collector import BaseCollector, Listing
from ..cancellation import CancellationToken
from ..errors import ResourceNotFoundError
from ..filters import ResourceFilters
from ..type_defs import BotoClient, RDSInstanceMetadata, RDSClusterMetadata
from ..types import Resource, ResourceStatus, DATABASE, DATABASE_CLUSTER, derive_health
from ..utils import tags_to_dict, drop_none, is_not_found

logger = logging.getLogger(__name__)


class RDSCollector(BaseCollector):
    client_service = 'rds'

    @property
    def service_name(self) -> str:
        return 'RDS'

    @property
    def category(self) -> str:
        return 'database'

    def listings(self) -> Dict[str, Listing]:
        return {
            DATABASE: self._list_db_instances,
            DATABASE_CLUSTER: self._list_db_clusters,
        }

    def _list_db_instances(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        for page in self.paginate(token, client, 'describe_db_instances'):
            for instance in page.get('DBInstances', []):
                token.raise_if_cancelled()
                yield self._create_instance_resource(instance, region)

    def _list_db_clusters(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        for page in self.paginate(token, client, 'describe_db_clusters'):
            for cluster in page.get('DBClusters', []):
                token.raise_if_cancelled()
                yield self._create_cluster_resource(cluster, region)

    def _create_instance_resource(self, instance: Dict[str, Any], region: str) -> Resource:
        identifier = instance.get('DBInstanceIdentifier', '')
        state = instance.get('DBInstanceStatus', 'unknown')
        endpoint = instance.get('Endpoint', {})
        subnet_group = instance.get('DBSubnetGroup', {})

        metadata: RDSInstanceMetadata = drop_none({
            'arn': instance.get('DBInstanceArn'),
            'engine': instance.get('Engine'),
            'engine_version': instance.get('EngineVersion'),
            'instance_class': instance.get('DBInstanceClass'),
            'database_name': instance.get('DBName'),
            'master_username': instance.get('MasterUsername'),
            'allocated_storage': instance.get('AllocatedStorage'),
            'storage_type': instance.get('StorageType'),
            'storage_encrypted': instance.get('StorageEncrypted'),
            'multi_az': instance.get('MultiAZ'),
            'publicly_accessible': instance.get('PubliclyAccessible'),
            'backup_retention_period': instance.get('BackupRetentionPeriod'),
            'preferred_backup_window': instance.get('PreferredBackupWindow'),
            'preferred_maintenance_window': instance.get('PreferredMaintenanceWindow'),
            'endpoint': endpoint.get('Address'),
            'port': endpoint.get('Port'),
            'availability_zone': instance.get('AvailabilityZone'),
            'vpc_id': subnet_group.get('VpcId'),
            'subnet_group': subnet_group.get('DBSubnetGroupName'),
            'db_cluster_identifier': instance.get('DBClusterIdentifier'),
            'security_groups': [
                sg.get('VpcSecurityGroupId') for sg in instance.get('VpcSecurityGroups', [])
            ],
        })

        tags = tags_to_dict(instance.get('TagList'))
        return Resource(
            id=identifier,
            kind=DATABASE,
            name=tags.get('Name') or identifier,
            region=region,
            status=ResourceStatus(state=state, health=derive_health(DATABASE, state)),
            tags=tags,
            created_at=instance.get('InstanceCreateTime'),
            metadata=metadata,
        )

    def _create_cluster_resource(self, cluster: Dict[str, Any], region: str) -> Resource:
        identifier = cluster.get('DBClusterIdentifier', '')
        state = cluster.get('Status', 'unknown')

        metadata: RDSClusterMetadata = drop_none({
            'arn': cluster.get('DBClusterArn'),
            'engine': cluster.get('Engine'),
            'engine_version': cluster.get('EngineVersion'),
            'engine_mode': cluster.get('EngineMode'),
            'database_name': cluster.get('DatabaseName'),
            'master_username': cluster.get('MasterUsername'),
            'storage_encrypted': cluster.get('StorageEncrypted'),
            'multi_az': cluster.get('MultiAZ'),
            'backup_retention_period': cluster.get('BackupRetentionPeriod'),
            'preferred_backup_window': cluster.get('PreferredBackupWindow'),
            'preferred_maintenance_window': cluster.get('PreferredMaintenanceWindow'),
            'endpoint': cluster.get('Endpoint'),
            'reader_endpoint': cluster.get('ReaderEndpoint'),
            'port': cluster.get('Port'),
            'subnet_group': cluster.get('DBSubnetGroup'),
            'members': [
                {
                    'instance_id': member.get('DBInstanceIdentifier'),
                    'is_writer': member.get('IsClusterWriter', False),
                }
                for member in cluster.get('DBClusterMembers', [])
            ],
            'security_groups': [
                sg.get('VpcSecurityGroupId') for sg in cluster.get('VpcSecurityGroups', [])
            ],
        })

        tags = tags_to_dict(cluster.get('TagList'))
        return Resource(
            id=identifier,
            kind=DATABASE_CLUSTER,
            name=tags.get('Name') or identifier,
            region=region,
            status=ResourceStatus(state=state, health=derive_health(DATABASE_CLUSTER, state)),
            tags=tags,
            created_at=cluster.get('ClusterCreateTime'),
            metadata=metadata,
        )

    def get_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        def lookup(client: BotoClient) -> Optional[ResourceStatus]:
            try:
                instances = client.describe_db_instances(DBInstanceIdentifier=resource_id).get('DBInstances', [])
            except ClientError as e:
                if not is_not_found(e):
                    raise
                instances = []
            if instances:
                state = instances[0].get('DBInstanceStatus', 'unknown')
                return ResourceStatus(state=state, health=derive_health(DATABASE, state))

            clusters = client.describe_db_clusters(DBClusterIdentifier=resource_id).get('DBClusters', [])
            if clusters:
                state = clusters[0].get('Status', 'unknown')
                return ResourceStatus(state=state, health=derive_health(DATABASE_CLUSTER, state))
            return None

        if resource_id.startswith(('i-', 'arn:')):
            raise ResourceNotFoundError(resource_id, 'aws')
        return self.find_in_regions(token, resource_id, lookup)
