"""EC2 instance collector."""
from typing import Any, Dict, Iterator, List, Optional
import logging

from .base_collector import BaseCollector, Listing
from ..cancellation import CancellationToken
from ..errors import ResourceNotFoundError
from ..filters import ResourceFilters
from ..type_defs import BotoClient, EC2InstanceMetadata
from ..types import Resource, ResourceStatus, VIRTUAL_MACHINE, derive_health
from ..utils import tags_to_dict, drop_none

logger = logging.getLogger(__name__)

# describe_instance_status accepts at most 100 ids per call
STATUS_BATCH_SIZE = 100


class EC2Collector(BaseCollector):
    """Collector for EC2 instances."""

    client_service = 'ec2'

    @property
    def service_name(self) -> str:
        """Return the service name."""
        return 'EC2'

    @property
    def category(self) -> str:
        return 'compute'

    def listings(self) -> Dict[str, Listing]:
        return {VIRTUAL_MACHINE: self._list_instances}

    def _list_instances(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        """List instances page by page, enriching each page with status checks."""
        params: Dict[str, Any] = {}
        server_filters = self.build_server_filters(filters)
        if server_filters:
            params['Filters'] = server_filters

        for page in self.paginate(token, client, 'describe_instances', **params):
            instances = [
                instance
                for reservation in page.get('Reservations', [])
                for instance in reservation.get('Instances', [])
            ]
            if not instances:
                continue

            checks = self.best_effort(
                f'EC2 status checks in {region}',
                self._get_status_checks, client, [i['InstanceId'] for i in instances if 'InstanceId' in i]
            ) or {}

            for instance in instances:
                token.raise_if_cancelled()
                resource = self._create_instance_resource(instance, region)
                check = checks.get(resource.id)
                if check:
                    resource.metadata.update(check)
                yield resource

    @staticmethod
    def build_server_filters(filters: ResourceFilters) -> List[Dict[str, Any]]:
        """Translate status and tag clauses into describe_instances filters."""
        server_filters: List[Dict[str, Any]] = []
        if filters.statuses:
            server_filters.append({'Name': 'instance-state-name', 'Values': list(filters.statuses)})
        for key, value in filters.tags.items():
            server_filters.append({'Name': f'tag:{key}', 'Values': [value]})
        return server_filters

    def _get_status_checks(self, client: BotoClient, instance_ids: List[str]) -> Dict[str, Dict[str, str]]:
        checks: Dict[str, Dict[str, str]] = {}
        for start in range(0, len(instance_ids), STATUS_BATCH_SIZE):
            batch = instance_ids[start:start + STATUS_BATCH_SIZE]
            response = client.describe_instance_status(InstanceIds=batch, IncludeAllInstances=True)
            for status in response.get('InstanceStatuses', []):
                checks[status['InstanceId']] = {
                    'system_status': status.get('SystemStatus', {}).get('Status', 'unknown'),
                    'instance_status': status.get('InstanceStatus', {}).get('Status', 'unknown'),
                }
        return checks

    def _create_instance_resource(self, instance: Dict[str, Any], region: str) -> Resource:
        """Create Resource object from EC2 instance data."""
        tags = tags_to_dict(instance.get('Tags'))
        instance_id = instance.get('InstanceId', '')
        state = instance.get('State', {}).get('Name', 'unknown')

        metadata: EC2InstanceMetadata = drop_none({
            'instance_type': instance.get('InstanceType', ''),
            'platform': instance.get('Platform') or 'linux',
            'architecture': instance.get('Architecture'),
            'vpc_id': instance.get('VpcId'),
            'subnet_id': instance.get('SubnetId'),
            'availability_zone': instance.get('Placement', {}).get('AvailabilityZone'),
            'public_ip': instance.get('PublicIpAddress'),
            'private_ip': instance.get('PrivateIpAddress'),
            'image_id': instance.get('ImageId'),
            'key_name': instance.get('KeyName'),
            'security_groups': [sg.get('GroupId') for sg in instance.get('SecurityGroups', [])],
        })

        return Resource(
            id=instance_id,
            kind=VIRTUAL_MACHINE,
            name=tags.get('Name') or instance_id,
            region=region,
            status=ResourceStatus(state=state, health=derive_health(VIRTUAL_MACHINE, state)),
            tags=tags,
            created_at=instance.get('LaunchTime'),
            metadata=metadata,
        )

    def get_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        if not resource_id.startswith('i-'):
            raise ResourceNotFoundError(resource_id, 'aws')

        def lookup(client: BotoClient) -> Optional[ResourceStatus]:
            response = client.describe_instances(InstanceIds=[resource_id])
            for reservation in response.get('Reservations', []):
                for instance in reservation.get('Instances', []):
                    if instance.get('InstanceId') == resource_id:
                        state = instance.get('State', {}).get('Name', 'unknown')
                        return ResourceStatus(state=state, health=derive_health(VIRTUAL_MACHINE, state))
            return None

        return self.find_in_regions(token, resource_id, lookup)
