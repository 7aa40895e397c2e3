"""VPC and security group collector."""
from typing import Any, Dict, Iterator, List, Optional
import logging

from .base_collector import BaseCollector, Listing
from ..cancellation import CancellationToken
from ..errors import ResourceNotFoundError
from ..filters import ResourceFilters
from ..type_defs import BotoClient, VPCMetadata, SecurityGroupMetadata
from ..types import Resource, ResourceStatus, VPC, SECURITY_GROUP, derive_health
from ..utils import tags_to_dict, drop_none

logger = logging.getLogger(__name__)


def _format_rules(permissions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    rules = []
    for permission in permissions:
        protocol = permission.get('IpProtocol', '-1')
        rules.append(drop_none({
            'protocol': 'all' if protocol == '-1' else protocol,
            'from_port': permission.get('FromPort'),
            'to_port': permission.get('ToPort'),
            'cidr_blocks': [r.get('CidrIp') for r in permission.get('IpRanges', [])],
            'ipv6_cidr_blocks': [r.get('CidrIpv6') for r in permission.get('Ipv6Ranges', [])],
            'security_groups': [g.get('GroupId') for g in permission.get('UserIdGroupPairs', [])],
            'prefix_lists': [p.get('PrefixListId') for p in permission.get('PrefixListIds', [])],
        }))
    return rules


class VPCCollector(BaseCollector):
    client_service = 'ec2'

    @property
    def service_name(self) -> str:
        return 'VPC'

    @property
    def category(self) -> str:
        return 'network'

    def listings(self) -> Dict[str, Listing]:
        return {
            VPC: self._list_vpcs,
            SECURITY_GROUP: self._list_security_groups,
        }

    def _list_vpcs(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        for page in self.paginate(token, client, 'describe_vpcs'):
            for vpc in page.get('Vpcs', []):
                token.raise_if_cancelled()
                yield self._create_vpc_resource(vpc, region)

    def _create_vpc_resource(self, vpc: Dict[str, Any], region: str) -> Resource:
        vpc_id = vpc.get('VpcId', '')
        state = vpc.get('State', 'unknown')
        tags = tags_to_dict(vpc.get('Tags'))

        metadata: VPCMetadata = drop_none({
            'cidr_block': vpc.get('CidrBlock'),
            'dhcp_options_id': vpc.get('DhcpOptionsId'),
            'instance_tenancy': vpc.get('InstanceTenancy'),
            'is_default': vpc.get('IsDefault', False),
            'owner_id': vpc.get('OwnerId'),
        })
        ipv6_blocks = [
            block.get('Ipv6CidrBlock')
            for block in vpc.get('Ipv6CidrBlockAssociationSet', [])
            if block.get('Ipv6CidrBlock')
        ]
        if ipv6_blocks:
            metadata['ipv6_cidr_blocks'] = ipv6_blocks

        return Resource(
            id=vpc_id,
            kind=VPC,
            name=tags.get('Name') or vpc_id,
            region=region,
            status=ResourceStatus(state=state, health=derive_health(VPC, state)),
            tags=tags,
            metadata=metadata,
        )

    def _list_security_groups(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        for page in self.paginate(token, client, 'describe_security_groups'):
            for group in page.get('SecurityGroups', []):
                token.raise_if_cancelled()
                yield self._create_security_group_resource(group, region)

    def _create_security_group_resource(self, group: Dict[str, Any], region: str) -> Resource:
        group_id = group.get('GroupId', '')
        tags = tags_to_dict(group.get('Tags'))

        metadata: SecurityGroupMetadata = drop_none({
            'group_name': group.get('GroupName'),
            'description': group.get('Description'),
            'vpc_id': group.get('VpcId'),
            'owner_id': group.get('OwnerId'),
            'ingress_rules': _format_rules(group.get('IpPermissions', [])),
            'egress_rules': _format_rules(group.get('IpPermissionsEgress', [])),
        })

        # Security groups have no lifecycle state of their own
        return Resource(
            id=group_id,
            kind=SECURITY_GROUP,
            name=tags.get('Name') or group.get('GroupName') or group_id,
            region=region,
            status=ResourceStatus(state='available', health=derive_health(SECURITY_GROUP, 'available')),
            tags=tags,
            metadata=metadata,
        )

    def get_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        if resource_id.startswith('vpc-'):
            def lookup(client: BotoClient) -> Optional[ResourceStatus]:
                vpcs = client.describe_vpcs(VpcIds=[resource_id]).get('Vpcs', [])
                if not vpcs:
                    return None
                state = vpcs[0].get('State', 'unknown')
                return ResourceStatus(state=state, health=derive_health(VPC, state))
        elif resource_id.startswith('sg-'):
            def lookup(client: BotoClient) -> Optional[ResourceStatus]:
                groups = client.describe_security_groups(GroupIds=[resource_id]).get('SecurityGroups', [])
                if not groups:
                    return None
                return ResourceStatus(state='available', health=derive_health(SECURITY_GROUP, 'available'))
        else:
            raise ResourceNotFoundError(resource_id, 'aws')

        return self.find_in_regions(token, resource_id, lookup)
