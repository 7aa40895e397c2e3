"""S3 bucket collector."""
from typing import Any, Dict, Iterator
import logging

from .base_collector import BaseCollector, Listing
from ..cancellation import CancellationToken
from ..errors import ResourceNotFoundError
from ..filters import ResourceFilters
from ..type_defs import BotoClient, S3BucketMetadata
from ..types import Resource, ResourceStatus, OBJECT_STORAGE, derive_health
from ..utils import tags_to_dict, is_not_found, get_error_code

logger = logging.getLogger(__name__)

# get_bucket_location reports legacy values for some regions
LEGACY_LOCATIONS = {
    None: 'us-east-1',
    '': 'us-east-1',
    'EU': 'eu-west-1',
}


class S3Collector(BaseCollector):
    """
    Collector for S3 buckets.

    S3 is a global service: buckets are listed once through the home region
    and each resource's region is the bucket's own location.
    """

    client_service = 's3'
    is_global = True

    @property
    def service_name(self) -> str:
        """Return the service name."""
        return 'S3'

    @property
    def category(self) -> str:
        return 'storage'

    def listings(self) -> Dict[str, Listing]:
        return {OBJECT_STORAGE: self._list_buckets}

    def _list_buckets(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        response = client.list_buckets()
        for bucket in response.get('Buckets', []):
            token.raise_if_cancelled()
            yield self._create_bucket_resource(client, bucket, region, filters)

    def _create_bucket_resource(
        self,
        client: BotoClient,
        bucket: Dict[str, Any],
        home_region: str,
        filters: ResourceFilters
    ) -> Resource:
        """Create Resource object from bucket data, enriching what can be fetched."""
        bucket_name = bucket.get('Name', '')
        location = self.best_effort(f'location of bucket {bucket_name}', self._get_location, client, bucket_name)
        metadata: S3BucketMetadata = {'bucket_name': bucket_name}

        resource = Resource(
            id=bucket_name,
            kind=OBJECT_STORAGE,
            name=bucket_name,
            region=location or home_region,
            status=ResourceStatus(state='available', health=derive_health(OBJECT_STORAGE, 'available')),
            created_at=bucket.get('CreationDate'),
            metadata=metadata,
        )
        if location:
            resource.set_metadata('location', location)

        # Outside the requested regions; the region clause drops it
        if filters.regions and resource.region not in filters.regions:
            return resource

        tags = self.best_effort(f'tags of bucket {bucket_name}', self._get_tags, client, bucket_name)
        if tags:
            resource.tags = tags

        for field, getter in (
            ('encryption', self._get_encryption),
            ('versioning', self._get_versioning),
            ('public_access_block', self._get_public_access_block),
            ('lifecycle_rules', self._get_lifecycle_rule_count),
            ('notifications', self._get_notifications),
        ):
            value = self.best_effort(f'{field} of bucket {bucket_name}', getter, client, bucket_name)
            if value is not None:
                resource.set_metadata(field, value)

        return resource

    def _get_location(self, client: BotoClient, bucket_name: str) -> str:
        constraint = client.get_bucket_location(Bucket=bucket_name).get('LocationConstraint')
        return LEGACY_LOCATIONS.get(constraint, constraint)

    def _get_tags(self, client: BotoClient, bucket_name: str) -> Dict[str, str]:
        return tags_to_dict(client.get_bucket_tagging(Bucket=bucket_name).get('TagSet'))

    def _get_encryption(self, client: BotoClient, bucket_name: str) -> Dict[str, Any]:
        try:
            response = client.get_bucket_encryption(Bucket=bucket_name)
        except Exception as e:
            if get_error_code(e) == 'ServerSideEncryptionConfigurationNotFoundError':
                return {'enabled': False}
            raise
        rules = []
        for rule in response.get('ServerSideEncryptionConfiguration', {}).get('Rules', []):
            default = rule.get('ApplyServerSideEncryptionByDefault', {})
            entry = {'sse_algorithm': default.get('SSEAlgorithm')}
            if default.get('KMSMasterKeyID'):
                entry['kms_master_key_id'] = default['KMSMasterKeyID']
            if 'BucketKeyEnabled' in rule:
                entry['bucket_key_enabled'] = rule['BucketKeyEnabled']
            rules.append(entry)
        return {'enabled': bool(rules), 'rules': rules}

    def _get_versioning(self, client: BotoClient, bucket_name: str) -> Dict[str, Any]:
        response = client.get_bucket_versioning(Bucket=bucket_name)
        return {
            'status': response.get('Status', 'Disabled'),
            'mfa_delete': response.get('MFADelete', 'Disabled'),
        }

    def _get_public_access_block(self, client: BotoClient, bucket_name: str) -> Dict[str, bool]:
        config = client.get_public_access_block(Bucket=bucket_name).get('PublicAccessBlockConfiguration', {})
        return {
            'block_public_acls': config.get('BlockPublicAcls', False),
            'ignore_public_acls': config.get('IgnorePublicAcls', False),
            'block_public_policy': config.get('BlockPublicPolicy', False),
            'restrict_public_buckets': config.get('RestrictPublicBuckets', False),
        }

    def _get_lifecycle_rule_count(self, client: BotoClient, bucket_name: str) -> int:
        return len(client.get_bucket_lifecycle_configuration(Bucket=bucket_name).get('Rules', []))

    def _get_notifications(self, client: BotoClient, bucket_name: str) -> Dict[str, Any]:
        response = client.get_bucket_notification_configuration(Bucket=bucket_name)
        return {
            'topics': len(response.get('TopicConfigurations', [])),
            'queues': len(response.get('QueueConfigurations', [])),
            'lambda_functions': len(response.get('LambdaFunctionConfigurations', [])),
            'eventbridge': 'EventBridgeConfiguration' in response,
        }

    def get_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        token.raise_if_cancelled()
        client = self.create_client(self.regions_for(ResourceFilters())[0])
        try:
            client.head_bucket(Bucket=resource_id)
        except Exception as e:
            if not is_not_found(e):
                logger.debug(f"S3 status lookup for {resource_id} failed: {e}")
            raise ResourceNotFoundError(resource_id, 'aws') from e
        return ResourceStatus(state='available', health=derive_health(OBJECT_STORAGE, 'available'))
