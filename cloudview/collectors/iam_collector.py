"""IAM identity collector."""
from typing import Any, Dict, Iterator, List
import logging

from botocore.exceptions import ClientError

from .base_collector import BaseCollector, Listing
from ..cancellation import CancellationToken
from ..errors import ResourceNotFoundError
from ..filters import ResourceFilters
from ..regions import GLOBAL_REGION
from ..type_defs import BotoClient, IAMUserMetadata
from ..types import Resource, ResourceStatus, IAM_USER, IAM_ROLE, IAM_POLICY, derive_health
from ..utils import tags_to_dict, drop_none, is_not_found

logger = logging.getLogger(__name__)

ACTIVE = 'active'


class IAMCollector(BaseCollector):
    """
    Collector for IAM users, roles and customer-managed policies.

    IAM is provider-wide: every resource reports region 'global'.
    """

    client_service = 'iam'
    is_global = True

    @property
    def service_name(self) -> str:
        """Return the service name."""
        return 'IAM'

    @property
    def category(self) -> str:
        return 'identity'

    def listings(self) -> Dict[str, Listing]:
        return {
            IAM_USER: self._list_users,
            IAM_ROLE: self._list_roles,
            IAM_POLICY: self._list_policies,
        }

    def _active_status(self, kind: str) -> ResourceStatus:
        return ResourceStatus(state=ACTIVE, health=derive_health(kind, ACTIVE))

    def _list_users(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        for page in self.paginate(token, client, 'list_users'):
            for user in page.get('Users', []):
                token.raise_if_cancelled()
                yield self._create_user_resource(client, user)

    def _create_user_resource(self, client: BotoClient, user: Dict[str, Any]) -> Resource:
        """Create Resource object from IAM user data."""
        user_name = user.get('UserName', '')
        password_last_used = user.get('PasswordLastUsed')

        metadata: IAMUserMetadata = drop_none({
            'arn': user.get('Arn'),
            'user_id': user.get('UserId'),
            'path': user.get('Path'),
            'password_last_used': password_last_used.isoformat() if password_last_used else None,
        })

        resource = Resource(
            id=user_name,
            kind=IAM_USER,
            name=user_name,
            region=GLOBAL_REGION,
            status=self._active_status(IAM_USER),
            tags=tags_to_dict(user.get('Tags')),
            created_at=user.get('CreateDate'),
            metadata=metadata,
        )

        tags = self.best_effort(f'tags of IAM user {user_name}', self._get_user_tags, client, user_name)
        if tags:
            resource.tags.update(tags)

        policies = self.best_effort(f'policies of IAM user {user_name}', self._get_user_policies, client, user_name)
        if policies is not None:
            resource.set_metadata('policies', policies)

        groups = self.best_effort(f'groups of IAM user {user_name}', self._get_user_groups, client, user_name)
        if groups is not None:
            resource.set_metadata('groups', groups)

        keys = self.best_effort(f'access keys of IAM user {user_name}', self._get_access_keys, client, user_name)
        if keys is not None:
            resource.set_metadata('access_keys', keys)

        return resource

    def _get_user_tags(self, client: BotoClient, user_name: str) -> Dict[str, str]:
        tags: Dict[str, str] = {}
        for page in client.get_paginator('list_user_tags').paginate(UserName=user_name):
            tags.update(tags_to_dict(page.get('Tags')))
        return tags

    def _get_user_policies(self, client: BotoClient, user_name: str) -> List[str]:
        policies: List[str] = []
        for page in client.get_paginator('list_attached_user_policies').paginate(UserName=user_name):
            policies.extend(p.get('PolicyName') for p in page.get('AttachedPolicies', []))
        for page in client.get_paginator('list_user_policies').paginate(UserName=user_name):
            policies.extend(f'{name} (inline)' for name in page.get('PolicyNames', []))
        return policies

    def _get_user_groups(self, client: BotoClient, user_name: str) -> List[str]:
        groups: List[str] = []
        for page in client.get_paginator('list_groups_for_user').paginate(UserName=user_name):
            groups.extend(g.get('GroupName') for g in page.get('Groups', []))
        return groups

    def _get_access_keys(self, client: BotoClient, user_name: str) -> List[Dict[str, Any]]:
        keys: List[Dict[str, Any]] = []
        for page in client.get_paginator('list_access_keys').paginate(UserName=user_name):
            for key in page.get('AccessKeyMetadata', []):
                created = key.get('CreateDate')
                keys.append({
                    'access_key_id': key.get('AccessKeyId'),
                    'status': key.get('Status'),
                    'create_date': created.isoformat() if created else None,
                })
        return keys

    def _list_roles(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        for page in self.paginate(token, client, 'list_roles'):
            for role in page.get('Roles', []):
                token.raise_if_cancelled()
                yield self._create_role_resource(client, role)

    def _create_role_resource(self, client: BotoClient, role: Dict[str, Any]) -> Resource:
        """Create Resource object from IAM role data."""
        role_name = role.get('RoleName', '')
        resource = Resource(
            id=role_name,
            kind=IAM_ROLE,
            name=role_name,
            region=GLOBAL_REGION,
            status=self._active_status(IAM_ROLE),
            tags=tags_to_dict(role.get('Tags')),
            created_at=role.get('CreateDate'),
            metadata=drop_none({
                'arn': role.get('Arn'),
                'role_id': role.get('RoleId'),
                'path': role.get('Path'),
                'description': role.get('Description'),
                'max_session_duration': role.get('MaxSessionDuration'),
            }),
        )

        tags = self.best_effort(f'tags of IAM role {role_name}', self._get_role_tags, client, role_name)
        if tags:
            resource.tags.update(tags)

        policies = self.best_effort(f'policies of IAM role {role_name}', self._get_role_policies, client, role_name)
        if policies is not None:
            resource.set_metadata('policies', policies)

        return resource

    def _get_role_tags(self, client: BotoClient, role_name: str) -> Dict[str, str]:
        tags: Dict[str, str] = {}
        for page in client.get_paginator('list_role_tags').paginate(RoleName=role_name):
            tags.update(tags_to_dict(page.get('Tags')))
        return tags

    def _get_role_policies(self, client: BotoClient, role_name: str) -> List[str]:
        policies: List[str] = []
        for page in client.get_paginator('list_attached_role_policies').paginate(RoleName=role_name):
            policies.extend(p.get('PolicyName') for p in page.get('AttachedPolicies', []))
        for page in client.get_paginator('list_role_policies').paginate(RoleName=role_name):
            policies.extend(f'{name} (inline)' for name in page.get('PolicyNames', []))
        return policies

    def _list_policies(
        self,
        token: CancellationToken,
        client: BotoClient,
        region: str,
        filters: ResourceFilters
    ) -> Iterator[Resource]:
        # Customer-managed policies only
        for page in self.paginate(token, client, 'list_policies', Scope='Local'):
            for policy in page.get('Policies', []):
                token.raise_if_cancelled()
                yield self._create_policy_resource(client, policy)

    def _create_policy_resource(self, client: BotoClient, policy: Dict[str, Any]) -> Resource:
        policy_name = policy.get('PolicyName', '')
        arn = policy.get('Arn')
        resource = Resource(
            id=policy_name,
            kind=IAM_POLICY,
            name=policy_name,
            region=GLOBAL_REGION,
            status=self._active_status(IAM_POLICY),
            created_at=policy.get('CreateDate'),
            updated_at=policy.get('UpdateDate'),
            metadata=drop_none({
                'arn': arn,
                'policy_id': policy.get('PolicyId'),
                'path': policy.get('Path'),
                'description': policy.get('Description'),
                'attachment_count': policy.get('AttachmentCount'),
                'default_version_id': policy.get('DefaultVersionId'),
                'is_attachable': policy.get('IsAttachable'),
            }),
        )

        if arn:
            tags = self.best_effort(
                f'tags of IAM policy {policy_name}',
                lambda: tags_to_dict(client.list_policy_tags(PolicyArn=arn).get('Tags'))
            )
            if tags:
                resource.tags.update(tags)

        return resource

    def get_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        token.raise_if_cancelled()
        client = self.create_client(self.regions_for(ResourceFilters())[0])
        for kind, lookup in (
            (IAM_USER, lambda: client.get_user(UserName=resource_id)),
            (IAM_ROLE, lambda: client.get_role(RoleName=resource_id)),
        ):
            try:
                lookup()
            except ClientError as e:
                if not is_not_found(e):
                    logger.debug(f"IAM status lookup for {resource_id} failed: {e}")
                continue
            return self._active_status(kind)

        if self._find_policy(token, client, resource_id):
            return self._active_status(IAM_POLICY)
        raise ResourceNotFoundError(resource_id, 'aws')

    def _find_policy(self, token: CancellationToken, client: BotoClient, policy_id: str) -> bool:
        """Look up a customer-managed policy by ARN or by name."""
        try:
            if policy_id.startswith('arn:'):
                client.get_policy(PolicyArn=policy_id)
                return True
            for page in self.paginate(token, client, 'list_policies', Scope='Local'):
                if any(p.get('PolicyName') == policy_id for p in page.get('Policies', [])):
                    return True
        except ClientError as e:
            if not is_not_found(e):
                logger.debug(f"IAM policy lookup for {policy_id} failed: {e}")
        return False
