"""Unit tests for IAM collector."""
import pytest
from datetime import datetime, timezone
from botocore.exceptions import ClientError

from cloudview.collectors.iam_collector import IAMCollector
from cloudview.errors import ResourceNotFoundError
from cloudview.filters import ResourceFilters


def _no_such_entity(operation):
    return ClientError({'Error': {'Code': 'NoSuchEntity', 'Message': 'not found'}}, operation)


@pytest.fixture
def iam_client(mock_boto_client, make_paginator, sample_iam_user):
    paginators = {
        'list_users': make_paginator([{'Users': [sample_iam_user]}]),
        'list_roles': make_paginator([{'Roles': [{
            'RoleName': 'deployer',
            'RoleId': 'AROAEXAMPLE',
            'Arn': 'arn:aws:iam::123456789012:role/deployer',
            'Path': '/',
            'MaxSessionDuration': 3600,
            'CreateDate': datetime(2022, 5, 1, tzinfo=timezone.utc),
        }]}]),
        'list_policies': make_paginator([{'Policies': [{
            'PolicyName': 'ReadOnly',
            'PolicyId': 'ANPAEXAMPLE',
            'Arn': 'arn:aws:iam::123456789012:policy/ReadOnly',
            'AttachmentCount': 2,
            'CreateDate': datetime(2022, 6, 1, tzinfo=timezone.utc),
            'UpdateDate': datetime(2022, 7, 1, tzinfo=timezone.utc),
        }]}]),
        'list_user_tags': make_paginator([{'Tags': [{'Key': 'Team', 'Value': 'platform'}]}]),
        'list_attached_user_policies': make_paginator([{'AttachedPolicies': [{'PolicyName': 'ReadOnly'}]}]),
        'list_user_policies': make_paginator([{'PolicyNames': ['inline-s3']}]),
        'list_groups_for_user': make_paginator([{'Groups': [{'GroupName': 'admins'}]}]),
        'list_access_keys': make_paginator([{'AccessKeyMetadata': [{
            'AccessKeyId': 'AKIAEXAMPLE',
            'Status': 'Active',
            'CreateDate': datetime(2023, 1, 1, tzinfo=timezone.utc),
        }]}]),
        'list_role_tags': make_paginator([{'Tags': []}]),
        'list_attached_role_policies': make_paginator([{'AttachedPolicies': [{'PolicyName': 'Deploy'}]}]),
        'list_role_policies': make_paginator([{'PolicyNames': []}]),
    }
    mock_boto_client.get_paginator.side_effect = lambda name: paginators[name]
    mock_boto_client.list_policy_tags.return_value = {'Tags': [{'Key': 'Owner', 'Value': 'sec'}]}
    return mock_boto_client


@pytest.fixture
def collector(mock_session, aws_config):
    return IAMCollector(mock_session, aws_config)


class TestIAMCollector:
    """Test cases for IAMCollector."""

    def test_collector_properties(self, collector):
        assert collector.service_name == 'IAM'
        assert collector.category == 'identity'
        assert collector.is_global
        assert collector.supported_kinds == ['iam_user', 'iam_role', 'iam_policy']

    def test_collect_identities(self, collector, token, iam_client):
        result = collector.collect(token)

        assert [(r.kind, r.id) for r in result.resources] == [
            ('iam_user', 'alice'),
            ('iam_role', 'deployer'),
            ('iam_policy', 'ReadOnly'),
        ]
        for resource in result.resources:
            assert resource.region == 'global'
            assert resource.status.state == 'active'
            assert resource.status.health == 'healthy'

    def test_user_enrichment(self, collector, token, iam_client):
        user = collector.collect(token, ResourceFilters(kinds=['user'])).resources[0]

        assert user.tags == {'Team': 'platform'}
        assert user.metadata['arn'] == 'arn:aws:iam::123456789012:user/alice'
        assert user.metadata['policies'] == ['ReadOnly', 'inline-s3 (inline)']
        assert user.metadata['groups'] == ['admins']
        assert user.metadata['access_keys'] == [{
            'access_key_id': 'AKIAEXAMPLE',
            'status': 'Active',
            'create_date': '2023-01-01T00:00:00+00:00',
        }]
        assert 'password_last_used' not in user.metadata

    def test_role_and_policy_enrichment(self, collector, token, iam_client):
        result = collector.collect(token, ResourceFilters(kinds=['role', 'policy']))
        role, policy = result.resources

        assert role.metadata['policies'] == ['Deploy']
        assert role.metadata['max_session_duration'] == 3600
        assert policy.tags == {'Owner': 'sec'}
        assert policy.metadata['attachment_count'] == 2
        assert policy.updated_at == datetime(2022, 7, 1, tzinfo=timezone.utc)
        iam_client.list_policies.assert_not_called()
        iam_client.get_paginator('list_policies').paginate.assert_called_once_with(Scope='Local')

    def test_enrichment_failure_is_tolerated(self, collector, token, iam_client, make_paginator):
        failing = make_paginator([])
        failing.paginate.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'ListAccessKeys'
        )
        paginators = iam_client.get_paginator.side_effect
        iam_client.get_paginator.side_effect = lambda name: failing if name == 'list_access_keys' else paginators(name)

        result = collector.collect(token, ResourceFilters(kinds=['iam_user']))

        user = result.resources[0]
        assert 'access_keys' not in user.metadata
        assert user.metadata['groups'] == ['admins']
        assert result.warnings == []

    def test_region_filter_excludes_global_resources(self, collector, token, iam_client):
        """IAM resources live in 'global'; a regional filter drops them."""
        assert collector.collect(token, ResourceFilters(regions=['us-east-1'])).resources == []
        assert len(collector.collect(token, ResourceFilters(regions=['global'])).resources) == 3

    def test_get_status_user(self, collector, token, mock_boto_client):
        status = collector.get_status(token, 'alice')
        assert status.state == 'active'
        mock_boto_client.get_user.assert_called_once_with(UserName='alice')
        mock_boto_client.get_role.assert_not_called()

    def test_get_status_role(self, collector, token, mock_boto_client):
        mock_boto_client.get_user.side_effect = _no_such_entity('GetUser')
        status = collector.get_status(token, 'deployer')
        assert status.state == 'active'
        mock_boto_client.get_role.assert_called_once_with(RoleName='deployer')

    def test_get_status_not_found(self, collector, token, mock_boto_client):
        mock_boto_client.get_user.side_effect = _no_such_entity('GetUser')
        mock_boto_client.get_role.side_effect = _no_such_entity('GetRole')
        with pytest.raises(ResourceNotFoundError):
            collector.get_status(token, 'nobody')

    def test_get_status_policy_by_name(self, collector, token, iam_client):
        """Policy names returned by collect resolve through the local policy listing."""
        iam_client.get_user.side_effect = _no_such_entity('GetUser')
        iam_client.get_role.side_effect = _no_such_entity('GetRole')

        status = collector.get_status(token, 'ReadOnly')

        assert status.state == 'active'
        assert status.health == 'healthy'
        iam_client.get_paginator('list_policies').paginate.assert_called_once_with(Scope='Local')

    def test_get_status_policy_by_arn(self, collector, token, mock_boto_client):
        arn = 'arn:aws:iam::123456789012:policy/ReadOnly'
        mock_boto_client.get_user.side_effect = _no_such_entity('GetUser')
        mock_boto_client.get_role.side_effect = _no_such_entity('GetRole')

        assert collector.get_status(token, arn).state == 'active'
        mock_boto_client.get_policy.assert_called_once_with(PolicyArn=arn)

    def test_get_status_unknown_policy(self, collector, token, iam_client):
        iam_client.get_user.side_effect = _no_such_entity('GetUser')
        iam_client.get_role.side_effect = _no_such_entity('GetRole')
        iam_client.get_policy.side_effect = _no_such_entity('GetPolicy')

        with pytest.raises(ResourceNotFoundError):
            collector.get_status(token, 'WriteAll')
        with pytest.raises(ResourceNotFoundError):
            collector.get_status(token, 'arn:aws:iam::123456789012:policy/WriteAll')
