"""Unit tests for EC2 collector."""
import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError

from cloudview.collectors.ec2_collector import EC2Collector
from cloudview.config import AWSConfig
from cloudview.errors import ResourceNotFoundError
from cloudview.filters import ResourceFilters


@pytest.fixture
def collector(mock_session, aws_config):
    return EC2Collector(mock_session, aws_config)


def _page(*instances):
    return {'Reservations': [{'Instances': list(instances)}]}


class TestEC2Collector:
    """Test cases for EC2Collector."""

    def test_collector_properties(self, collector):
        """Test collector basic properties."""
        assert collector.service_name == 'EC2'
        assert collector.category == 'compute'
        assert collector.supported_kinds == ['virtual_machine']
        assert collector.matches_kind('ec2')
        assert collector.matches_kind('compute')
        assert not collector.matches_kind('rds')

    def test_collect_instances(self, collector, token, mock_boto_client, mock_session, sample_ec2_instance, make_paginator):
        """Test collecting EC2 instances."""
        mock_boto_client.get_paginator.return_value = make_paginator([_page(sample_ec2_instance)])
        mock_boto_client.describe_instance_status.return_value = {
            'InstanceStatuses': [{
                'InstanceId': 'i-1234567890abcdef0',
                'SystemStatus': {'Status': 'ok'},
                'InstanceStatus': {'Status': 'impaired'},
            }]
        }

        result = collector.collect(token)

        mock_session.client.assert_called_with('ec2', region_name='us-east-1')
        mock_boto_client.get_paginator.assert_called_with('describe_instances')
        assert len(result.resources) == 1
        resource = result.resources[0]
        assert resource.id == 'i-1234567890abcdef0'
        assert resource.kind == 'virtual_machine'
        assert resource.name == 'test-instance'
        assert resource.region == 'us-east-1'
        assert resource.status.state == 'running'
        assert resource.status.health == 'healthy'
        assert resource.tags == {'Name': 'test-instance', 'Environment': 'test'}
        assert resource.metadata['instance_type'] == 't3.micro'
        assert resource.metadata['platform'] == 'linux'
        assert resource.metadata['public_ip'] == '1.2.3.4'
        assert resource.metadata['availability_zone'] == 'us-east-1a'
        assert resource.metadata['security_groups'] == ['sg-12345']
        assert resource.metadata['system_status'] == 'ok'
        assert resource.metadata['instance_status'] == 'impaired'
        assert 'key_name' not in resource.metadata

    def test_name_falls_back_to_id(self, collector, token, mock_boto_client, sample_ec2_instance, make_paginator):
        sample_ec2_instance['Tags'] = []
        mock_boto_client.get_paginator.return_value = make_paginator([_page(sample_ec2_instance)])

        resource = collector.collect(token).resources[0]

        assert resource.name == 'i-1234567890abcdef0'

    def test_status_check_failure_is_tolerated(self, collector, token, mock_boto_client, sample_ec2_instance, make_paginator):
        mock_boto_client.get_paginator.return_value = make_paginator([_page(sample_ec2_instance)])
        mock_boto_client.describe_instance_status.side_effect = ClientError(
            {'Error': {'Code': 'UnauthorizedOperation', 'Message': 'denied'}}, 'DescribeInstanceStatus'
        )

        result = collector.collect(token)

        assert len(result.resources) == 1
        assert 'system_status' not in result.resources[0].metadata
        assert result.warnings == []

    def test_status_checks_batched(self, collector, mock_boto_client):
        mock_boto_client.describe_instance_status.return_value = {'InstanceStatuses': []}
        ids = [f'i-{n:04d}' for n in range(250)]

        collector._get_status_checks(mock_boto_client, ids)

        batches = [c.kwargs['InstanceIds'] for c in mock_boto_client.describe_instance_status.call_args_list]
        assert [len(b) for b in batches] == [100, 100, 50]

    def test_server_side_filters(self, collector, token, mock_boto_client, make_paginator):
        paginator = make_paginator([])
        mock_boto_client.get_paginator.return_value = paginator
        filters = ResourceFilters(statuses=['running'], tags={'Env': 'prod'})

        collector.collect(token, filters)

        paginator.paginate.assert_called_once_with(Filters=[
            {'Name': 'instance-state-name', 'Values': ['running']},
            {'Name': 'tag:Env', 'Values': ['prod']},
        ])

    def test_stopped_instance_health(self, collector, token, mock_boto_client, sample_ec2_instance, make_paginator):
        sample_ec2_instance['State'] = {'Name': 'stopped'}
        mock_boto_client.get_paginator.return_value = make_paginator([_page(sample_ec2_instance)])

        resource = collector.collect(token).resources[0]

        assert resource.status.health == 'unhealthy'

    def test_access_denied_region(self, mock_session, mock_boto_client, token):
        """A region that rejects the list call is reported and skipped."""
        collector = EC2Collector(mock_session, AWSConfig(regions=['us-east-1', 'eu-west-1']))
        good = MagicMock()
        good.paginate.return_value = [{'Reservations': []}]
        bad = MagicMock()
        bad.paginate.side_effect = ClientError(
            {'Error': {'Code': 'UnauthorizedOperation', 'Message': 'denied'}}, 'DescribeInstances'
        )
        mock_boto_client.get_paginator.side_effect = [bad, good]

        result = collector.collect(token)

        assert result.resources == []
        assert len(result.warnings) == 1
        assert result.warnings[0].region == 'us-east-1'
        assert result.warnings[0].category == 'permission_denied'

    def test_get_status(self, collector, token, mock_boto_client, sample_ec2_instance):
        mock_boto_client.describe_instances.return_value = _page(sample_ec2_instance)

        status = collector.get_status(token, 'i-1234567890abcdef0')

        assert status.state == 'running'
        assert status.health == 'healthy'
        mock_boto_client.describe_instances.assert_called_once_with(InstanceIds=['i-1234567890abcdef0'])

    def test_get_status_not_found(self, collector, token, mock_boto_client):
        mock_boto_client.describe_instances.side_effect = ClientError(
            {'Error': {'Code': 'InvalidInstanceID.NotFound', 'Message': 'nope'}}, 'DescribeInstances'
        )
        with pytest.raises(ResourceNotFoundError):
            collector.get_status(token, 'i-0000')

    def test_get_status_foreign_id(self, collector, token, mock_boto_client):
        with pytest.raises(ResourceNotFoundError):
            collector.get_status(token, 'my-bucket')
        mock_boto_client.describe_instances.assert_not_called()
