"""Pytest configuration and fixtures."""
import pytest
from unittest.mock import MagicMock
from datetime import datetime, timezone
from typing import Any, Dict, List

from cloudview.cancellation import CancellationToken
from cloudview.config import AWSConfig
from cloudview.types import Resource, ResourceStatus


@pytest.fixture
def make_paginator():
    """Build paginator mocks whose paginate() yields the given pages."""
    def _make(pages: List[Dict[str, Any]]) -> MagicMock:
        paginator = MagicMock()
        paginator.paginate.return_value = pages
        return paginator
    return _make


@pytest.fixture
def token():
    """A token that is never cancelled."""
    return CancellationToken()


@pytest.fixture
def aws_config():
    """AWS config pinned to a single region."""
    return AWSConfig(region='us-east-1')


@pytest.fixture
def mock_boto_client():
    """Create a mock boto3 client."""
    client = MagicMock()
    client.get_paginator = MagicMock()
    return client


@pytest.fixture
def mock_session(mock_boto_client):
    """Session mock handing out the same client for every service and region."""
    session = MagicMock()
    session.client.return_value = mock_boto_client
    return session


@pytest.fixture
def sample_ec2_instance():
    """Sample EC2 instance data from AWS API."""
    return {
        'InstanceId': 'i-1234567890abcdef0',
        'InstanceType': 't3.micro',
        'State': {'Name': 'running'},
        'LaunchTime': datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        'PublicIpAddress': '1.2.3.4',
        'PrivateIpAddress': '10.0.0.1',
        'VpcId': 'vpc-12345',
        'SubnetId': 'subnet-12345',
        'ImageId': 'ami-12345',
        'Architecture': 'x86_64',
        'Placement': {'AvailabilityZone': 'us-east-1a'},
        'SecurityGroups': [{'GroupId': 'sg-12345', 'GroupName': 'web'}],
        'Tags': [
            {'Key': 'Name', 'Value': 'test-instance'},
            {'Key': 'Environment', 'Value': 'test'}
        ]
    }


@pytest.fixture
def sample_s3_bucket():
    """Sample S3 bucket data from AWS API."""
    return {
        'Name': 'test-bucket-12345',
        'CreationDate': datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    }


@pytest.fixture
def sample_rds_instance():
    """Sample RDS instance data from AWS API."""
    return {
        'DBInstanceIdentifier': 'orders-db',
        'DBInstanceArn': 'arn:aws:rds:us-east-1:123456789012:db:orders-db',
        'DBInstanceClass': 'db.t3.medium',
        'Engine': 'postgres',
        'EngineVersion': '15.4',
        'DBInstanceStatus': 'available',
        'AllocatedStorage': 100,
        'StorageType': 'gp3',
        'StorageEncrypted': True,
        'MultiAZ': False,
        'PubliclyAccessible': False,
        'Endpoint': {'Address': 'orders-db.abc.us-east-1.rds.amazonaws.com', 'Port': 5432},
        'AvailabilityZone': 'us-east-1b',
        'DBSubnetGroup': {'DBSubnetGroupName': 'default', 'VpcId': 'vpc-12345'},
        'VpcSecurityGroups': [{'VpcSecurityGroupId': 'sg-db'}],
        'InstanceCreateTime': datetime(2023, 6, 1, tzinfo=timezone.utc),
        'TagList': [{'Key': 'Env', 'Value': 'prod'}]
    }


@pytest.fixture
def sample_iam_user():
    """Sample IAM user data from AWS API."""
    return {
        'UserName': 'alice',
        'UserId': 'AIDAEXAMPLE',
        'Arn': 'arn:aws:iam::123456789012:user/alice',
        'Path': '/',
        'CreateDate': datetime(2022, 3, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def sample_vpc():
    """Sample VPC data from AWS API."""
    return {
        'VpcId': 'vpc-12345',
        'State': 'available',
        'CidrBlock': '10.0.0.0/16',
        'DhcpOptionsId': 'dopt-1',
        'InstanceTenancy': 'default',
        'IsDefault': False,
        'OwnerId': '123456789012',
        'Tags': [{'Key': 'Name', 'Value': 'main'}]
    }


@pytest.fixture
def sample_resources():
    """Sample list of resources for testing."""
    return [
        Resource(
            id='i-1234567890abcdef0',
            kind='virtual_machine',
            name='web-server',
            region='us-east-1',
            status=ResourceStatus(state='running', health='healthy'),
            tags={'Env': 'prod', 'Team': 'web'},
            created_at=datetime(2024, 1, 5, tzinfo=timezone.utc),
        ),
        Resource(
            id='test-bucket',
            kind='object_storage',
            region='eu-west-1',
            status=ResourceStatus(state='available', health='healthy'),
            tags={'Env': 'dev'},
            created_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
        ),
        Resource(
            id='orders-db',
            kind='database',
            region='us-east-1',
            status=ResourceStatus(state='stopped', health='unhealthy'),
            tags={'Env': 'prod'},
            created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
        ),
        Resource(
            id='alice',
            kind='iam_user',
            region='global',
            status=ResourceStatus(state='active', health='healthy'),
            created_at=datetime(2023, 12, 1, tzinfo=timezone.utc),
        ),
    ]


@pytest.fixture(autouse=True)
def reset_config():
    """Reset global config before each test."""
    from cloudview.config import settings
    settings._config = None
    yield
    settings._config = None
