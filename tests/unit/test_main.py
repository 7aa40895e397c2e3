"""Unit tests for main script."""
import io
import os
import json
import pytest
from unittest.mock import MagicMock, patch
from rich.console import Console

from cloudview_inventory import (
    parse_arguments,
    select_provider_configs,
    collect_inventory,
    show_resource_status,
    main,
    EXIT_ERROR,
    EXIT_USAGE,
    EXIT_INTERRUPTED
)
from cloudview.config import AWSConfig
from cloudview.errors import AuthenticationError, ResourceNotFoundError, UnsupportedResourceKindError
from cloudview.filters import ResourceFilters
from cloudview.types import CollectionWarning, InventoryResult, ResourceStatus


@pytest.fixture(autouse=True)
def isolated_environment():
    """Keep main() from reading a real config file or leaking CLOUDVIEW_CONFIG."""
    with patch.dict(os.environ, {'CLOUDVIEW_CONFIG': '/nonexistent/cloudview.json'}, clear=True):
        with patch('cloudview_inventory.setup_logging'):
            yield


@pytest.fixture
def consoles():
    out = Console(file=io.StringIO(), width=200, color_system=None)
    err = Console(file=io.StringIO(), width=200, color_system=None)
    with patch('cloudview_inventory.console', out), patch('cloudview_inventory.err_console', err):
        yield out, err


@pytest.fixture
def provider(sample_resources):
    provider = MagicMock()
    provider.description = 'Amazon Web Services'
    provider.get_resources.return_value = InventoryResult(
        resources=sample_resources,
        warnings=[CollectionWarning(collector='S3', message='denied', category='permission_denied')],
    )
    return provider


@pytest.fixture
def factory(provider):
    with patch('cloudview_inventory.ProviderFactory') as factory_class:
        factory = factory_class.return_value
        factory.create_enabled_providers.return_value = ({'aws': provider}, {})
        yield factory


class TestParseArguments:
    """Test cases for argument parsing."""

    def test_default_arguments(self):
        """Test default argument values."""
        args = parse_arguments([])

        assert args.provider == ['all']
        assert args.region is None
        assert args.type is None
        assert args.tag is None
        assert args.output is None
        assert args.max_width == 0
        assert args.verbose is False
        assert args.log_level is None
        assert args.timeout is None

    def test_custom_arguments(self):
        """Test custom argument values."""
        args = parse_arguments([
            '--region', 'us-east-1', 'us-west-2',
            '--region', 'eu-west-1',
            '--type', 'ec2',
            '--tag', 'Env=prod', 'Team=web',
            '--status', 'running',
            '--created-after', '2024-01-01',
            '-o', 'json',
            '--wide',
            '--max-width', '120',
            '--timeout', '30',
            '--log-level', 'DEBUG'
        ])

        assert args.region == ['us-east-1', 'us-west-2', 'eu-west-1']
        assert args.type == ['ec2']
        assert args.tag == ['Env=prod', 'Team=web']
        assert args.status == ['running']
        assert args.created_after == '2024-01-01'
        assert args.output == 'json'
        assert args.wide is True
        assert args.max_width == 120
        assert args.timeout == 30.0
        assert args.log_level == 'DEBUG'

    def test_invalid_output_format(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(['--output', 'xml'])
        assert exc_info.value.code == 2


class TestSelectProviderConfigs:
    """Test cases for provider selection."""

    def test_all(self):
        configs = {'aws': AWSConfig(), 'aws-prod': AWSConfig()}
        assert select_provider_configs(['all'], configs) == configs

    def test_named_and_unknown(self, consoles):
        _, err = consoles
        configs = {'aws': AWSConfig(), 'aws-prod': AWSConfig()}

        selected = select_provider_configs(['aws-prod', 'gcp'], configs)

        assert list(selected) == ['aws-prod']
        assert "Provider 'gcp' is not configured" in err.file.getvalue()


class TestCollectInventory:
    """Test cases for collect_inventory."""

    def test_merges_providers(self, token, provider, sample_resources):
        other = MagicMock()
        other.get_resources.return_value = InventoryResult(resources=sample_resources[:1])

        result = collect_inventory(token, {'aws': provider, 'aws-prod': other}, ResourceFilters(), show_progress=False)

        assert len(result.resources) == len(sample_resources) + 1
        assert len(result.warnings) == 1

    def test_single_type_dispatch(self, token, provider):
        provider.get_resources_by_type.return_value = InventoryResult()
        filters = ResourceFilters(kinds=['rds'])

        collect_inventory(token, {'aws': provider}, filters, show_progress=False)

        provider.get_resources_by_type.assert_called_once_with(token, 'rds', filters)
        provider.get_resources.assert_not_called()

    def test_single_type_falls_back(self, token, provider):
        provider.get_resources_by_type.side_effect = UnsupportedResourceKindError('lambda', 'aws')
        filters = ResourceFilters(kinds=['lambda'])

        collect_inventory(token, {'aws': provider}, filters, show_progress=False)

        provider.get_resources.assert_called_once_with(token, filters)


class TestShowResourceStatus:
    """Test cases for show_resource_status."""

    def test_found(self, token, provider, consoles):
        out, _ = consoles
        provider.get_resource_status.return_value = ResourceStatus(state='running', health='healthy')

        show_resource_status(token, {'aws': provider}, 'i-1')

        assert 'i-1 (aws): running (health: healthy' in out.file.getvalue()

    def test_not_found(self, token, provider):
        provider.get_resource_status.side_effect = ResourceNotFoundError('i-1', 'aws')
        with pytest.raises(ResourceNotFoundError):
            show_resource_status(token, {'aws': provider}, 'i-1')


class TestMain:
    """Test cases for the main entry point."""

    @pytest.mark.parametrize('argv', [
        ['--tag', 'novalue'],
        ['--created-after', 'yesterday'],
        ['--created-after', '2024-02-01', '--created-before', '2024-01-01'],
        ['--type', 'teleporter'],
    ])
    def test_invalid_filters_exit_before_fetching(self, argv, factory, consoles):
        with pytest.raises(SystemExit) as exc_info:
            main(argv)

        assert exc_info.value.code == EXIT_USAGE
        factory.create_enabled_providers.assert_not_called()
        assert 'Invalid filter' in consoles[1].file.getvalue()

    def test_json_output(self, factory, provider, consoles):
        """Resources go to stdout, warnings to stderr."""
        out, err = consoles

        main(['--output', 'json', '--tag', 'Env=prod'])

        document = json.loads(out.file.getvalue())
        assert document['total'] == 4
        filters = provider.get_resources.call_args.args[1]
        assert filters.tags == {'Env': 'prod'}
        assert '[permission_denied] S3: denied' in err.file.getvalue()

    def test_table_with_summary(self, factory, consoles):
        out, _ = consoles

        main(['--summary'])

        output = out.file.getvalue()
        assert 'Total resources: 4' in output
        assert 'Inventory Summary' in output

    def test_provider_errors_reported(self, factory, provider, consoles):
        factory.create_enabled_providers.return_value = (
            {'aws': provider}, {'aws-prod': AuthenticationError('aws', 'denied')}
        )

        main(['-o', 'json'])

        assert 'aws-prod' in consoles[1].file.getvalue()

    def test_no_providers(self, factory, consoles):
        factory.create_enabled_providers.return_value = ({}, {'aws': AuthenticationError('aws', 'denied')})

        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == EXIT_ERROR

    def test_keyboard_interrupt(self, factory, provider, consoles):
        provider.get_resources.side_effect = KeyboardInterrupt

        with pytest.raises(SystemExit) as exc_info:
            main(['-o', 'json'])
        assert exc_info.value.code == EXIT_INTERRUPTED

    def test_resource_status(self, factory, provider, consoles):
        provider.get_resource_status.return_value = ResourceStatus(state='available', health='healthy')

        main(['--resource-status', 'orders-db'])

        provider.get_resources.assert_not_called()
        assert 'orders-db (aws): available' in consoles[0].file.getvalue()

    def test_resource_status_not_found(self, factory, provider, consoles):
        provider.get_resource_status.side_effect = ResourceNotFoundError('ghost', 'aws')

        with pytest.raises(SystemExit) as exc_info:
            main(['--resource-status', 'ghost'])
        assert exc_info.value.code == EXIT_ERROR

    def test_list_kinds(self, consoles):
        main(['--list-kinds'])

        output = consoles[0].file.getvalue()
        assert 'virtual_machine' in output
        assert 'security_group' in output


class TestConfigCommands:
    """Test cases for the configuration management flags."""

    def test_init_config_writes_example(self, tmp_path, factory, consoles):
        path = tmp_path / 'conf' / 'cloudview.json'

        main(['--init-config', str(path)])

        document = json.loads(path.read_text())
        assert document['providers']['aws']['regions'] == ['us-east-1', 'us-west-2']
        assert str(path) in consoles[0].file.getvalue()
        factory.create_enabled_providers.assert_not_called()

    def test_init_config_refuses_to_overwrite(self, tmp_path, consoles):
        path = tmp_path / 'cloudview.json'
        path.write_text('{"output_format": "json"}')

        with pytest.raises(SystemExit) as exc_info:
            main(['--init-config', str(path)])

        assert exc_info.value.code == EXIT_USAGE
        assert path.read_text() == '{"output_format": "json"}'
        assert 'already exists' in consoles[1].file.getvalue()

    def test_init_config_force(self, tmp_path, consoles):
        path = tmp_path / 'cloudview.json'
        path.write_text('{}')

        main(['--init-config', str(path), '--force'])

        assert 'providers' in json.loads(path.read_text())

    def test_show_config_masks_secrets(self, tmp_path, consoles):
        path = tmp_path / 'cloudview.json'
        path.write_text(json.dumps({
            'providers': {'aws': {'access_key_id': 'AKIA', 'secret_access_key': 'hunter2', 'region': 'eu-west-1'}},
        }))

        main(['--config', str(path), '--show-config'])

        output = consoles[0].file.getvalue()
        document = json.loads(output)
        assert document['providers']['aws']['secret_access_key'] == '***'
        assert document['providers']['aws']['region'] == 'eu-west-1'
        assert 'hunter2' not in output

    def test_config_path_reports_source(self, tmp_path, consoles):
        path = tmp_path / 'cloudview.json'

        main(['--config', str(path), '--config-path'])

        output = consoles[0].file.getvalue()
        assert f'{path} (not found, using defaults)' in output
        assert 'CLOUDVIEW_CONFIG' in output

    def test_validate_config_valid(self, consoles):
        main(['--validate-config'])

        output = consoles[0].file.getvalue()
        assert 'Configuration is valid' in output
        assert 'aws: enabled (us-east-1)' in output

    def test_validate_config_invalid(self, tmp_path, factory, consoles):
        path = tmp_path / 'cloudview.json'
        path.write_text(json.dumps({'providers': {'aws': {'access_key_id': 'AKIA'}}}))

        with pytest.raises(SystemExit) as exc_info:
            main(['--config', str(path), '--validate-config'])

        assert exc_info.value.code == EXIT_USAGE
        assert 'providers.aws.access_key_id' in consoles[1].file.getvalue()
        factory.create_enabled_providers.assert_not_called()

    def test_invalid_env_override_exits_with_usage(self, consoles):
        with patch.dict(os.environ, {'CLOUDVIEW_MAX_CONCURRENT_COLLECTORS': 'many'}):
            with pytest.raises(SystemExit) as exc_info:
                main(['--show-config'])

        assert exc_info.value.code == EXIT_USAGE
        assert 'CLOUDVIEW_MAX_CONCURRENT_COLLECTORS' in consoles[1].file.getvalue()
