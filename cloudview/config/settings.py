"""Inventory configuration settings."""
from dataclasses import dataclass, field, fields
from typing import Optional, List, Dict, Any
import os
import json
import logging

from ..errors import ValidationError

logger = logging.getLogger(__name__)

MIN_ROLE_DURATION = 900
MAX_ROLE_DURATION = 43200
OUTPUT_FORMATS = ['table', 'json', 'yaml']
LOG_FORMATS = ['text', 'json']


@dataclass
class AWSConfig:
    """Configuration for the AWS provider."""

    enabled: bool = True

    # Regions to query; region is the single default used when regions is empty
    regions: List[str] = None
    region: str = ''

    # Credentials, in priority order: static keys, profile, default chain
    profile: str = ''
    access_key_id: str = ''
    secret_access_key: str = ''
    session_token: str = ''

    # Role assumption, layered on top of the base credentials
    role_arn: str = ''
    external_id: str = ''
    mfa_serial: str = ''
    mfa_token: str = ''
    duration_seconds: int = 3600
    session_name: str = 'cloudview-session'

    def __post_init__(self):
        """Initialize empty lists for None values."""
        if self.regions is None:
            self.regions = []

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AWSConfig':
        """Build from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown AWS config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @property
    def default_region(self) -> str:
        return self.region

    def validate(self) -> None:
        """
        Check the configuration shape.

        Raises:
            ValidationError: On the first invalid field
        """
        if not isinstance(self.regions, list) or not all(isinstance(r, str) and r for r in self.regions):
            raise ValidationError('regions', self.regions, 'must be a list of non-empty region names')
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ValidationError(
                'access_key_id', self.access_key_id,
                'access_key_id and secret_access_key must be provided together'
            )
        if self.session_token and not self.access_key_id:
            raise ValidationError('session_token', '***', 'session_token requires static access keys')
        if self.role_arn:
            if not self.role_arn.startswith('arn:'):
                raise ValidationError('role_arn', self.role_arn, 'must be an IAM role ARN')
            if not MIN_ROLE_DURATION <= self.duration_seconds <= MAX_ROLE_DURATION:
                raise ValidationError(
                    'duration_seconds', self.duration_seconds,
                    f'must be between {MIN_ROLE_DURATION} and {MAX_ROLE_DURATION}'
                )
        if self.mfa_token and not self.mfa_serial:
            raise ValidationError('mfa_token', '***', 'mfa_token requires mfa_serial')

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with secrets masked."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        for secret in ('secret_access_key', 'session_token', 'mfa_token'):
            if data[secret]:
                data[secret] = '***'
        return data


@dataclass
class InventoryConfig:
    """Top-level configuration for the inventory CLI."""

    providers: Dict[str, AWSConfig] = None

    # Concurrency settings
    max_concurrent_collectors: int = 5

    # Output settings
    output_format: str = 'table'

    # Logging
    log_level: str = 'WARNING'
    log_format: str = 'text'  # 'text' or 'json'

    def __post_init__(self):
        if self.providers is None:
            self.providers = {'aws': AWSConfig()}
        if self.output_format not in OUTPUT_FORMATS:
            raise ValidationError('output_format', self.output_format, f"must be one of {', '.join(OUTPUT_FORMATS)}")
        if self.max_concurrent_collectors < 1:
            raise ValidationError('max_concurrent_collectors', self.max_concurrent_collectors, 'must be >= 1')

    @property
    def aws(self) -> AWSConfig:
        return self.providers.setdefault('aws', AWSConfig())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InventoryConfig':
        data = dict(data)
        providers = {
            name: AWSConfig.from_dict(provider_data or {})
            for name, provider_data in (data.pop('providers', None) or {}).items()
        }
        known = {f.name for f in fields(cls)}
        return cls(providers=providers or None, **{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_file(cls, config_path: str) -> 'InventoryConfig':
        """Load configuration from a JSON file."""
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)
        except FileNotFoundError:
            logger.info(f"Config file {config_path} not found, using defaults")
            return cls()
        except json.JSONDecodeError as e:
            raise ValidationError('config', config_path, f'invalid JSON: {e}') from e
        config = cls.from_dict(config_data)
        config.apply_env()
        return config

    @classmethod
    def from_env(cls) -> 'InventoryConfig':
        """Load configuration from environment variables."""
        config = cls()
        config.apply_env()
        return config

    def validate(self) -> None:
        """Validate every provider section and the output settings."""
        for name, provider in self.providers.items():
            try:
                provider.validate()
            except ValidationError as e:
                raise ValidationError(f'providers.{name}.{e.field}', e.value, e.message) from e
        if self.log_format not in LOG_FORMATS:
            raise ValidationError('log_format', self.log_format, f"must be one of {', '.join(LOG_FORMATS)}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with provider secrets masked."""
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'providers'}
        data['providers'] = {name: provider.to_dict() for name, provider in self.providers.items()}
        return data

    def apply_env(self) -> None:
        """Override fields from environment variables if present."""
        aws = self.aws

        if os.getenv('CLOUDVIEW_AWS_REGIONS'):
            aws.regions = [r.strip() for r in os.getenv('CLOUDVIEW_AWS_REGIONS').split(',') if r.strip()]

        region = os.getenv('CLOUDVIEW_AWS_REGION') or os.getenv('AWS_REGION') or os.getenv('AWS_DEFAULT_REGION')
        if region and not aws.region:
            aws.region = region

        profile = os.getenv('CLOUDVIEW_AWS_PROFILE') or os.getenv('AWS_PROFILE')
        if profile and not aws.profile:
            aws.profile = profile

        if os.getenv('CLOUDVIEW_AWS_ROLE_ARN'):
            aws.role_arn = os.getenv('CLOUDVIEW_AWS_ROLE_ARN')

        workers = os.getenv('CLOUDVIEW_MAX_CONCURRENT_COLLECTORS')
        if workers:
            try:
                self.max_concurrent_collectors = int(workers)
            except ValueError:
                raise ValidationError('CLOUDVIEW_MAX_CONCURRENT_COLLECTORS', workers, 'must be an integer') from None
            if self.max_concurrent_collectors < 1:
                raise ValidationError('CLOUDVIEW_MAX_CONCURRENT_COLLECTORS', workers, 'must be >= 1')

        output_format = os.getenv('CLOUDVIEW_OUTPUT')
        if output_format:
            if output_format not in OUTPUT_FORMATS:
                raise ValidationError('CLOUDVIEW_OUTPUT', output_format, f"must be one of {', '.join(OUTPUT_FORMATS)}")
            self.output_format = output_format

        if os.getenv('CLOUDVIEW_LOG_LEVEL'):
            self.log_level = os.getenv('CLOUDVIEW_LOG_LEVEL')

        log_format = os.getenv('CLOUDVIEW_LOG_FORMAT')
        if log_format:
            if log_format not in LOG_FORMATS:
                raise ValidationError('CLOUDVIEW_LOG_FORMAT', log_format, f"must be one of {', '.join(LOG_FORMATS)}")
            self.log_format = log_format


DEFAULT_CONFIG_PATH = 'cloudview.json'

# Environment variables that override the config file
CONFIG_ENV_VARS = [
    'CLOUDVIEW_CONFIG',
    'CLOUDVIEW_AWS_REGIONS',
    'CLOUDVIEW_AWS_REGION',
    'CLOUDVIEW_AWS_PROFILE',
    'CLOUDVIEW_AWS_ROLE_ARN',
    'CLOUDVIEW_MAX_CONCURRENT_COLLECTORS',
    'CLOUDVIEW_OUTPUT',
    'CLOUDVIEW_LOG_LEVEL',
    'CLOUDVIEW_LOG_FORMAT',
    'AWS_PROFILE',
    'AWS_REGION',
    'AWS_DEFAULT_REGION',
]


def config_path() -> str:
    """Path of the config file get_config() reads."""
    return os.getenv('CLOUDVIEW_CONFIG', DEFAULT_CONFIG_PATH)


def config_exists(path: Optional[str] = None) -> bool:
    return os.path.isfile(path or config_path())


def effective_config_source() -> Dict[str, Any]:
    """
    Describe where the effective configuration comes from.

    Returns:
        Mapping with the config path, whether that file exists and the
        overriding environment variables that are currently set
    """
    path = config_path()
    return {
        'config_path': path,
        'config_file': config_exists(path),
        'set_env_vars': [name for name in CONFIG_ENV_VARS if os.getenv(name)],
    }


def generate_example_config() -> Dict[str, Any]:
    """Example configuration with the commonly overridden settings filled in."""
    example = InventoryConfig(providers={
        'aws': AWSConfig(profile='default', region='us-east-1', regions=['us-east-1', 'us-west-2'])
    })
    return example.to_dict()


def write_example_config(path: str, force: bool = False) -> None:
    """
    Write the example configuration as JSON.

    Raises:
        ValidationError: If the file exists and force is not set
    """
    if config_exists(path) and not force:
        raise ValidationError('config', path, 'file already exists')
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(generate_example_config(), f, indent=2)
        f.write('\n')
    logger.info(f"Wrote example configuration to {path}", extra={'config_path': path})


_config: Optional[InventoryConfig] = None


def get_config() -> InventoryConfig:
    """Get the global inventory configuration."""
    global _config
    if _config is None:
        # File first, then environment overrides
        path = config_path()
        if os.path.exists(path):
            _config = InventoryConfig.from_file(path)
        else:
            _config = InventoryConfig.from_env()
    return _config
