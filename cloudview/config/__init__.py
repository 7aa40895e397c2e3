"""Configuration module for CloudView."""
from .settings import (
    AWSConfig,
    InventoryConfig,
    config_exists,
    config_path,
    effective_config_source,
    generate_example_config,
    get_config,
    write_example_config,
)

__all__ = [
    'AWSConfig',
    'InventoryConfig',
    'config_exists',
    'config_path',
    'effective_config_source',
    'generate_example_config',
    'get_config',
    'write_example_config',
]
