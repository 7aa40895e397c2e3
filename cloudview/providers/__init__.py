from .base import CloudProvider
from .aws_provider import AWSProvider, AuthState
from .registry import ProviderRegistry
from .factory import ProviderFactory

__all__ = [
    'CloudProvider',
    'AWSProvider',
    'AuthState',
    'ProviderRegistry',
    'ProviderFactory'
]
