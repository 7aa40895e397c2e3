"""Provider construction and authentication."""
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type
import threading
import logging

from .aws_provider import AWSProvider
from .base import CloudProvider
from .registry import ProviderRegistry
from ..cancellation import CancellationToken
from ..errors import CloudViewError, ProviderNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS: Dict[str, Type[CloudProvider]] = {
    'aws': AWSProvider,
}


class ProviderFactory:
    """Builds authenticated providers by name and records them in a registry."""

    def __init__(
        self,
        registry: ProviderRegistry,
        providers: Optional[Mapping[str, Type[CloudProvider]]] = None,
        max_workers: int = 5
    ):
        """
        Initialize factory.

        Args:
            registry: Registry that get_or_create populates
            providers: Provider classes by name (defaults to AWS only)
            max_workers: Concurrency passed to every constructed provider
        """
        self.registry = registry
        self.providers: Dict[str, Type[CloudProvider]] = dict(providers or DEFAULT_PROVIDERS)
        self.max_workers = max_workers
        self._create_lock = threading.Lock()

    def supported_providers(self) -> List[str]:
        return sorted(self.providers)

    def create_provider(self, token: CancellationToken, name: str, config: Any) -> CloudProvider:
        """
        Validate config, construct the named provider and authenticate it.

        Authentication errors are returned verbatim; there is no retry and
        no fallback provider.

        Raises:
            ProviderNotFoundError: If no provider class is known by that name
            ValidationError: If the configuration is invalid
            AuthenticationError: If authentication fails
        """
        provider_class = self.providers.get(name)
        if provider_class is None:
            raise ProviderNotFoundError(name)

        provider_class.validate_config(config)
        provider = provider_class(max_workers=self.max_workers)
        provider.authenticate(token, config)

        logger.info(f"Created provider {name}", extra={'provider': name})
        return provider

    def get_or_create(self, token: CancellationToken, name: str, config: Any) -> CloudProvider:
        """Return the registered provider, creating and registering it on first use."""
        with self._create_lock:
            if self.registry.exists(name):
                return self.registry.get(name)
            provider = self.create_provider(token, name, config)
            self.registry.register(name, provider)
            return provider

    def create_enabled_providers(
        self,
        token: CancellationToken,
        configs: Mapping[str, Any]
    ) -> Tuple[Dict[str, CloudProvider], Dict[str, CloudViewError]]:
        """
        Create every enabled provider, collecting failures instead of stopping.

        Returns:
            Tuple of (providers by name, errors by name)
        """
        providers: Dict[str, CloudProvider] = {}
        errors: Dict[str, CloudViewError] = {}
        for name, config in configs.items():
            if not getattr(config, 'enabled', True):
                logger.debug(f"Skipping disabled provider {name}")
                continue
            token.raise_if_cancelled()
            try:
                providers[name] = self.get_or_create(token, name, config)
            except CloudViewError as e:
                logger.error(f"Failed to create provider {name}: {e}", extra={'provider': name})
                errors[name] = e
        return providers, errors
